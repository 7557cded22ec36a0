from __future__ import annotations

import numpy as np
import pandas as pd

from bluetarp.config import ModelName, RunStatus

_COUNT_COLS = ["TP", "FP", "TN", "FN"]


def validate_fold_assignment(fold_df: pd.DataFrame, n_folds: int, n_observations: int) -> None:
    for col in ["obs_id", "fold"]:
        if col not in fold_df.columns:
            raise ValueError(f"fold_assignment: missing '{col}' column")
    if len(fold_df) != n_observations:
        raise ValueError(f"fold_assignment: expected {n_observations} rows, got {len(fold_df)}")

    ids = fold_df["obs_id"].to_numpy(dtype=int)
    if not np.array_equal(np.sort(ids), np.arange(1, n_observations + 1)):
        raise ValueError("fold_assignment: obs_id is not a permutation of 1..N")

    folds = fold_df["fold"].to_numpy(dtype=int)
    bad = set(np.unique(folds).tolist()) - set(range(1, n_folds + 1))
    if bad:
        raise ValueError(f"fold_assignment: fold values outside 1..{n_folds}: {sorted(bad)}")
    sizes = np.bincount(folds, minlength=n_folds + 1)[1:]
    if sizes.max() - sizes.min() > 1:
        raise ValueError(f"fold_assignment: unbalanced fold sizes {sizes.tolist()}")


def validate_comparison_artifacts(
    comparison_df: pd.DataFrame,
    oof_df: pd.DataFrame,
    roc_df: pd.DataFrame,
    n_observations: int,
) -> None:
    unknown = set(comparison_df["model"].astype(str)) - set(ModelName.ALL)
    if unknown:
        raise ValueError(f"model_comparison: unknown models {sorted(unknown)}")
    if len(oof_df) != n_observations:
        raise ValueError(f"oof_scores: expected {n_observations} rows, got {len(oof_df)}")
    if not np.array_equal(oof_df["obs_id"].to_numpy(dtype=int), np.arange(1, n_observations + 1)):
        raise ValueError("oof_scores: obs_id must run 1..N in order")

    ok_rows = comparison_df[comparison_df["status"] == RunStatus.OK]
    for _, row in ok_rows.iterrows():
        model = str(row["model"])
        total = int(sum(int(row[c]) for c in _COUNT_COLS))
        if total != n_observations:
            raise ValueError(f"{model}: confusion counts sum to {total}, expected {n_observations}")
        pos = int(row["TP"]) + int(row["FN"])
        if pos > 0 and not np.isclose(float(row["TPR"]), int(row["TP"]) / pos, atol=1e-9):
            raise ValueError(f"{model}: TPR inconsistent with TP/(TP+FN)")
        neg = int(row["TN"]) + int(row["FP"])
        if neg > 0 and not np.isclose(float(row["TNR"]), int(row["TN"]) / neg, atol=1e-9):
            raise ValueError(f"{model}: TNR inconsistent with TN/(TN+FP)")

        if model not in oof_df.columns:
            raise ValueError(f"oof_scores: missing column for {model}")
        scores = oof_df[model].to_numpy(dtype=float)
        if np.any(np.isnan(scores)):
            raise ValueError(f"oof_scores: {model} has unscored observations")
        if np.any((scores < 0.0) | (scores > 1.0)):
            raise ValueError(f"oof_scores: {model} has scores outside [0, 1]")
        if not (roc_df["model"] == model).any():
            raise ValueError(f"roc_curves: missing curve for {model}")

    failed = comparison_df[comparison_df["status"] == RunStatus.FAILED]
    for model in failed["model"].astype(str):
        if (roc_df["model"] == model).any():
            raise ValueError(f"roc_curves: failed model {model} must not publish a curve")
