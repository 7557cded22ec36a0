from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold

from bluetarp.errors import FitError, InvalidArgument
from bluetarp.io import Dataset
from bluetarp.models import ModelAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FoldAssignment:
    """Fold number (1..k) per observation, indexed by ``obs_id - 1``."""

    folds: np.ndarray
    n_folds: int
    seed: int

    @property
    def n(self) -> int:
        return int(self.folds.size)

    def fold_of(self, obs_id: int) -> int:
        return int(self.folds[obs_id - 1])

    def test_index(self, fold: int) -> np.ndarray:
        return np.flatnonzero(self.folds == fold)

    def train_index(self, fold: int) -> np.ndarray:
        return np.flatnonzero(self.folds != fold)

    def fold_sizes(self) -> dict[int, int]:
        counts = np.bincount(self.folds, minlength=self.n_folds + 1)
        return {f: int(counts[f]) for f in range(1, self.n_folds + 1)}

    def as_mapping(self) -> dict[int, int]:
        return {i + 1: int(f) for i, f in enumerate(self.folds.tolist())}

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"obs_id": np.arange(1, self.n + 1, dtype=int), "fold": self.folds.astype(int)}
        )


def assign_folds(n: int, n_folds: int, seed: int) -> FoldAssignment:
    if n_folds < 2:
        raise InvalidArgument(f"n_folds must be >= 2, got {n_folds}")
    if n < n_folds:
        raise InvalidArgument(f"Need at least n_folds={n_folds} observations, got {n}")

    kf = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    folds = np.zeros(n, dtype=int)
    for fold_i, (_, test_idx) in enumerate(kf.split(np.arange(n)), start=1):
        folds[test_idx] = fold_i
    folds.setflags(write=False)
    return FoldAssignment(folds=folds, n_folds=n_folds, seed=seed)


@dataclass(frozen=True)
class FoldRecord:
    fold: int
    train_n: int
    test_n: int
    train_targets: int
    test_targets: int


@dataclass(frozen=True)
class ScoreVector:
    """Out-of-fold scores for one model, position ``obs_id - 1``."""

    model: str
    values: np.ndarray
    folds: tuple[FoldRecord, ...] = field(default_factory=tuple)

    @property
    def n(self) -> int:
        return int(self.values.size)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"obs_id": np.arange(1, self.n + 1, dtype=int), self.model: self.values}
        )


def _check_scores(scores: Any, expected_n: int) -> np.ndarray:
    arr = np.asarray(scores, dtype=float).ravel()
    if arr.size != expected_n:
        raise FitError(f"predict_score returned {arr.size} scores for {expected_n} test rows")
    if not np.all(np.isfinite(arr)):
        raise FitError("predict_score returned non-finite scores")
    if np.any((arr < 0.0) | (arr > 1.0)):
        raise FitError("predict_score returned scores outside [0, 1]")
    return arr


def cross_validate(
    dataset: Dataset,
    assignment: FoldAssignment,
    adapter: ModelAdapter,
    hyperparameters: dict[str, Any] | None = None,
) -> ScoreVector:
    if assignment.n != dataset.n:
        raise InvalidArgument(
            f"Fold assignment covers {assignment.n} rows, dataset has {dataset.n}"
        )
    hyperparameters = dict(hyperparameters or {})
    x = dataset.features
    y = dataset.targets

    scores = np.full(dataset.n, np.nan, dtype=float)
    written = np.zeros(dataset.n, dtype=bool)
    records: list[FoldRecord] = []

    for fold in range(1, assignment.n_folds + 1):
        train_idx = assignment.train_index(fold)
        test_idx = assignment.test_index(fold)
        if test_idx.size == 0:
            raise FitError("empty held-out fold", model=adapter.name, fold=fold)
        if np.any(written[test_idx]):
            raise RuntimeError(f"Fold {fold} overlaps rows already scored by an earlier fold")

        try:
            handle = adapter.fit(x[train_idx], y[train_idx], hyperparameters)
            fold_scores = _check_scores(adapter.predict_score(handle, x[test_idx]), test_idx.size)
        except FitError as exc:
            raise FitError(exc.message, model=adapter.name, fold=fold) from exc
        except InvalidArgument:
            raise
        except (ValueError, ArithmeticError, np.linalg.LinAlgError) as exc:
            raise FitError(f"{type(exc).__name__}: {exc}", model=adapter.name, fold=fold) from exc
        del handle

        scores[test_idx] = fold_scores
        written[test_idx] = True
        records.append(
            FoldRecord(
                fold=fold,
                train_n=int(train_idx.size),
                test_n=int(test_idx.size),
                train_targets=int(np.sum(y[train_idx])),
                test_targets=int(np.sum(y[test_idx])),
            )
        )
        logger.debug(
            "%s fold %d/%d: train=%d test=%d",
            adapter.name,
            fold,
            assignment.n_folds,
            train_idx.size,
            test_idx.size,
        )

    if not written.all():
        raise RuntimeError(f"{int((~written).sum())} observations never scored")
    scores.setflags(write=False)
    return ScoreVector(model=adapter.name, values=scores, folds=tuple(records))


def fold_records_frame(score_vectors: list[ScoreVector]) -> pd.DataFrame:
    rows: list[dict[str, Any]] = []
    for sv in score_vectors:
        for rec in sv.folds:
            rows.append(
                {
                    "model": sv.model,
                    "fold": rec.fold,
                    "train_n": rec.train_n,
                    "test_n": rec.test_n,
                    "train_targets": rec.train_targets,
                    "test_targets": rec.test_targets,
                }
            )
    return pd.DataFrame(
        rows, columns=["model", "fold", "train_n", "test_n", "train_targets", "test_targets"]
    )
