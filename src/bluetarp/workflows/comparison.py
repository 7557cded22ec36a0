from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

import numpy as np
import pandas as pd

from bluetarp.artifacts import config_hash, reports_dir, update_manifest, write_report
from bluetarp.config import (
    DEFAULT_THRESHOLDS,
    ArtifactName,
    ModelName,
    RunStatus,
)
from bluetarp.cv import ScoreVector, cross_validate, fold_records_frame
from bluetarp.errors import FitError, InvalidArgument, MetricsError
from bluetarp.metrics import (
    MetricsSummary,
    accuracy,
    counts_at_threshold,
    precision,
    summarize,
    true_neg_rate,
    true_pos_rate,
)
from bluetarp.models import get_adapter, validate_hyperparameters
from bluetarp.types import ComparisonResult, ModelOutcome, ModelRunConfig, RunBundle

logger = logging.getLogger(__name__)


def default_run_configs(
    models: list[str] | None = None,
    hyperparameters: Mapping[str, Mapping[str, Any]] | None = None,
    thresholds: Mapping[str, float] | None = None,
) -> list[ModelRunConfig]:
    models = list(ModelName.ALL) if models is None else list(models)
    hyperparameters = hyperparameters or {}
    thresholds = thresholds or {}
    bad = (set(models) | set(hyperparameters) | set(thresholds)) - set(ModelName.ALL)
    if bad:
        raise InvalidArgument(f"Unknown model(s): {sorted(bad)}")

    configs = [
        ModelRunConfig(
            model=model,
            threshold=thresholds.get(model, DEFAULT_THRESHOLDS[model]),
            hyperparameters=hyperparameters.get(model, {}),
        )
        for model in models
    ]
    return [check_run_config(c) for c in configs]


def check_run_config(config: ModelRunConfig) -> ModelRunConfig:
    """Validate a run config and fill in default hyperparameters."""
    params = validate_hyperparameters(config.model, config.hyperparameters)
    try:
        threshold = float(config.threshold)
    except (TypeError, ValueError):
        raise InvalidArgument(
            f"{config.model}: threshold must be a number, got {config.threshold!r}"
        ) from None
    if not np.isfinite(threshold) or threshold < 0.0 or threshold > 1.0:
        raise InvalidArgument(f"{config.model}: threshold must lie in [0, 1], got {threshold}")
    return ModelRunConfig(model=config.model, threshold=threshold, hyperparameters=params)


def evaluate_model(bundle: RunBundle, config: ModelRunConfig) -> ModelOutcome:
    adapter = get_adapter(config.model)
    try:
        scores = cross_validate(
            bundle.dataset, bundle.assignment, adapter, dict(config.hyperparameters)
        )
    except FitError as exc:
        logger.error("%s: evaluation aborted: %s", config.model, exc)
        return ModelOutcome(
            config=config,
            status=RunStatus.FAILED,
            failed_fold=exc.fold,
            error=exc.message,
        )
    summary = summarize(bundle.dataset.targets, scores.values, config.threshold)
    if summary.undefined:
        logger.warning("%s: undefined metrics %s", config.model, list(summary.undefined))
    logger.info(
        "%s: AUC=%.4f TPR=%.4f TNR=%.4f at threshold %.3f",
        config.model,
        summary.auc,
        summary.tpr,
        summary.tnr,
        summary.threshold,
    )
    return ModelOutcome(config=config, status=RunStatus.OK, scores=scores, summary=summary)


def _optimal_threshold_metrics(
    y: np.ndarray, scores: ScoreVector, summary: MetricsSummary
) -> dict[str, float]:
    if np.isnan(summary.optimal_threshold):
        return {
            "TPR_at_optimal": np.nan,
            "TNR_at_optimal": np.nan,
            "precision_at_optimal": np.nan,
            "accuracy_at_optimal": np.nan,
        }
    counts = counts_at_threshold(y, scores.values, summary.optimal_threshold)
    return {
        "TPR_at_optimal": true_pos_rate(counts),
        "TNR_at_optimal": true_neg_rate(counts),
        "precision_at_optimal": precision(counts),
        "accuracy_at_optimal": accuracy(counts),
    }


def _comparison_row(y: np.ndarray, outcome: ModelOutcome) -> dict[str, Any]:
    payload = outcome.config.to_payload()
    row: dict[str, Any] = {
        "model": outcome.config.model,
        "status": outcome.status,
        "config_hash": config_hash(payload),
        "hyperparameters": json.dumps(payload["hyperparameters"], sort_keys=True),
        "failed_fold": outcome.failed_fold,
        "error": outcome.error,
    }
    if outcome.summary is None or outcome.scores is None:
        row.update({"threshold": outcome.config.threshold})
        return row
    row.update(outcome.summary.as_row())
    row.update(_optimal_threshold_metrics(y, outcome.scores, outcome.summary))
    return row


def _roc_frame(outcomes: list[ModelOutcome]) -> pd.DataFrame:
    parts = []
    for o in outcomes:
        if o.summary is None:
            continue
        roc = o.summary.roc
        parts.append(
            pd.DataFrame(
                {
                    "model": o.config.model,
                    "threshold": roc.thresholds,
                    "FPR": roc.fpr,
                    "TPR": roc.tpr,
                }
            )
        )
    if not parts:
        return pd.DataFrame(columns=["model", "threshold", "FPR", "TPR"])
    return pd.concat(parts, ignore_index=True)


def run_model_comparison(
    bundle: RunBundle,
    output_dir: Path,
    configs: list[ModelRunConfig] | None = None,
) -> ComparisonResult:
    reports = reports_dir(output_dir, create=True)
    configs = default_run_configs() if configs is None else [check_run_config(c) for c in configs]
    names = [c.model for c in configs]
    if len(set(names)) != len(names):
        raise InvalidArgument(f"Duplicate model configs: {names}")

    y = bundle.dataset.targets
    outcomes: list[ModelOutcome] = []
    for config in configs:
        logger.info("Evaluating %s with %s", config.model, dict(config.hyperparameters))
        try:
            outcomes.append(evaluate_model(bundle, config))
        except MetricsError as exc:
            logger.error("%s: metrics failed: %s", config.model, exc)
            outcomes.append(
                ModelOutcome(config=config, status=RunStatus.FAILED, error=str(exc))
            )

    comparison_cols = [
        "model",
        "status",
        "config_hash",
        "hyperparameters",
        "threshold",
        "TP",
        "FP",
        "TN",
        "FN",
        "TPR",
        "TNR",
        "FPR",
        "precision",
        "accuracy",
        "AUC",
        "optimal_threshold",
        "optimal_balanced_accuracy",
        "TPR_at_optimal",
        "TNR_at_optimal",
        "precision_at_optimal",
        "accuracy_at_optimal",
        "undefined",
        "failed_fold",
        "error",
    ]
    comparison = pd.DataFrame([_comparison_row(y, o) for o in outcomes], columns=comparison_cols)
    comparison["failed_fold"] = comparison["failed_fold"].astype("Int64")
    write_report(comparison, reports / ArtifactName.MODEL_COMPARISON)

    oof = bundle.dataset.to_frame()[["obs_id", "class_label", "is_target"]]
    oof = oof.assign(fold=bundle.assignment.folds)
    for o in outcomes:
        oof[o.config.model] = np.nan if o.scores is None else o.scores.values
    write_report(oof, reports / ArtifactName.OOF_SCORES)

    write_report(_roc_frame(outcomes), reports / ArtifactName.ROC_CURVES)
    write_report(
        fold_records_frame([o.scores for o in outcomes if o.scores is not None]),
        reports / ArtifactName.CV_FOLDS,
    )

    update_manifest(
        reports / ArtifactName.MANIFEST,
        thresholds={o.config.model: o.config.threshold for o in outcomes},
        run_configs={o.config.model: o.config.to_payload() for o in outcomes},
        model_status={
            o.config.model: {
                "status": o.status,
                "failed_fold": o.failed_fold,
                "error": o.error,
                "AUC": None if o.summary is None else o.summary.auc,
            }
            for o in outcomes
        },
    )
    return ComparisonResult.from_outcomes(outcomes)
