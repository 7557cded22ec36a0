from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

import numpy as np

from bluetarp.config import (
    KNN_NEIGHBORS_GRID,
    RIDGE_PENALTY_GRID,
    ModelName,
    TuningCriterion,
)
from bluetarp.cv import FoldAssignment, cross_validate
from bluetarp.errors import InvalidArgument
from bluetarp.io import Dataset
from bluetarp.metrics import auc_score, mean_log_loss
from bluetarp.models import get_adapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TuningResult:
    model: str
    param_name: str
    chosen: Any
    criterion: str
    best_value: float
    trace: list[dict[str, Any]] = field(default_factory=list)


def _grid_search(
    dataset: Dataset,
    assignment: FoldAssignment,
    model: str,
    param_name: str,
    grid: list[Any],
    criterion: str,
    score_fn: Callable[[np.ndarray, np.ndarray], float],
    lower_is_better: bool,
    tie_prefers_larger: bool,
) -> TuningResult:
    if not grid:
        raise InvalidArgument(f"{model}: empty {param_name} grid")
    adapter = get_adapter(model)
    y = dataset.targets
    trace: list[dict[str, Any]] = []
    best_param: Any = None
    best_value = np.inf if lower_is_better else -np.inf

    for param in sorted(grid):
        scores = cross_validate(dataset, assignment, adapter, {param_name: param})
        value = float(score_fn(y, scores.values))
        trace.append(
            {
                "model": model,
                "param_name": param_name,
                "param_value": param,
                "criterion": criterion,
                "value": value,
            }
        )
        logger.info("%s %s=%s -> %s=%.6f", model, param_name, param, criterion, value)

        improved = value < best_value if lower_is_better else value > best_value
        if np.isclose(value, best_value):
            if tie_prefers_larger:
                improved = best_param is None or param > best_param
            else:
                improved = best_param is None or param < best_param
        if improved:
            best_param = param
            best_value = value

    if best_param is None:
        raise RuntimeError(f"{model}: failed to choose {param_name} from the grid")
    for row in trace:
        row["chosen"] = row["param_value"] == best_param
    logger.info("%s: chose %s=%s (%s=%.6f)", model, param_name, best_param, criterion, best_value)
    return TuningResult(
        model=model,
        param_name=param_name,
        chosen=best_param,
        criterion=criterion,
        best_value=float(best_value),
        trace=trace,
    )


def select_ridge_penalty(
    dataset: Dataset,
    assignment: FoldAssignment,
    grid: list[float] | None = None,
) -> TuningResult:
    """Pick the ridge lambda with the lowest out-of-fold binomial deviance.

    Every grid point is cross-validated on ``assignment``, the same folds the
    main comparison uses. Ties go to the larger (stronger) penalty.
    """
    penalties = [float(p) for p in (RIDGE_PENALTY_GRID if grid is None else grid)]
    if any(not np.isfinite(p) or p <= 0.0 for p in penalties):
        raise InvalidArgument(f"ridge penalties must be positive and finite: {penalties}")
    return _grid_search(
        dataset,
        assignment,
        model=ModelName.RIDGE_LOGISTIC,
        param_name="penalty",
        grid=penalties,
        criterion=TuningCriterion.LOG_LOSS,
        score_fn=mean_log_loss,
        lower_is_better=True,
        tie_prefers_larger=True,
    )


def select_knn_neighbors(
    dataset: Dataset,
    assignment: FoldAssignment,
    grid: list[int] | None = None,
) -> TuningResult:
    """Pick the neighbour count with the highest out-of-fold AUC, smallest k on ties."""
    ks = [int(k) for k in (KNN_NEIGHBORS_GRID if grid is None else grid)]
    if any(k < 1 for k in ks):
        raise InvalidArgument(f"neighbour counts must be >= 1: {ks}")
    return _grid_search(
        dataset,
        assignment,
        model=ModelName.KNN,
        param_name="n_neighbors",
        grid=ks,
        criterion=TuningCriterion.ROC_AUC,
        score_fn=auc_score,
        lower_is_better=False,
        tie_prefers_larger=False,
    )
