from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from bluetarp.artifacts import TUNING_TRACE_COLUMNS, reports_dir, update_manifest, write_report
from bluetarp.config import ArtifactName, ModelName
from bluetarp.errors import FitError, InvalidArgument
from bluetarp.selection.tuning import TuningResult, select_knn_neighbors, select_ridge_penalty
from bluetarp.types import RunBundle

logger = logging.getLogger(__name__)


def run_hyperparameter_search(
    bundle: RunBundle,
    output_dir: Path,
    models: list[str] | None = None,
    ridge_grid: list[float] | None = None,
    knn_grid: list[int] | None = None,
) -> dict[str, dict[str, Any]]:
    """Grid-search the tunable models on the run's folds.

    A model whose search hits a ``FitError`` is left out of the returned
    mapping, so the comparison falls back to its default hyperparameters.
    """
    reports = reports_dir(output_dir, create=True)
    models = list(ModelName.TUNED) if models is None else list(models)
    bad = set(models) - set(ModelName.TUNED)
    if bad:
        raise InvalidArgument(f"No hyperparameter search for model(s): {sorted(bad)}")

    results: list[TuningResult] = []
    errors: dict[str, str] = {}
    for model in models:
        try:
            if model == ModelName.RIDGE_LOGISTIC:
                results.append(select_ridge_penalty(bundle.dataset, bundle.assignment, ridge_grid))
            else:
                results.append(select_knn_neighbors(bundle.dataset, bundle.assignment, knn_grid))
        except FitError as exc:
            logger.warning("Hyperparameter search for %s failed: %s", model, exc)
            errors[model] = str(exc)

    trace = [row for r in results for row in r.trace]
    write_report(pd.DataFrame(trace, columns=TUNING_TRACE_COLUMNS), reports / ArtifactName.TUNING_TRACE)

    chosen = {r.model: {r.param_name: r.chosen} for r in results}
    update_manifest(
        reports / ArtifactName.MANIFEST,
        hyperparameters=chosen,
        tuning_errors=errors,
    )
    return chosen
