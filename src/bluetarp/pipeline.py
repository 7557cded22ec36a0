from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from bluetarp.artifacts import ValidationResult
from bluetarp.config import N_FOLDS, SEED
from bluetarp.types import ComparisonResult, RunBundle
from bluetarp.workflows import (
    default_run_configs,
    run_artifact_audit,
    run_fold_contract,
    run_hyperparameter_search,
    run_model_comparison,
)


def run_01_fold_contract(
    input_path: Path,
    output_dir: Path,
    project_root: Path,
    seed: int = SEED,
    n_folds: int = N_FOLDS,
) -> RunBundle:
    return run_fold_contract(input_path, output_dir, project_root, seed=seed, n_folds=n_folds)


def run_02_hyperparameter_search(
    bundle: RunBundle,
    output_dir: Path,
    models: list[str] | None = None,
    ridge_grid: list[float] | None = None,
    knn_grid: list[int] | None = None,
) -> dict[str, dict[str, Any]]:
    return run_hyperparameter_search(
        bundle, output_dir, models=models, ridge_grid=ridge_grid, knn_grid=knn_grid
    )


def run_03_model_comparison(
    bundle: RunBundle,
    output_dir: Path,
    models: list[str] | None = None,
    hyperparameters: Mapping[str, Mapping[str, Any]] | None = None,
    thresholds: Mapping[str, float] | None = None,
) -> ComparisonResult:
    configs = default_run_configs(models, hyperparameters=hyperparameters, thresholds=thresholds)
    return run_model_comparison(bundle, output_dir, configs)


def run_04_artifact_audit(output_dir: Path) -> ValidationResult:
    return run_artifact_audit(output_dir)
