from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

import numpy as np
import pandas as pd

from bluetarp.config import (
    MANIFEST_FLOAT_DIGITS,
    MANIFEST_REQUIRED_KEYS,
    REPORTS_SUBDIR,
    REQUIRED_ARTIFACTS,
    ArtifactName,
    ModelName,
    RunStatus,
    TuningCriterion,
)

logger = logging.getLogger(__name__)

COMPARISON_REQUIRED_COLUMNS = [
    "model",
    "status",
    "threshold",
    "TP",
    "FP",
    "TN",
    "FN",
    "TPR",
    "TNR",
    "AUC",
    "failed_fold",
    "error",
]
ROC_COLUMNS = ["model", "threshold", "FPR", "TPR"]
TUNING_TRACE_COLUMNS = ["model", "param_name", "param_value", "criterion", "value", "chosen"]


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    errors: list[str]


def reports_dir(output_dir: Path, create: bool = False) -> Path:
    path = Path(output_dir) / REPORTS_SUBDIR
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def write_report(df: pd.DataFrame, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    logger.debug("Wrote %s (%d rows)", path.name, len(df))


def _manifest_float(x: float) -> float | None:
    # JSON has no inf/nan; undefined metrics are stored as null.
    if not np.isfinite(x):
        return None
    return float(np.format_float_positional(
        x, precision=MANIFEST_FLOAT_DIGITS, unique=False, fractional=False, trim="-"
    ))


def normalize_for_manifest(value: Any) -> Any:
    """Convert numpy scalars, arrays, tuples and paths into plain JSON values."""
    if isinstance(value, Mapping):
        return {str(k): normalize_for_manifest(v) for k, v in value.items()}
    if isinstance(value, np.ndarray):
        return normalize_for_manifest(value.tolist())
    if isinstance(value, (list, tuple)):
        return [normalize_for_manifest(v) for v in value]
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return _manifest_float(float(value))
    return str(value)


def config_hash(payload: Mapping[str, Any]) -> str:
    """Stable digest of a model run configuration (model, threshold, hyperparameters)."""
    subset = {k: payload.get(k) for k in ("model", "threshold", "hyperparameters")}
    blob = json.dumps(normalize_for_manifest(subset), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(blob.encode("ascii")).hexdigest()


def write_manifest(manifest: Mapping[str, Any], path: Path) -> None:
    payload = normalize_for_manifest(manifest)
    missing = [k for k in MANIFEST_REQUIRED_KEYS if k not in payload]
    if missing:
        raise ValueError(f"Manifest missing required keys: {missing}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, sort_keys=True, indent=2) + "\n", encoding="utf-8")


def read_manifest(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Missing manifest: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def update_manifest(path: Path, **updates: Any) -> dict[str, Any]:
    manifest = read_manifest(path)
    manifest.update(updates)
    write_manifest(manifest, path)
    return manifest


def validate_required_artifacts(output_dir: Path) -> list[str]:
    reports = reports_dir(output_dir)
    return [f"missing artifact: {name}" for name in REQUIRED_ARTIFACTS if not (reports / name).exists()]


def _missing_columns(df: pd.DataFrame, columns: list[str], name: str) -> list[str]:
    return [f"{name}: missing {c}" for c in columns if c not in df.columns]


def _unexpected_values(df: pd.DataFrame, column: str, allowed: list[str], name: str) -> list[str]:
    if column not in df.columns:
        return []
    bad = sorted(set(df[column].dropna().astype(str)) - set(allowed))
    return [f"{name}: invalid {column} values {bad}"] if bad else []


def _check_comparison(df: pd.DataFrame) -> list[str]:
    name = ArtifactName.MODEL_COMPARISON
    errors = _missing_columns(df, COMPARISON_REQUIRED_COLUMNS, name)
    errors += _unexpected_values(df, "model", ModelName.ALL, name)
    errors += _unexpected_values(df, "status", RunStatus.ALL, name)
    if "model" in df.columns and df["model"].duplicated().any():
        errors.append(f"{name}: duplicate model rows")
    if {"status", "failed_fold", "error"}.issubset(df.columns):
        failed = df[df["status"] == RunStatus.FAILED]
        if (failed["failed_fold"].isna() & failed["error"].isna()).any():
            errors.append(f"{name}: failed model without failed_fold or error")
    return errors


def _check_roc(df: pd.DataFrame) -> list[str]:
    name = ArtifactName.ROC_CURVES
    errors = _missing_columns(df, ROC_COLUMNS, name)
    if errors:
        return errors
    for model, curve in df.groupby("model", sort=False):
        for col in ("FPR", "TPR"):
            if (np.diff(curve[col].to_numpy(dtype=float)) < 0).any():
                errors.append(f"{name}: model={model} {col} decreases")
    return errors


def _check_tuning_trace(df: pd.DataFrame) -> list[str]:
    name = ArtifactName.TUNING_TRACE
    errors = _missing_columns(df, TUNING_TRACE_COLUMNS, name)
    errors += _unexpected_values(df, "criterion", TuningCriterion.ALL, name)
    if {"model", "chosen"}.issubset(df.columns):
        n_chosen = df.groupby("model")["chosen"].apply(lambda s: int(s.astype(bool).sum()))
        for model, n in n_chosen.items():
            if n != 1:
                errors.append(f"{name}: model={model} has {n} chosen rows")
    return errors


_TABLE_CHECKS: dict[str, Callable[[pd.DataFrame], list[str]]] = {
    ArtifactName.MODEL_COMPARISON: _check_comparison,
    ArtifactName.ROC_CURVES: _check_roc,
    ArtifactName.TUNING_TRACE: _check_tuning_trace,
}


def validate_schema_and_logic(output_dir: Path) -> ValidationResult:
    """Column and per-table consistency checks for the tables that exist."""
    reports = reports_dir(output_dir)
    errors: list[str] = []
    for name, check in _TABLE_CHECKS.items():
        path = reports / name
        if path.exists():
            errors.extend(check(pd.read_csv(path)))
    return ValidationResult(ok=not errors, errors=errors)
