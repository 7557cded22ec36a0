from __future__ import annotations

from pathlib import Path

import pandas as pd

from bluetarp.artifacts import (
    ValidationResult,
    read_manifest,
    reports_dir,
    validate_required_artifacts,
    validate_schema_and_logic,
)
from bluetarp.config import ArtifactName, RunStatus
from bluetarp.qa import validate_comparison_artifacts, validate_fold_assignment


def run_artifact_audit(output_dir: Path) -> ValidationResult:
    reports = reports_dir(output_dir)
    errors: list[str] = []
    errors.extend(validate_required_artifacts(output_dir=output_dir))
    schema = validate_schema_and_logic(output_dir=output_dir)
    errors.extend(schema.errors)

    manifest_path = reports / ArtifactName.MANIFEST
    if not manifest_path.exists():
        # Row counts and fold numbers come from the manifest.
        return ValidationResult(ok=False, errors=errors)
    manifest = read_manifest(manifest_path)
    n_observations = int(manifest["n_observations"])
    n_folds = int(manifest["n_folds"])

    fold_path = reports / ArtifactName.FOLD_ASSIGNMENT
    if fold_path.exists():
        try:
            validate_fold_assignment(pd.read_csv(fold_path), n_folds, n_observations)
        except ValueError as exc:
            errors.append(str(exc))

    comparison_path = reports / ArtifactName.MODEL_COMPARISON
    oof_path = reports / ArtifactName.OOF_SCORES
    roc_path = reports / ArtifactName.ROC_CURVES
    if comparison_path.exists() and oof_path.exists() and roc_path.exists():
        comparison = pd.read_csv(comparison_path)
        try:
            validate_comparison_artifacts(
                comparison_df=comparison,
                oof_df=pd.read_csv(oof_path),
                roc_df=pd.read_csv(roc_path),
                n_observations=n_observations,
            )
        except ValueError as exc:
            errors.append(str(exc))

        status = manifest.get("model_status") or {}
        for _, row in comparison.iterrows():
            recorded = status.get(str(row["model"]), {}).get("status")
            if recorded != row["status"]:
                errors.append(
                    f"manifest status for {row['model']} is {recorded}, comparison says {row['status']}"
                )
        if not (comparison["status"] == RunStatus.OK).any():
            errors.append("no model completed its evaluation")

    return ValidationResult(ok=len(errors) == 0, errors=errors)
