from __future__ import annotations

import logging
import sys
from pathlib import Path

import pandas as pd

from bluetarp.artifacts import reports_dir, write_manifest, write_report
from bluetarp.common.meta import file_sha256, git_commit_and_dirty, library_versions
from bluetarp.config import N_FOLDS, SEED, ArtifactName
from bluetarp.cv import assign_folds
from bluetarp.io import load_pixel_table
from bluetarp.types import RunBundle

logger = logging.getLogger(__name__)


def run_fold_contract(
    input_path: Path,
    output_dir: Path,
    project_root: Path,
    seed: int = SEED,
    n_folds: int = N_FOLDS,
) -> RunBundle:
    reports = reports_dir(output_dir, create=True)
    dataset = load_pixel_table(input_path)
    assignment = assign_folds(dataset.n, n_folds=n_folds, seed=seed)
    sizes = assignment.fold_sizes()
    logger.info("Assigned %d rows to %d folds (seed=%d): %s", dataset.n, n_folds, seed, sizes)

    write_report(assignment.to_frame(), reports / ArtifactName.FOLD_ASSIGNMENT)
    y = dataset.targets
    fold_rows = []
    for fold, size in sizes.items():
        idx = assignment.test_index(fold)
        fold_rows.append({"fold": fold, "n": size, "n_targets": int(y[idx].sum())})
    write_report(pd.DataFrame(fold_rows), reports / ArtifactName.FOLD_SIZES)

    input_sha = file_sha256(Path(input_path))
    commit, dirty = git_commit_and_dirty(project_root)
    manifest = {
        "manifest_version": "1.0",
        "git_commit": commit,
        "git_dirty": dirty,
        "python_executable": sys.executable,
        "library_versions": library_versions(),
        "input_path": str(input_path),
        "input_sha256": input_sha,
        "seed": seed,
        "n_folds": n_folds,
        "n_observations": dataset.n,
        "n_targets": dataset.n_targets,
        "fold_sizes": {str(k): v for k, v in sizes.items()},
        "hyperparameters": {},
        "thresholds": {},
        "model_status": {},
    }
    write_manifest(manifest, reports / ArtifactName.MANIFEST)

    return RunBundle(dataset=dataset, assignment=assignment, input_sha256=input_sha)
