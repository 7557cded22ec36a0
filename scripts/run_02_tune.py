from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from bluetarp.common.logs import setup_logging
from bluetarp.config import KNN_NEIGHBORS_GRID, N_FOLDS, RIDGE_PENALTY_GRID, SEED, ModelName
from bluetarp.workflows.fold_contract import run_fold_contract
from bluetarp.workflows.tuning import run_hyperparameter_search


def main() -> None:
    parser = argparse.ArgumentParser(description="Runbook 02: grid search for KNN k and ridge lambda")
    parser.add_argument("--input", type=Path, default=Path("data/HaitiPixels.csv"))
    parser.add_argument("--output-dir", type=Path, default=Path("."))
    parser.add_argument("--seed", type=int, default=SEED)
    parser.add_argument("--n-folds", type=int, default=N_FOLDS)
    parser.add_argument(
        "--models",
        nargs="+",
        choices=ModelName.TUNED,
        default=list(ModelName.TUNED),
    )
    parser.add_argument("--ridge-grid", type=float, nargs="+", default=list(RIDGE_PENALTY_GRID))
    parser.add_argument("--knn-grid", type=int, nargs="+", default=list(KNN_NEIGHBORS_GRID))
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)
    bundle = run_fold_contract(
        input_path=args.input,
        output_dir=args.output_dir,
        project_root=PROJECT_ROOT,
        seed=args.seed,
        n_folds=args.n_folds,
    )
    chosen = run_hyperparameter_search(
        bundle,
        args.output_dir,
        models=args.models,
        ridge_grid=args.ridge_grid,
        knn_grid=args.knn_grid,
    )
    for model, params in sorted(chosen.items()):
        print(f"{model}: {params}")


if __name__ == "__main__":
    main()
