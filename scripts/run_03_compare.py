from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from bluetarp.common.logs import setup_logging
from bluetarp.config import N_FOLDS, SEED, ModelName
from bluetarp.workflows.comparison import default_run_configs, run_model_comparison
from bluetarp.workflows.fold_contract import run_fold_contract
from bluetarp.workflows.tuning import run_hyperparameter_search


def _parse_thresholds(items: list[str]) -> dict[str, float]:
    out: dict[str, float] = {}
    for item in items:
        model, sep, value = item.partition("=")
        if not sep:
            raise SystemExit(f"--threshold expects MODEL=VALUE, got {item!r}")
        out[model] = float(value)
    return out


def main() -> None:
    parser = argparse.ArgumentParser(description="Runbook 03: cross-validated model comparison")
    parser.add_argument("--input", type=Path, default=Path("data/HaitiPixels.csv"))
    parser.add_argument("--output-dir", type=Path, default=Path("."))
    parser.add_argument("--seed", type=int, default=SEED)
    parser.add_argument("--n-folds", type=int, default=N_FOLDS)
    parser.add_argument("--models", nargs="+", choices=ModelName.ALL, default=list(ModelName.ALL))
    parser.add_argument("--knn-neighbors", type=int, default=None)
    parser.add_argument("--ridge-penalty", type=float, default=None)
    parser.add_argument(
        "--tune",
        action="store_true",
        help="Grid-search KNN k and ridge lambda on the same folds before the comparison.",
    )
    parser.add_argument(
        "--threshold",
        action="append",
        default=[],
        metavar="MODEL=VALUE",
        help="Decision threshold override, repeatable (e.g. ridge_logistic=0.25).",
    )
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

    hyperparameters: dict[str, dict] = {}
    if args.tune:
        tuned = [m for m in ModelName.TUNED if m in args.models]
        hyperparameters.update(run_hyperparameter_search(bundle, args.output_dir, models=tuned))
    if args.knn_neighbors is not None:
        hyperparameters[ModelName.KNN] = {"n_neighbors": args.knn_neighbors}
    if args.ridge_penalty is not None:
        hyperparameters[ModelName.RIDGE_LOGISTIC] = {"penalty": args.ridge_penalty}
    hyperparameters = {m: p for m, p in hyperparameters.items() if m in args.models}

    configs = default_run_configs(
        args.models,
        hyperparameters=hyperparameters,
        thresholds=_parse_thresholds(args.threshold),
    )
    result = run_model_comparison(bundle, args.output_dir, configs)
    if result.failed:
        print(f"FAILED: {', '.join(result.failed)}")


if __name__ == "__main__":
    main()
