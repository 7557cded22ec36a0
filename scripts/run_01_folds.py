from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from bluetarp.common.logs import setup_logging
from bluetarp.config import N_FOLDS, SEED
from bluetarp.workflows.fold_contract import run_fold_contract


def main() -> None:
    parser = argparse.ArgumentParser(description="Runbook 01: load pixels and assign folds")
    parser.add_argument("--input", type=Path, default=Path("data/HaitiPixels.csv"))
    parser.add_argument("--output-dir", type=Path, default=Path("."))
    parser.add_argument("--seed", type=int, default=SEED)
    parser.add_argument("--n-folds", type=int, default=N_FOLDS)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)
    run_fold_contract(
        input_path=args.input,
        output_dir=args.output_dir,
        project_root=PROJECT_ROOT,
        seed=args.seed,
        n_folds=args.n_folds,
    )


if __name__ == "__main__":
    main()
