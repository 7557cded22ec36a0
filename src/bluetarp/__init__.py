from bluetarp.pipeline import (
    run_01_fold_contract,
    run_02_hyperparameter_search,
    run_03_model_comparison,
    run_04_artifact_audit,
)

__all__ = [
    "run_01_fold_contract",
    "run_02_hyperparameter_search",
    "run_03_model_comparison",
    "run_04_artifact_audit",
]
