from bluetarp.workflows.audit import run_artifact_audit
from bluetarp.workflows.comparison import default_run_configs, run_model_comparison
from bluetarp.workflows.fold_contract import run_fold_contract
from bluetarp.workflows.tuning import run_hyperparameter_search

__all__ = [
    "run_fold_contract",
    "run_hyperparameter_search",
    "default_run_configs",
    "run_model_comparison",
    "run_artifact_audit",
]
