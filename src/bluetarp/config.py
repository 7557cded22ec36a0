from __future__ import annotations

from typing import Final

SEED: Final[int] = 1
N_FOLDS: Final[int] = 10

KNN_DEFAULT_NEIGHBORS: Final[int] = 5
KNN_NEIGHBORS_GRID: Final[list[int]] = [1, 3, 5, 7, 9, 11, 15, 21]

# glmnet-style lambda: penalty on the mean deviance, not on the summed loss.
RIDGE_DEFAULT_PENALTY: Final[float] = 0.001
RIDGE_PENALTY_GRID: Final[list[float]] = [1e-4, 3e-4, 1e-3, 3e-3, 1e-2, 3e-2, 1e-1]

MAX_ITER: Final[int] = 3000
COVARIANCE_EIG_TOL: Final[float] = 1e-9
OPTIMAL_TIE_ATOL: Final[float] = 1e-12

RGB_MIN: Final[int] = 0
RGB_MAX: Final[int] = 255
FEATURE_COLUMNS: Final[list[str]] = ["red", "green", "blue"]


class ClassLabel:
    BLUE_TARP = "BlueTarp"
    ROOFTOP = "Rooftop"
    SOIL = "Soil"
    VARIOUS_NON_TARP = "VariousNonTarp"
    VEGETATION = "Vegetation"

    ALL = [BLUE_TARP, ROOFTOP, SOIL, VARIOUS_NON_TARP, VEGETATION]
    TARGET = BLUE_TARP


class ModelName:
    LOGISTIC = "logistic"
    LDA = "lda"
    QDA = "qda"
    KNN = "knn"
    RIDGE_LOGISTIC = "ridge_logistic"

    ALL = [LOGISTIC, LDA, QDA, KNN, RIDGE_LOGISTIC]
    TUNED = [KNN, RIDGE_LOGISTIC]


DEFAULT_THRESHOLDS: Final[dict[str, float]] = {
    ModelName.LOGISTIC: 0.5,
    ModelName.LDA: 0.5,
    ModelName.QDA: 0.5,
    ModelName.KNN: 0.5,
    ModelName.RIDGE_LOGISTIC: 0.25,
}


class RunStatus:
    OK = "ok"
    FAILED = "failed"
    ALL = [OK, FAILED]


class TuningCriterion:
    LOG_LOSS = "mean_oof_log_loss"
    ROC_AUC = "oof_roc_auc"
    ALL = [LOG_LOSS, ROC_AUC]


class ArtifactName:
    FOLD_ASSIGNMENT = "fold_assignment.csv"
    FOLD_SIZES = "fold_sizes.csv"
    TUNING_TRACE = "tuning_trace.csv"
    MODEL_COMPARISON = "model_comparison.csv"
    OOF_SCORES = "oof_scores.csv"
    ROC_CURVES = "roc_curves.csv"
    CV_FOLDS = "cv_folds.csv"
    MANIFEST = "run_manifest.json"


REPORTS_SUBDIR: Final[str] = "reports"
MANIFEST_FLOAT_DIGITS: Final[int] = 6

REQUIRED_ARTIFACTS: Final[list[str]] = [
    ArtifactName.FOLD_ASSIGNMENT,
    ArtifactName.FOLD_SIZES,
    ArtifactName.MODEL_COMPARISON,
    ArtifactName.OOF_SCORES,
    ArtifactName.ROC_CURVES,
    ArtifactName.CV_FOLDS,
    ArtifactName.MANIFEST,
]


MANIFEST_REQUIRED_KEYS: Final[list[str]] = [
    "manifest_version",
    "git_commit",
    "git_dirty",
    "python_executable",
    "library_versions",
    "input_path",
    "input_sha256",
    "seed",
    "n_folds",
    "n_observations",
    "n_targets",
    "fold_sizes",
    "hyperparameters",
    "thresholds",
    "model_status",
]
