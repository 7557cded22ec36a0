from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

import numpy as np
from scipy.linalg import eigvalsh
from sklearn.discriminant_analysis import (
    LinearDiscriminantAnalysis,
    QuadraticDiscriminantAnalysis,
)
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import pairwise_distances_chunked
from sklearn.pipeline import Pipeline, make_pipeline
from sklearn.preprocessing import StandardScaler

from bluetarp.config import (
    COVARIANCE_EIG_TOL,
    KNN_DEFAULT_NEIGHBORS,
    MAX_ITER,
    RIDGE_DEFAULT_PENALTY,
    ModelName,
)
from bluetarp.errors import FitError, InvalidArgument

FitFn = Callable[[np.ndarray, np.ndarray, dict[str, Any]], Any]
PredictFn = Callable[[Any, np.ndarray], np.ndarray]


@dataclass(frozen=True)
class ModelAdapter:
    """Variant tag plus the fit/predict pair the cross-validator drives."""

    name: str
    fit: FitFn
    predict_score: PredictFn


def _require_both_classes(y_train: np.ndarray) -> np.ndarray:
    y = np.asarray(y_train, dtype=int)
    n_pos = int(np.sum(y == 1))
    n_neg = int(np.sum(y == 0))
    if n_pos == 0 or n_neg == 0:
        raise FitError(f"training data has {n_pos} target and {n_neg} non-target rows")
    return y


def _require_nonsingular(cov: np.ndarray, what: str) -> None:
    eig = eigvalsh(np.atleast_2d(cov))
    if eig.min() <= COVARIANCE_EIG_TOL * max(1.0, float(eig.max())):
        raise FitError(f"singular covariance for {what} (min eigenvalue {eig.min():.3g})")


def _positive_class_proba(clf: Any, x_eval: np.ndarray) -> np.ndarray:
    classes = list(clf.classes_)
    return np.asarray(clf.predict_proba(x_eval)[:, classes.index(1)], dtype=float)


def make_logistic_classifier() -> LogisticRegression:
    # C=inf switches the L2 term off.
    return LogisticRegression(C=np.inf, solver="lbfgs", max_iter=MAX_ITER)


def fit_logistic(
    x_train: np.ndarray, y_train: np.ndarray, hyperparameters: dict[str, Any]
) -> LogisticRegression:
    y = _require_both_classes(y_train)
    clf = make_logistic_classifier()
    clf.fit(x_train, y)
    return clf


def fit_lda(
    x_train: np.ndarray, y_train: np.ndarray, hyperparameters: dict[str, Any]
) -> LinearDiscriminantAnalysis:
    y = _require_both_classes(y_train)
    centered = np.vstack([x_train[y == c] - x_train[y == c].mean(axis=0) for c in (0, 1)])
    if centered.shape[0] <= x_train.shape[1] + 1:
        raise FitError("too few rows to estimate the pooled covariance")
    _require_nonsingular(np.cov(centered, rowvar=False), "pooled classes")
    clf = LinearDiscriminantAnalysis(solver="svd")
    clf.fit(x_train, y)
    return clf


def fit_qda(
    x_train: np.ndarray, y_train: np.ndarray, hyperparameters: dict[str, Any]
) -> QuadraticDiscriminantAnalysis:
    y = _require_both_classes(y_train)
    for c in (0, 1):
        x_c = x_train[y == c]
        if x_c.shape[0] <= x_train.shape[1]:
            raise FitError(f"class {c} has {x_c.shape[0]} rows, too few for its covariance")
        _require_nonsingular(np.cov(x_c, rowvar=False), f"class {c}")
    clf = QuadraticDiscriminantAnalysis()
    clf.fit(x_train, y)
    return clf


def predict_proba_score(handle: Any, x_eval: np.ndarray) -> np.ndarray:
    return _positive_class_proba(handle, x_eval)


def ridge_c_value(penalty: float, n_train: int) -> float:
    """Translate a glmnet-style lambda into scikit-learn's inverse strength C.

    glmnet minimises ``-loglik / n + lambda / 2 * ||w||^2`` while
    ``LogisticRegression`` minimises ``C * -loglik + 1/2 * ||w||^2``, so the
    two agree when ``C = 1 / (n * lambda)``.
    """
    return 1.0 / (float(n_train) * float(penalty))


def _ridge_penalty(hyperparameters: dict[str, Any]) -> float:
    raw = hyperparameters.get("penalty", RIDGE_DEFAULT_PENALTY)
    try:
        penalty = float(raw)
    except (TypeError, ValueError):
        raise InvalidArgument(f"ridge penalty must be a number, got {raw!r}") from None
    if not np.isfinite(penalty) or penalty <= 0.0:
        raise InvalidArgument(f"ridge penalty must be a positive finite number, got {penalty}")
    return penalty


def make_ridge_classifier(penalty: float, n_train: int) -> Pipeline:
    return make_pipeline(
        StandardScaler(),
        LogisticRegression(
            C=ridge_c_value(penalty, n_train),
            solver="lbfgs",
            max_iter=MAX_ITER,
        ),
    )


def fit_ridge_logistic(
    x_train: np.ndarray, y_train: np.ndarray, hyperparameters: dict[str, Any]
) -> Pipeline:
    penalty = _ridge_penalty(hyperparameters)
    y = _require_both_classes(y_train)
    clf = make_ridge_classifier(penalty, n_train=x_train.shape[0])
    clf.fit(x_train, y)
    return clf


@dataclass(frozen=True)
class KnnHandle:
    x_train: np.ndarray
    y_train: np.ndarray
    n_neighbors: int


def _knn_neighbors(hyperparameters: dict[str, Any]) -> int:
    k = hyperparameters.get("n_neighbors", KNN_DEFAULT_NEIGHBORS)
    try:
        valid = not isinstance(k, bool) and int(k) == k and int(k) >= 1
    except (TypeError, ValueError, OverflowError):
        valid = False
    if not valid:
        raise InvalidArgument(f"n_neighbors must be a positive integer, got {k!r}")
    return int(k)


def fit_knn(x_train: np.ndarray, y_train: np.ndarray, hyperparameters: dict[str, Any]) -> KnnHandle:
    k = _knn_neighbors(hyperparameters)
    y = _require_both_classes(y_train)
    if k > x_train.shape[0]:
        raise FitError(f"n_neighbors={k} exceeds {x_train.shape[0]} training rows")
    return KnnHandle(
        x_train=np.asarray(x_train, dtype=float),
        y_train=y,
        n_neighbors=k,
    )


def _nearest_target_fraction(dist_chunk: np.ndarray, y_train: np.ndarray, k: int) -> np.ndarray:
    kth = np.partition(dist_chunk, k - 1, axis=1)[:, k - 1]
    out = np.empty(dist_chunk.shape[0], dtype=float)
    for i, row in enumerate(dist_chunk):
        # Candidates come back in training order; a stable sort keeps it on ties.
        cand = np.flatnonzero(row <= kth[i])
        nearest = cand[np.argsort(row[cand], kind="stable")[:k]]
        out[i] = float(np.mean(y_train[nearest]))
    return out


def predict_knn_score(handle: KnnHandle, x_eval: np.ndarray) -> np.ndarray:
    if len(x_eval) == 0:
        return np.empty(0, dtype=float)
    chunks = pairwise_distances_chunked(
        np.asarray(x_eval, dtype=float),
        handle.x_train,
        metric="euclidean",
        reduce_func=lambda d_chunk, start: _nearest_target_fraction(
            d_chunk, handle.y_train, handle.n_neighbors
        ),
    )
    return np.concatenate(list(chunks))


ADAPTERS: dict[str, ModelAdapter] = {
    ModelName.LOGISTIC: ModelAdapter(ModelName.LOGISTIC, fit_logistic, predict_proba_score),
    ModelName.LDA: ModelAdapter(ModelName.LDA, fit_lda, predict_proba_score),
    ModelName.QDA: ModelAdapter(ModelName.QDA, fit_qda, predict_proba_score),
    ModelName.KNN: ModelAdapter(ModelName.KNN, fit_knn, predict_knn_score),
    ModelName.RIDGE_LOGISTIC: ModelAdapter(
        ModelName.RIDGE_LOGISTIC, fit_ridge_logistic, predict_proba_score
    ),
}


def get_adapter(name: str) -> ModelAdapter:
    try:
        return ADAPTERS[name]
    except KeyError:
        raise InvalidArgument(f"Unknown model {name!r}, expected one of {ModelName.ALL}") from None


_HYPERPARAMETER_CHECKS: dict[str, dict[str, Callable[[dict[str, Any]], Any]]] = {
    ModelName.KNN: {"n_neighbors": _knn_neighbors},
    ModelName.RIDGE_LOGISTIC: {"penalty": _ridge_penalty},
}


def validate_hyperparameters(model: str, hyperparameters: Mapping[str, Any]) -> dict[str, Any]:
    """Return the model's hyperparameters with defaults filled in.

    Raises ``InvalidArgument`` for an unknown model, an unknown key or a bad value,
    so a run can be rejected before anything is fitted.
    """
    get_adapter(model)
    checks = _HYPERPARAMETER_CHECKS.get(model, {})
    unknown = sorted(set(hyperparameters) - set(checks))
    if unknown:
        raise InvalidArgument(
            f"{model}: unknown hyperparameter(s) {unknown}, expected {sorted(checks)}"
        )
    params = dict(hyperparameters)
    return {name: check(params) for name, check in checks.items()}
