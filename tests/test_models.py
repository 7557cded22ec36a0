from __future__ import annotations

import numpy as np
import pytest

from bluetarp.config import ModelName
from bluetarp.errors import FitError, InvalidArgument
from bluetarp.io import Dataset
from bluetarp.models import (
    fit_knn,
    fit_lda,
    fit_qda,
    get_adapter,
    predict_knn_score,
    ridge_c_value,
    validate_hyperparameters,
)


@pytest.mark.parametrize("model", ModelName.ALL)
def test_adapters_score_in_unit_interval(model: str, pixel_dataset: Dataset) -> None:
    adapter = get_adapter(model)
    x = pixel_dataset.features
    y = pixel_dataset.targets
    handle = adapter.fit(x[:200], y[:200], {})
    scores = adapter.predict_score(handle, x[200:])
    assert scores.shape == (x.shape[0] - 200,)
    assert np.all((scores >= 0.0) & (scores <= 1.0))


@pytest.mark.parametrize("model", ModelName.ALL)
def test_missing_class_is_fit_error(model: str) -> None:
    x = np.arange(30, dtype=float).reshape(10, 3)
    y = np.zeros(10, dtype=int)
    with pytest.raises(FitError):
        get_adapter(model).fit(x, y, {})


def test_knn_one_neighbor_copies_duplicate_label() -> None:
    x_train = np.array([[10, 20, 200], [200, 180, 90], [15, 25, 210], [120, 110, 100]], dtype=float)
    y_train = np.array([1, 0, 1, 0])
    handle = fit_knn(x_train, y_train, {"n_neighbors": 1})
    scores = predict_knn_score(handle, x_train.copy())
    assert np.array_equal(scores, y_train.astype(float))


def test_knn_distance_ties_follow_training_order() -> None:
    x_test = np.array([[1.0, 0.0, 0.0]])
    x_train = np.array([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0], [50.0, 50.0, 50.0]])
    first_target = fit_knn(x_train, np.array([1, 0, 0]), {"n_neighbors": 1})
    first_other = fit_knn(x_train, np.array([0, 1, 1]), {"n_neighbors": 1})
    assert predict_knn_score(first_target, x_test)[0] == 1.0
    assert predict_knn_score(first_other, x_test)[0] == 0.0


def test_knn_vote_fraction() -> None:
    x_train = np.array([[0.0, 0, 0], [1.0, 0, 0], [2.0, 0, 0], [100.0, 0, 0]])
    handle = fit_knn(x_train, np.array([1, 0, 1, 0]), {"n_neighbors": 2})
    # Split vote scores exactly 0.5, which a 0.5 threshold calls negative.
    assert predict_knn_score(handle, np.array([[0.4, 0, 0]]))[0] == 0.5
    handle3 = fit_knn(x_train, np.array([1, 0, 1, 0]), {"n_neighbors": 3})
    assert predict_knn_score(handle3, np.array([[0.4, 0, 0]]))[0] == pytest.approx(2 / 3)


@pytest.mark.parametrize("k", [0, -1, 2.5, True])
def test_knn_rejects_bad_neighbor_count(k) -> None:
    x = np.arange(12, dtype=float).reshape(4, 3)
    with pytest.raises(InvalidArgument):
        fit_knn(x, np.array([0, 1, 0, 1]), {"n_neighbors": k})


def test_knn_more_neighbors_than_rows_is_fit_error() -> None:
    x = np.arange(12, dtype=float).reshape(4, 3)
    with pytest.raises(FitError):
        fit_knn(x, np.array([0, 1, 0, 1]), {"n_neighbors": 5})


def test_qda_singular_class_covariance() -> None:
    rng = np.random.default_rng(0)
    x = rng.normal(100, 20, size=(60, 3))
    y = np.array([1] * 20 + [0] * 40)
    x[:20, 2] = 255.0
    with pytest.raises(FitError, match="singular"):
        fit_qda(x, y, {})
    # Pooled covariance still has spread in every direction.
    fit_lda(x, y, {})


def test_lda_collinear_features_rejected() -> None:
    rng = np.random.default_rng(1)
    x = rng.normal(100, 20, size=(50, 3))
    x[:, 2] = x[:, 0] + x[:, 1]
    y = np.array([1, 0] * 25)
    with pytest.raises(FitError):
        fit_lda(x, y, {})


def test_ridge_penalty_validation_and_scaling() -> None:
    assert ridge_c_value(0.01, 1000) == pytest.approx(0.1)
    adapter = get_adapter(ModelName.RIDGE_LOGISTIC)
    x = np.arange(30, dtype=float).reshape(10, 3)
    y = np.array([0, 1] * 5)
    with pytest.raises(InvalidArgument):
        adapter.fit(x, y, {"penalty": 0.0})


def test_stronger_ridge_penalty_shrinks_scores(pixel_dataset: Dataset) -> None:
    adapter = get_adapter(ModelName.RIDGE_LOGISTIC)
    x, y = pixel_dataset.features, pixel_dataset.targets
    weak = adapter.predict_score(adapter.fit(x, y, {"penalty": 1e-4}), x)
    strong = adapter.predict_score(adapter.fit(x, y, {"penalty": 10.0}), x)
    prior = y.mean()
    assert np.mean(np.abs(strong - prior)) < np.mean(np.abs(weak - prior))


def test_unknown_model_name() -> None:
    with pytest.raises(InvalidArgument):
        get_adapter("random_forest")


def test_hyperparameters_filled_with_defaults() -> None:
    assert validate_hyperparameters(ModelName.KNN, {}) == {"n_neighbors": 5}
    assert validate_hyperparameters(ModelName.RIDGE_LOGISTIC, {"penalty": 0.01}) == {"penalty": 0.01}
    assert validate_hyperparameters(ModelName.LDA, {}) == {}


@pytest.mark.parametrize(
    "model,params",
    [
        (ModelName.KNN, {"k": 3}),
        (ModelName.KNN, {"n_neighbors": 0}),
        (ModelName.KNN, {"n_neighbors": "five"}),
        (ModelName.RIDGE_LOGISTIC, {"penalty": -1.0}),
        (ModelName.RIDGE_LOGISTIC, {"penalty": "strong"}),
        (ModelName.LOGISTIC, {"penalty": 0.1}),
        ("svm", {}),
    ],
)
def test_bad_hyperparameters_rejected(model: str, params: dict) -> None:
    with pytest.raises(InvalidArgument):
        validate_hyperparameters(model, params)
