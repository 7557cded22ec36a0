from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from bluetarp.config import ModelName
from bluetarp.cv import assign_folds, cross_validate
from bluetarp.errors import FitError, InvalidArgument
from bluetarp.io import Dataset, dataset_from_frame
from bluetarp.models import ModelAdapter, get_adapter


def _unique_pixel_dataset(n: int = 120) -> Dataset:
    i = np.arange(n)
    frame = pd.DataFrame(
        {
            "Class": np.where(i % 4 == 0, "BlueTarp", "Soil"),
            "Red": i % 256,
            "Green": (i * 7) % 256,
            "Blue": (i * 13 + 5) % 256,
        }
    )
    return dataset_from_frame(frame)


def _train_only_adapter() -> ModelAdapter:
    """Scores 1.0 for any test row that also appeared in training."""

    def fit(x_train, y_train, hyperparameters):
        return {tuple(row) for row in x_train.tolist()}

    def predict(handle, x_test):
        return np.array([1.0 if tuple(row) in handle else 0.0 for row in x_test.tolist()])

    return ModelAdapter("train_only", fit, predict)


def test_every_observation_scored_exactly_once_out_of_fold() -> None:
    dataset = _unique_pixel_dataset()
    assignment = assign_folds(dataset.n, n_folds=10, seed=42)
    scores = cross_validate(dataset, assignment, _train_only_adapter())

    assert scores.n == dataset.n
    assert not np.any(np.isnan(scores.values))
    assert np.all(scores.values == 0.0)
    assert sum(rec.test_n for rec in scores.folds) == dataset.n
    assert [rec.fold for rec in scores.folds] == list(range(1, 11))
    for rec in scores.folds:
        assert rec.train_n + rec.test_n == dataset.n


def test_scores_land_on_their_own_observation() -> None:
    dataset = _unique_pixel_dataset(50)
    assignment = assign_folds(dataset.n, n_folds=5, seed=3)

    def predict(handle, x_test):
        # Red encodes obs_id - 1 for this dataset.
        return x_test[:, 0] / 255.0

    adapter = ModelAdapter("echo", lambda x, y, h: None, predict)
    scores = cross_validate(dataset, assignment, adapter)
    assert np.allclose(scores.values * 255.0, dataset.features[:, 0])


def test_real_models_fill_full_vector(pixel_dataset: Dataset) -> None:
    assignment = assign_folds(pixel_dataset.n, n_folds=5, seed=1)
    for model in [ModelName.LOGISTIC, ModelName.KNN]:
        scores = cross_validate(pixel_dataset, assignment, get_adapter(model), {"n_neighbors": 3})
        assert scores.values.shape == (pixel_dataset.n,)
        assert np.all((scores.values >= 0.0) & (scores.values <= 1.0))
        assert not scores.values.flags.writeable


def test_degenerate_fold_aborts_with_fold_index() -> None:
    frame = pd.DataFrame(
        {
            "Class": ["BlueTarp"] + ["Vegetation"] * 29,
            "Red": np.arange(30),
            "Green": np.arange(30) * 2,
            "Blue": 255 - np.arange(30),
        }
    )
    dataset = dataset_from_frame(frame)
    assignment = assign_folds(dataset.n, n_folds=3, seed=0)

    with pytest.raises(FitError) as excinfo:
        cross_validate(dataset, assignment, get_adapter(ModelName.LOGISTIC))
    assert excinfo.value.fold == assignment.fold_of(1)
    assert excinfo.value.model == ModelName.LOGISTIC


def test_malformed_predictions_are_fit_errors() -> None:
    dataset = _unique_pixel_dataset(40)
    assignment = assign_folds(dataset.n, n_folds=4, seed=2)

    too_high = ModelAdapter("too_high", lambda x, y, h: None, lambda h, x: np.full(len(x), 1.5))
    with pytest.raises(FitError, match="outside"):
        cross_validate(dataset, assignment, too_high)

    short = ModelAdapter("short", lambda x, y, h: None, lambda h, x: np.zeros(len(x) - 1))
    with pytest.raises(FitError) as excinfo:
        cross_validate(dataset, assignment, short)
    assert excinfo.value.fold == 1


def test_library_errors_wrapped_with_fold() -> None:
    dataset = _unique_pixel_dataset(40)
    assignment = assign_folds(dataset.n, n_folds=4, seed=2)

    def boom(x, y, h):
        raise np.linalg.LinAlgError("Singular matrix")

    with pytest.raises(FitError) as excinfo:
        cross_validate(dataset, assignment, ModelAdapter("boom", boom, lambda h, x: x))
    assert excinfo.value.fold == 1
    assert isinstance(excinfo.value.__cause__, np.linalg.LinAlgError)


def test_bad_hyperparameters_are_invalid_arguments(pixel_dataset: Dataset) -> None:
    assignment = assign_folds(pixel_dataset.n, n_folds=3, seed=1)
    with pytest.raises(InvalidArgument):
        cross_validate(pixel_dataset, assignment, get_adapter(ModelName.KNN), {"n_neighbors": 0})


def test_assignment_size_must_match_dataset(pixel_dataset: Dataset) -> None:
    assignment = assign_folds(pixel_dataset.n - 1, n_folds=3, seed=1)
    with pytest.raises(InvalidArgument):
        cross_validate(pixel_dataset, assignment, get_adapter(ModelName.LDA))
