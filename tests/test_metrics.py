from __future__ import annotations

import numpy as np
import pytest

from bluetarp.errors import MetricsError
from bluetarp.metrics import (
    counts_at_threshold,
    find_optimal_threshold,
    roc_curve,
    summarize,
    true_neg_rate,
    true_pos_rate,
)


def _three_of_ten() -> tuple[np.ndarray, np.ndarray]:
    y = np.array([1, 1, 1, 0, 0, 0, 0, 0, 0, 0])
    scores = np.where(y == 1, 0.9, 0.1)
    return y, scores


def test_perfect_separation_scenario() -> None:
    y, scores = _three_of_ten()
    summary = summarize(y, scores, threshold=0.5)

    assert (summary.tp, summary.fp, summary.tn, summary.fn) == (3, 0, 7, 0)
    assert summary.accuracy == 1.0
    assert summary.auc == 1.0
    assert summary.tpr == 1.0
    assert summary.tnr == 1.0
    assert summary.precision == 1.0
    assert summary.undefined == ()


def test_summarize_is_idempotent() -> None:
    rng = np.random.default_rng(3)
    y = (rng.random(200) < 0.3).astype(int)
    scores = np.clip(0.3 * y + rng.random(200) * 0.7, 0.0, 1.0)
    assert summarize(y, scores, 0.4) == summarize(y, scores, 0.4)


def test_score_equal_to_threshold_is_negative() -> None:
    y = np.array([1, 0, 1, 0])
    scores = np.array([0.5, 0.5, 0.8, 0.2])
    summary = summarize(y, scores, threshold=0.5)
    assert (summary.tp, summary.fp, summary.tn, summary.fn) == (1, 0, 2, 1)


def test_roc_is_monotone_with_sentinel_endpoints() -> None:
    rng = np.random.default_rng(11)
    y = (rng.random(500) < 0.2).astype(int)
    scores = np.round(rng.random(500) * 0.5 + 0.4 * y, 2)
    curve = roc_curve(y, scores)

    assert curve.thresholds[0] == np.inf
    assert curve.thresholds[-1] == -np.inf
    assert np.all(np.diff(curve.fpr) >= 0)
    assert np.all(np.diff(curve.tpr) >= 0)
    assert curve.points[0] == (0.0, 0.0)
    assert curve.points[-1] == (1.0, 1.0)


def test_infinite_thresholds_classify_everything_one_way() -> None:
    y, scores = _three_of_ten()
    none_flagged = counts_at_threshold(y, scores, np.inf)
    all_flagged = counts_at_threshold(y, scores, -np.inf)
    assert (none_flagged.tp, none_flagged.fp) == (0, 0)
    assert (all_flagged.tn, all_flagged.fn) == (0, 0)


def test_auc_matches_sklearn_on_ties() -> None:
    from sklearn.metrics import roc_auc_score

    rng = np.random.default_rng(5)
    y = (rng.random(300) < 0.4).astype(int)
    scores = np.round(rng.random(300) * 0.6 + 0.3 * y, 1)
    summary = summarize(y, scores, 0.5)
    assert np.isclose(summary.auc, roc_auc_score(y, scores))


def test_optimal_threshold_prefers_lower_value_on_ties() -> None:
    y = np.array([1, 0, 1, 0])
    scores = np.array([0.9, 0.7, 0.5, 0.3])
    threshold, balanced = find_optimal_threshold(roc_curve(y, scores))
    # 0.7 and 0.3 both give (TPR + TNR) / 2 = 0.75.
    assert threshold == 0.3
    assert balanced == pytest.approx(0.75)


def test_optimal_threshold_not_moved_by_single_false_positive() -> None:
    # One extra false positive among ~61k negatives costs ~8e-6 balanced accuracy.
    y = np.r_[np.ones(2022, dtype=int), np.zeros(61219, dtype=int)]
    scores = np.r_[np.full(2022, 0.9), np.full(61219, 0.1)]
    scores[2022] = 0.5
    curve = roc_curve(y, scores)
    threshold, balanced = find_optimal_threshold(curve)

    assert threshold == 0.5
    assert balanced == 1.0
    counts = counts_at_threshold(y, scores, threshold)
    assert 0.5 * (true_pos_rate(counts) + true_neg_rate(counts)) == balanced


def test_precision_undefined_without_positive_calls() -> None:
    y = np.array([1, 0, 0])
    scores = np.array([0.3, 0.2, 0.1])
    summary = summarize(y, scores, threshold=0.9)
    assert summary.tp + summary.fp == 0
    assert np.isnan(summary.precision)
    assert "precision" in summary.undefined


def test_single_class_rates_flagged_not_zeroed() -> None:
    y = np.zeros(5, dtype=int)
    scores = np.linspace(0.1, 0.5, 5)
    summary = summarize(y, scores, threshold=0.3)
    assert np.isnan(summary.tpr)
    assert np.isnan(summary.auc)
    assert np.isnan(summary.optimal_threshold)
    assert {"TPR", "AUC", "optimal_threshold"}.issubset(summary.undefined)
    assert summary.tnr == pytest.approx(3 / 5)


@pytest.mark.parametrize("threshold", [-0.1, 1.5, np.inf, np.nan])
def test_threshold_outside_unit_interval_rejected(threshold: float) -> None:
    y, scores = _three_of_ten()
    with pytest.raises(MetricsError):
        summarize(y, scores, threshold)


def test_mismatched_or_nan_inputs_rejected() -> None:
    y, scores = _three_of_ten()
    with pytest.raises(MetricsError):
        summarize(y[:-1], scores, 0.5)
    bad = scores.copy()
    bad[0] = np.nan
    with pytest.raises(MetricsError):
        summarize(y, bad, 0.5)
