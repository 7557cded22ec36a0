from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from sklearn.metrics import auc as trapezoid_auc
from sklearn.metrics import log_loss

from bluetarp.config import OPTIMAL_TIE_ATOL
from bluetarp.errors import MetricsError


@dataclass(frozen=True)
class BinaryCounts:
    tn: int
    fp: int
    fn: int
    tp: int

    @property
    def n(self) -> int:
        return self.tn + self.fp + self.fn + self.tp


@dataclass(frozen=True)
class RocCurve:
    """ROC step curve ordered from threshold +inf down to -inf."""

    thresholds: tuple[float, ...]
    fpr: tuple[float, ...]
    tpr: tuple[float, ...]

    @property
    def points(self) -> tuple[tuple[float, float], ...]:
        return tuple(zip(self.fpr, self.tpr))


@dataclass(frozen=True)
class MetricsSummary:
    threshold: float
    tp: int
    fp: int
    tn: int
    fn: int
    tpr: float
    tnr: float
    fpr: float
    precision: float
    accuracy: float
    auc: float
    roc: RocCurve
    optimal_threshold: float
    optimal_balanced_accuracy: float
    undefined: tuple[str, ...] = ()

    @property
    def n(self) -> int:
        return self.tp + self.fp + self.tn + self.fn

    def as_row(self) -> dict[str, Any]:
        return {
            "threshold": self.threshold,
            "TP": self.tp,
            "FP": self.fp,
            "TN": self.tn,
            "FN": self.fn,
            "TPR": self.tpr,
            "TNR": self.tnr,
            "FPR": self.fpr,
            "precision": self.precision,
            "accuracy": self.accuracy,
            "AUC": self.auc,
            "optimal_threshold": self.optimal_threshold,
            "optimal_balanced_accuracy": self.optimal_balanced_accuracy,
            "undefined": ";".join(self.undefined),
        }


def _ratio(num: int, denom: int) -> float:
    if denom == 0:
        return float("nan")
    return num / denom


def confusion_counts(y_true: np.ndarray, y_pred: np.ndarray) -> BinaryCounts:
    y_true = np.asarray(y_true, dtype=int)
    y_pred = np.asarray(y_pred, dtype=int)

    tp = int(np.sum((y_true == 1) & (y_pred == 1)))
    tn = int(np.sum((y_true == 0) & (y_pred == 0)))
    fp = int(np.sum((y_true == 0) & (y_pred == 1)))
    fn = int(np.sum((y_true == 1) & (y_pred == 0)))
    return BinaryCounts(tn=tn, fp=fp, fn=fn, tp=tp)


def true_pos_rate(counts: BinaryCounts) -> float:
    return _ratio(counts.tp, counts.tp + counts.fn)


def true_neg_rate(counts: BinaryCounts) -> float:
    return _ratio(counts.tn, counts.tn + counts.fp)


def precision(counts: BinaryCounts) -> float:
    return _ratio(counts.tp, counts.tp + counts.fp)


def accuracy(counts: BinaryCounts) -> float:
    return _ratio(counts.tp + counts.tn, counts.n)


def predict_from_threshold(scores: np.ndarray, threshold: float) -> np.ndarray:
    # A score equal to the threshold is classified negative.
    return (np.asarray(scores, dtype=float) > float(threshold)).astype(int)


def candidate_thresholds(scores: np.ndarray) -> np.ndarray:
    """Distinct scores plus both infinite sentinels, in decreasing order."""
    uniq = np.unique(np.asarray(scores, dtype=float))[::-1]
    return np.concatenate((np.array([np.inf]), uniq, np.array([-np.inf])))


def _validate_inputs(y_true: Any, scores: Any) -> tuple[np.ndarray, np.ndarray]:
    y = np.asarray(y_true)
    s = np.asarray(scores, dtype=float)
    if y.ndim != 1 or s.ndim != 1:
        raise MetricsError("targets and scores must be one-dimensional")
    if y.shape != s.shape:
        raise MetricsError(f"{y.size} targets but {s.size} scores")
    if y.size == 0:
        raise MetricsError("no observations to summarize")
    if np.any(np.isnan(s)):
        raise MetricsError(f"{int(np.isnan(s).sum())} scores are NaN")
    y_int = y.astype(int)
    if not np.all(np.isin(y_int, (0, 1))) or not np.array_equal(y_int, y.astype(float)):
        raise MetricsError("targets must be 0/1 or boolean")
    return y_int, s


def roc_curve(y_true: np.ndarray, scores: np.ndarray) -> RocCurve:
    y, s = _validate_inputs(y_true, scores)
    thresholds = candidate_thresholds(s)
    pos_sorted = np.sort(s[y == 1])
    neg_sorted = np.sort(s[y == 0])
    # Rows with score > t, counted per class for every candidate at once.
    tp = pos_sorted.size - np.searchsorted(pos_sorted, thresholds, side="right")
    fp = neg_sorted.size - np.searchsorted(neg_sorted, thresholds, side="right")
    if pos_sorted.size == 0:
        tpr = np.full(thresholds.size, np.nan)
    else:
        tpr = tp / pos_sorted.size
    if neg_sorted.size == 0:
        fpr = np.full(thresholds.size, np.nan)
    else:
        fpr = fp / neg_sorted.size
    return RocCurve(
        thresholds=tuple(float(t) for t in thresholds),
        fpr=tuple(float(v) for v in fpr),
        tpr=tuple(float(v) for v in tpr),
    )


def roc_auc(curve: RocCurve) -> float:
    fpr = np.asarray(curve.fpr, dtype=float)
    tpr = np.asarray(curve.tpr, dtype=float)
    if np.any(np.isnan(fpr)) or np.any(np.isnan(tpr)):
        return float("nan")
    return float(trapezoid_auc(fpr, tpr))


def auc_score(y_true: np.ndarray, scores: np.ndarray) -> float:
    return roc_auc(roc_curve(y_true, scores))


def find_optimal_threshold(curve: RocCurve) -> tuple[float, float]:
    """Threshold maximising (TPR + TNR) / 2, lowest threshold on ties.

    Returns ``(nan, nan)`` when one class is absent.
    """
    fpr = np.asarray(curve.fpr, dtype=float)
    tpr = np.asarray(curve.tpr, dtype=float)
    if np.any(np.isnan(fpr)) or np.any(np.isnan(tpr)):
        return float("nan"), float("nan")
    balanced = 0.5 * (tpr + (1.0 - fpr))
    best = float(np.max(balanced))
    thresholds = np.asarray(curve.thresholds, dtype=float)
    # Unequal (TP, FP) pairs differ by at least 1 / (2 * n_pos * n_neg).
    tied = np.isclose(balanced, best, rtol=0.0, atol=OPTIMAL_TIE_ATOL)
    best_threshold = float(np.min(thresholds[tied]))
    return best_threshold, best


def mean_log_loss(y_true: np.ndarray, scores: np.ndarray) -> float:
    y, s = _validate_inputs(y_true, scores)
    return float(log_loss(y, s, labels=[0, 1]))


def summarize(y_true: np.ndarray, scores: np.ndarray, threshold: float) -> MetricsSummary:
    threshold = float(threshold)
    if not np.isfinite(threshold) or threshold < 0.0 or threshold > 1.0:
        raise MetricsError(f"threshold must lie in [0, 1], got {threshold}")
    y, s = _validate_inputs(y_true, scores)

    counts = confusion_counts(y, predict_from_threshold(s, threshold))
    curve = roc_curve(y, s)
    tpr = true_pos_rate(counts)
    tnr = true_neg_rate(counts)
    prec = precision(counts)
    area = roc_auc(curve)
    opt_threshold, opt_balanced = find_optimal_threshold(curve)

    undefined = [
        name
        for name, value in (
            ("TPR", tpr),
            ("TNR", tnr),
            ("precision", prec),
            ("AUC", area),
            ("optimal_threshold", opt_threshold),
        )
        if np.isnan(value)
    ]
    return MetricsSummary(
        threshold=threshold,
        tp=counts.tp,
        fp=counts.fp,
        tn=counts.tn,
        fn=counts.fn,
        tpr=tpr,
        tnr=tnr,
        fpr=_ratio(counts.fp, counts.tn + counts.fp),
        precision=prec,
        accuracy=accuracy(counts),
        auc=area,
        roc=curve,
        optimal_threshold=opt_threshold,
        optimal_balanced_accuracy=opt_balanced,
        undefined=tuple(undefined),
    )


def counts_at_threshold(y_true: np.ndarray, scores: np.ndarray, threshold: float) -> BinaryCounts:
    """Confusion counts at any threshold, including the infinite sentinels."""
    y, s = _validate_inputs(y_true, scores)
    return confusion_counts(y, predict_from_threshold(s, threshold))
