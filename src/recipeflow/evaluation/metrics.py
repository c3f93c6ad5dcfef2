"""
Evaluation metrics for classification and regression workflows.

Metrics are registered by name and grouped into per-mode metric sets. The
same definitions back the resampling scorers and the held-out evaluation
of a last fit, so both report identical numbers.

For binary classification the event (positive) class is the second of the
sorted class labels, e.g. ``Yes`` for ``No``/``Yes``.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    confusion_matrix,
    log_loss,
    mean_absolute_error,
    mean_squared_error,
    recall_score,
    roc_auc_score,
    roc_curve,
)

from recipeflow.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class Metric:
    """
    A named performance metric.

    Attributes:
        name: Metric name, as used in result tables.
        mode: ``classification`` or ``regression``.
        input: What the metric consumes: ``class`` (hard predictions),
            ``prob`` (event probabilities) or ``numeric`` (predictions).
        fn: ``fn(y_true, values, event) -> float``.
        maximize: Whether larger values are better.
    """

    name: str
    mode: str
    input: str
    fn: Callable[[np.ndarray, np.ndarray, Any], float]
    maximize: bool


def _two_classes(y_true: np.ndarray) -> bool:
    return np.unique(y_true).size == 2


def accuracy(y_true: np.ndarray, y_pred: np.ndarray, event: Any = None) -> float:
    return float(accuracy_score(y_true, y_pred))


def sensitivity(y_true: np.ndarray, y_pred: np.ndarray, event: Any) -> float:
    """Share of true events predicted as events (recall of the event class)."""
    if not np.any(y_true == event):
        return float("nan")
    return float(recall_score(y_true == event, y_pred == event))


def specificity(y_true: np.ndarray, y_pred: np.ndarray, event: Any) -> float:
    """Share of true non-events predicted as non-events."""
    if not np.any(y_true != event):
        return float("nan")
    return float(recall_score(y_true != event, y_pred != event))


def roc_auc(y_true: np.ndarray, prob: np.ndarray, event: Any) -> float:
    """Area under the ROC curve; NaN when only one class is present."""
    if not _two_classes(y_true):
        return float("nan")
    return float(roc_auc_score(y_true == event, prob))


def mn_log_loss(y_true: np.ndarray, prob: np.ndarray, event: Any) -> float:
    """
    Mean binary log loss of the event probabilities.

    scikit-learn clips probabilities to machine precision, so a confident
    wrong prediction costs a large but finite penalty.
    """
    is_event = np.asarray(y_true) == event
    prob = np.asarray(prob, dtype=float)
    return float(log_loss(is_event, prob, labels=[False, True]))


def rmse(y_true: np.ndarray, y_pred: np.ndarray, event: Any = None) -> float:
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def rsq(y_true: np.ndarray, y_pred: np.ndarray, event: Any = None) -> float:
    """Squared Pearson correlation of truth and prediction."""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if len(y_true) < 2 or np.std(y_true) == 0 or np.std(y_pred) == 0:
        return float("nan")
    return float(np.corrcoef(y_true, y_pred)[0, 1] ** 2)


def mae(y_true: np.ndarray, y_pred: np.ndarray, event: Any = None) -> float:
    return float(mean_absolute_error(y_true, y_pred))


METRICS: dict[str, Metric] = {
    m.name: m
    for m in (
        Metric("accuracy", "classification", "class", accuracy, maximize=True),
        Metric("roc_auc", "classification", "prob", roc_auc, maximize=True),
        Metric("sensitivity", "classification", "class", sensitivity, maximize=True),
        Metric("specificity", "classification", "class", specificity, maximize=True),
        Metric("mn_log_loss", "classification", "prob", mn_log_loss, maximize=False),
        Metric("rmse", "regression", "numeric", rmse, maximize=False),
        Metric("rsq", "regression", "numeric", rsq, maximize=True),
        Metric("mae", "regression", "numeric", mae, maximize=False),
    )
}

METRIC_SETS: dict[str, list[str]] = {
    "classification": [
        "accuracy",
        "roc_auc",
        "sensitivity",
        "specificity",
        "mn_log_loss",
    ],
    "regression": ["rmse", "rsq", "mae"],
}


def get_metric(name: str) -> Metric:
    """
    Look up a metric by name.

    Raises:
        KeyError: If the metric is unknown.
    """
    if name not in METRICS:
        available = ", ".join(METRICS)
        msg = f"Unknown metric '{name}'. Available: {available}"
        raise KeyError(msg)
    return METRICS[name]


def metric_set(mode: str, names: Sequence[str] | None = None) -> list[Metric]:
    """
    Metrics to evaluate for a mode.

    Args:
        mode: ``classification`` or ``regression``.
        names: Subset of metric names; default is the mode's full set.

    Raises:
        KeyError: If a metric name is unknown.
        ValueError: If the mode is unknown or a metric belongs to the other mode.
    """
    if mode not in METRIC_SETS:
        msg = f"Unknown mode '{mode}'. Available: {', '.join(METRIC_SETS)}"
        raise ValueError(msg)
    metrics = [get_metric(n) for n in (names or METRIC_SETS[mode])]
    wrong = [m.name for m in metrics if m.mode != mode]
    if wrong:
        msg = f"Metrics {wrong} do not apply to {mode} models"
        raise ValueError(msg)
    return metrics


def is_maximized(name: str) -> bool:
    """Whether larger values of the metric are better."""
    return get_metric(name).maximize


class MetricScorer:
    """
    scikit-learn scorer, ``scorer(estimator, X, y) -> float``.

    Values are reported on the metric's natural scale (an RMSE scorer
    returns the RMSE, not its negative).
    """

    def __init__(self, metric: Metric) -> None:
        self.metric = metric

    def __call__(self, estimator: Any, X: Any, y: Any) -> float:
        y_true = np.asarray(y)
        if self.metric.input == "numeric":
            return self.metric.fn(y_true, estimator.predict(X), None)

        classes = estimator.classes_
        if len(classes) != 2:
            msg = f"{self.metric.name} needs a binary outcome, got {len(classes)} classes"
            raise ValueError(msg)
        event = classes[1]
        if self.metric.input == "prob":
            values = estimator.predict_proba(X)[:, 1]
        else:
            values = estimator.predict(X)
        return self.metric.fn(y_true, values, event)

    def __repr__(self) -> str:
        return f"MetricScorer({self.metric.name})"


def make_scorers(metrics: Sequence[Metric]) -> dict[str, MetricScorer]:
    """Scorer dict for ``cross_validate`` / ``GridSearchCV``."""
    return {m.name: MetricScorer(m) for m in metrics}


def compute_metrics(
    y_true: Any,
    metrics: Sequence[Metric],
    *,
    pred: Any = None,
    prob: Any = None,
    event: Any = None,
) -> dict[str, float]:
    """
    Compute metrics on held-out predictions.

    Args:
        y_true: True outcomes.
        metrics: Metrics to compute.
        pred: Hard class or numeric predictions.
        prob: Event probabilities (classification).
        event: Event class label (classification).

    Returns:
        Dictionary of metric name -> value.
    """
    y_true = np.asarray(y_true)
    results: dict[str, float] = {}
    for metric in metrics:
        values = prob if metric.input == "prob" else pred
        if values is None:
            msg = f"Metric '{metric.name}' needs {metric.input} predictions"
            raise ValueError(msg)
        results[metric.name] = metric.fn(y_true, np.asarray(values), event)

    log.debug("Computed metrics", **results)
    return results


def confusion_table(
    y_true: Any,
    y_pred: Any,
    labels: Sequence[Any] | None = None,
) -> pd.DataFrame:
    """Confusion matrix with truth in rows and predictions in columns."""
    if labels is None:
        labels = sorted(set(np.asarray(y_true)) | set(np.asarray(y_pred)))
    matrix = confusion_matrix(y_true, y_pred, labels=list(labels))
    return pd.DataFrame(
        matrix,
        index=pd.Index(labels, name="truth"),
        columns=pd.Index(labels, name="prediction"),
    )


def roc_curve_data(y_true: Any, prob: Any, event: Any) -> pd.DataFrame:
    """ROC curve points with sensitivity and specificity columns."""
    fpr, tpr, thresholds = roc_curve(np.asarray(y_true) == event, prob)
    return pd.DataFrame(
        {
            "threshold": thresholds,
            "specificity": 1 - fpr,
            "sensitivity": tpr,
        }
    )
