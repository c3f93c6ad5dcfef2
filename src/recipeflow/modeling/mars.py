"""
Additive MARS-style models.

A degree-1 hinge basis (``max(0, x - k)`` and ``max(0, k - x)`` at quantile
knots) followed by a linear or logistic model. This is the additive
(no interaction) form of multivariate adaptive regression splines without
the forward/backward knot search; knots are fixed at training quantiles and
the linear model's regularisation does the pruning.
"""

from typing import Any

import numpy as np
from sklearn.base import (
    BaseEstimator,
    ClassifierMixin,
    RegressorMixin,
    TransformerMixin,
)
from sklearn.linear_model import LinearRegression, LogisticRegression, Ridge
from sklearn.utils.validation import check_is_fitted


class HingeBasis(TransformerMixin, BaseEstimator):
    """
    Expand numeric columns into mirrored hinge functions.

    Columns with at most two distinct training values (indicators) are
    passed through unchanged.

    Args:
        n_knots: Number of interior knots per column, placed at evenly spaced
            training quantiles. Duplicate knots are merged.
    """

    def __init__(self, n_knots: int = 5) -> None:
        self.n_knots = n_knots

    def fit(self, X: Any, y: Any = None) -> "HingeBasis":
        values = np.asarray(X, dtype=float)
        if self.n_knots < 1:
            msg = f"n_knots must be at least 1, got {self.n_knots}"
            raise ValueError(msg)
        quantiles = np.linspace(0, 1, self.n_knots + 2)[1:-1]
        self.knots_: list[np.ndarray | None] = []
        for j in range(values.shape[1]):
            column = values[:, j]
            observed = column[~np.isnan(column)]
            if np.unique(observed).size <= 2:
                self.knots_.append(None)
            else:
                self.knots_.append(np.unique(np.quantile(observed, quantiles)))
        self.n_features_in_ = values.shape[1]
        return self

    def transform(self, X: Any) -> np.ndarray:
        check_is_fitted(self, "knots_")
        values = np.asarray(X, dtype=float)
        blocks = []
        for j, knots in enumerate(self.knots_):
            column = values[:, [j]]
            if knots is None:
                blocks.append(column)
                continue
            blocks.append(column)
            blocks.append(np.maximum(0.0, column - knots))
            blocks.append(np.maximum(0.0, knots - column))
        return np.hstack(blocks) if blocks else values


class MarsRegressor(RegressorMixin, BaseEstimator):
    """Hinge basis + least squares (ridge when ``alpha > 0``)."""

    def __init__(self, n_knots: int = 5, alpha: float = 0.0) -> None:
        self.n_knots = n_knots
        self.alpha = alpha

    def fit(self, X: Any, y: Any) -> "MarsRegressor":
        self.basis_ = HingeBasis(n_knots=self.n_knots).fit(X)
        linear = Ridge(alpha=self.alpha) if self.alpha > 0 else LinearRegression()
        self.linear_ = linear.fit(self.basis_.transform(X), np.asarray(y, dtype=float))
        self.n_features_in_ = self.basis_.n_features_in_
        return self

    def predict(self, X: Any) -> np.ndarray:
        check_is_fitted(self, "linear_")
        return self.linear_.predict(self.basis_.transform(X))


class MarsClassifier(ClassifierMixin, BaseEstimator):
    """Hinge basis + logistic regression, with probability outputs."""

    def __init__(
        self,
        n_knots: int = 5,
        C: float = 1.0,
        class_weight: str | dict[Any, float] | None = None,
        max_iter: int = 2000,
    ) -> None:
        self.n_knots = n_knots
        self.C = C
        self.class_weight = class_weight
        self.max_iter = max_iter

    def fit(self, X: Any, y: Any) -> "MarsClassifier":
        self.basis_ = HingeBasis(n_knots=self.n_knots).fit(X)
        self.linear_ = LogisticRegression(
            C=self.C,
            class_weight=self.class_weight,
            max_iter=self.max_iter,
        ).fit(self.basis_.transform(X), np.asarray(y))
        self.classes_ = self.linear_.classes_
        self.n_features_in_ = self.basis_.n_features_in_
        return self

    def predict(self, X: Any) -> np.ndarray:
        check_is_fitted(self, "linear_")
        return self.linear_.predict(self.basis_.transform(X))

    def predict_proba(self, X: Any) -> np.ndarray:
        check_is_fitted(self, "linear_")
        return self.linear_.predict_proba(self.basis_.transform(X))
