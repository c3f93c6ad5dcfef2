"""
Recipe steps.

Every step is a scikit-learn transformer that takes a DataFrame and
returns a DataFrame, so steps chain inside a Pipeline and keep column
names all the way to the model. Numeric work is delegated to the
matching scikit-learn transformer wherever one exists.
"""

from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.decomposition import PCA
from sklearn.impute import KNNImputer, SimpleImputer
from sklearn.linear_model import LinearRegression
from sklearn.preprocessing import OneHotEncoder, SplineTransformer, StandardScaler
from sklearn.utils.validation import check_is_fitted

from recipeflow.recipes.selectors import Selector, resolve_columns
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)


class RecipeStep(TransformerMixin, BaseEstimator):
    """
    Base class for DataFrame-in/DataFrame-out preprocessing steps.

    Subclasses implement ``_fit(X)`` on the selected columns and
    ``_transform(X)`` on a copy of the full frame.
    """

    kind = "step"

    def __init__(self, columns: Selector = "all_predictors") -> None:
        self.columns = columns

    def fit(self, X: pd.DataFrame, y: Any = None) -> "RecipeStep":
        """Resolve the selector and learn the step's statistics."""
        if not isinstance(X, pd.DataFrame):
            msg = f"{type(self).__name__} expects a DataFrame, got {type(X).__name__}"
            raise TypeError(msg)
        self.columns_ = resolve_columns(X, self.columns)
        self._fit(X)
        self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        self.feature_names_out_ = self._output_names(X)
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Apply the learned step to new data."""
        check_is_fitted(self, "columns_")
        return self._transform(X.copy())

    def get_feature_names_out(self, input_features: Any = None) -> np.ndarray:
        """Column names produced by ``transform``."""
        check_is_fitted(self, "feature_names_out_")
        return np.asarray(self.feature_names_out_, dtype=object)

    def _output_names(self, X: pd.DataFrame) -> list[str]:
        """Output columns, found by transforming the first training row."""
        return list(self._transform(X.iloc[:1].copy()).columns)

    def _fit(self, X: pd.DataFrame) -> None:
        """Learn statistics from the selected columns (no-op by default)."""

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        raise NotImplementedError


class StepNormalize(RecipeStep):
    """Center and scale numeric columns to mean 0, standard deviation 1."""

    kind = "normalize"

    def __init__(self, columns: Selector = "all_numeric_predictors") -> None:
        super().__init__(columns)

    def _fit(self, X: pd.DataFrame) -> None:
        self.scaler_ = StandardScaler()
        if self.columns_:
            self.scaler_.fit(X[self.columns_].to_numpy(dtype=float))

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        if self.columns_:
            X[self.columns_] = self.scaler_.transform(
                X[self.columns_].to_numpy(dtype=float)
            )
        return X


class StepDummy(RecipeStep):
    """
    Replace nominal columns by 0/1 indicator columns.

    With ``one_hot=False`` the first level of each column is dropped (the
    reference level). Levels unseen during fitting encode as all zeros.
    Missing values get their own indicator.
    """

    kind = "dummy"

    def __init__(
        self,
        columns: Selector = "all_nominal_predictors",
        one_hot: bool = False,
    ) -> None:
        super().__init__(columns)
        self.one_hot = one_hot

    @staticmethod
    def _as_object(frame: pd.DataFrame) -> pd.DataFrame:
        values = frame.astype(object)
        return values.where(frame.notna(), np.nan)

    def _fit(self, X: pd.DataFrame) -> None:
        self.encoder_ = OneHotEncoder(
            drop=None if self.one_hot else "first",
            handle_unknown="ignore",
            sparse_output=False,
        )
        if self.columns_:
            self.encoder_.fit(self._as_object(X[self.columns_]))

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        if not self.columns_:
            return X
        encoded = pd.DataFrame(
            self.encoder_.transform(self._as_object(X[self.columns_])),
            columns=self.encoder_.get_feature_names_out(self.columns_),
            index=X.index,
        )
        return pd.concat([X.drop(columns=self.columns_), encoded], axis=1)


class StepOther(RecipeStep):
    """
    Pool infrequent levels of nominal columns into ``other``.

    Levels with a training share below ``threshold`` (or a count below it,
    when ``threshold >= 1``) are pooled. Levels first seen at transform
    time are pooled too. A single rare level is left alone.
    """

    kind = "other"

    def __init__(
        self,
        columns: Selector = "all_nominal_predictors",
        threshold: float = 0.05,
        other: str = "other",
    ) -> None:
        super().__init__(columns)
        self.threshold = threshold
        self.other = other

    def _fit(self, X: pd.DataFrame) -> None:
        self.retained_: dict[str, set[Any]] = {}
        for col in self.columns_:
            counts = X[col].value_counts(dropna=True)
            minimum = (
                self.threshold if self.threshold >= 1 else self.threshold * counts.sum()
            )
            rare = counts[counts < minimum]
            keep = counts.index if len(rare) <= 1 else counts[counts >= minimum].index
            self.retained_[col] = set(keep)

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        for col in self.columns_:
            keep = X[col].isin(self.retained_[col]) | X[col].isna()
            X[col] = X[col].astype(object).where(keep, self.other)
        return X


class StepUnknown(RecipeStep):
    """Give missing values of nominal columns their own level."""

    kind = "unknown"

    def __init__(
        self,
        columns: Selector = "all_nominal_predictors",
        new_level: str = "unknown",
    ) -> None:
        super().__init__(columns)
        self.new_level = new_level

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        for col in self.columns_:
            X[col] = X[col].astype(object).where(X[col].notna(), self.new_level)
        return X


class StepImputeSimple(RecipeStep):
    """Impute with a column statistic: ``mean``, ``median`` or ``most_frequent``."""

    kind = "impute"

    def __init__(
        self,
        columns: Selector = "all_numeric_predictors",
        strategy: str = "mean",
    ) -> None:
        super().__init__(columns)
        self.strategy = strategy

    def _fit(self, X: pd.DataFrame) -> None:
        self.imputer_ = SimpleImputer(strategy=self.strategy, keep_empty_features=True)
        if self.columns_:
            self.imputer_.fit(self._values(X))

    def _values(self, X: pd.DataFrame) -> Any:
        if self.strategy == "most_frequent":
            frame = X[self.columns_].astype(object)
            return frame.where(X[self.columns_].notna(), np.nan)
        return X[self.columns_].to_numpy(dtype=float)

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        if self.columns_:
            filled = self.imputer_.transform(self._values(X))
            X[self.columns_] = pd.DataFrame(filled, columns=self.columns_, index=X.index)
        return X


class StepImputeKnn(RecipeStep):
    """Impute numeric columns from the ``neighbors`` nearest rows."""

    kind = "impute_knn"

    def __init__(
        self,
        columns: Selector = "all_numeric_predictors",
        neighbors: int = 5,
    ) -> None:
        super().__init__(columns)
        self.neighbors = neighbors

    def _fit(self, X: pd.DataFrame) -> None:
        self.imputer_ = KNNImputer(n_neighbors=self.neighbors, keep_empty_features=True)
        if self.columns_:
            self.imputer_.fit(X[self.columns_].to_numpy(dtype=float))

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        if self.columns_:
            X[self.columns_] = self.imputer_.transform(
                X[self.columns_].to_numpy(dtype=float)
            )
        return X


class StepImputeLinear(RecipeStep):
    """
    Impute numeric columns with a linear regression on other columns.

    ``impute_with`` names the predictors of the imputation model. Rows
    where those predictors are themselves missing fall back to the
    training mean of the imputed column.
    """

    kind = "impute_linear"

    def __init__(
        self,
        columns: Selector = "all_numeric_predictors",
        impute_with: Selector = "all_numeric_predictors",
    ) -> None:
        super().__init__(columns)
        self.impute_with = impute_with

    def _fit(self, X: pd.DataFrame) -> None:
        self.models_: dict[str, tuple[list[str], LinearRegression | None, float]] = {}
        candidates = resolve_columns(X, self.impute_with)
        for col in self.columns_:
            features = [c for c in candidates if c != col]
            target = X[col].astype(float)
            fallback = float(target.mean()) if target.notna().any() else 0.0
            complete = target.notna() & X[features].notna().all(axis=1)
            model = None
            if features and complete.sum() > len(features):
                model = LinearRegression().fit(
                    X.loc[complete, features].to_numpy(dtype=float),
                    target[complete].to_numpy(),
                )
            else:
                log.warning("Too few complete rows, imputing mean", column=col)
            self.models_[col] = (features, model, fallback)

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        for col, (features, model, fallback) in self.models_.items():
            values = X[col].astype(float)
            missing = values.isna()
            if model is not None:
                usable = missing & X[features].notna().all(axis=1)
                if usable.any():
                    values[usable] = model.predict(
                        X.loc[usable, features].to_numpy(dtype=float)
                    )
            X[col] = values.fillna(fallback)
        return X


class StepZv(RecipeStep):
    """Drop columns that hold a single value in the training data."""

    kind = "zv"

    def _fit(self, X: pd.DataFrame) -> None:
        self.removed_ = [
            col for col in self.columns_ if X[col].nunique(dropna=False) <= 1
        ]
        if self.removed_:
            log.debug("Dropping zero-variance columns", columns=self.removed_)

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return X.drop(columns=self.removed_)


class StepLog(RecipeStep):
    """Log-transform numeric columns, ``log(x + offset, base)``."""

    kind = "log"

    def __init__(
        self,
        columns: Selector = "all_numeric_predictors",
        base: float = np.e,
        offset: float = 0.0,
    ) -> None:
        super().__init__(columns)
        self.base = base
        self.offset = offset

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        for col in self.columns_:
            X[col] = np.log(X[col].astype(float) + self.offset) / np.log(self.base)
        return X


class StepNs(RecipeStep):
    """
    Expand numeric columns into ``deg_free`` cubic spline basis columns.

    Knots sit at training quantiles and the basis extrapolates linearly,
    like a natural spline. Output columns are ``<col>_ns_01`` ... .
    """

    kind = "ns"

    def __init__(
        self, columns: Selector = "all_numeric_predictors", deg_free: int = 5
    ) -> None:
        super().__init__(columns)
        self.deg_free = deg_free

    def _fit(self, X: pd.DataFrame) -> None:
        if self.deg_free < 3:
            msg = f"deg_free must be at least 3, got {self.deg_free}"
            raise ValueError(msg)
        self.splines_: dict[str, SplineTransformer] = {}
        for col in self.columns_:
            spline = SplineTransformer(
                n_knots=self.deg_free - 1,
                degree=3,
                knots="quantile",
                extrapolation="linear",
                include_bias=False,
            )
            self.splines_[col] = spline.fit(X[[col]].to_numpy(dtype=float))

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        for col, spline in self.splines_.items():
            basis = spline.transform(X[[col]].to_numpy(dtype=float))
            names = [f"{col}_ns_{i + 1:02d}" for i in range(basis.shape[1])]
            expanded = pd.DataFrame(basis, columns=names, index=X.index)
            X = pd.concat([X.drop(columns=[col]), expanded], axis=1)
        return X


class StepPca(RecipeStep):
    """
    Replace numeric columns by their first ``num_comp`` principal components.

    Columns not selected (e.g. nominal ones) are carried through.
    """

    kind = "pca"

    def __init__(
        self,
        columns: Selector = "all_numeric_predictors",
        num_comp: int = 5,
        prefix: str = "PC",
    ) -> None:
        super().__init__(columns)
        self.num_comp = num_comp
        self.prefix = prefix

    def _fit(self, X: pd.DataFrame) -> None:
        n_comp = min(self.num_comp, len(self.columns_), len(X))
        self.pca_ = PCA(n_components=n_comp).fit(X[self.columns_].to_numpy(dtype=float))
        self.component_names_ = [f"{self.prefix}{i + 1}" for i in range(n_comp)]

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        scores = pd.DataFrame(
            self.pca_.transform(X[self.columns_].to_numpy(dtype=float)),
            columns=self.component_names_,
            index=X.index,
        )
        return pd.concat([X.drop(columns=self.columns_), scores], axis=1)

    def tidy(self) -> pd.DataFrame:
        """
        Loadings in long form.

        Returns:
            Frame with columns ``terms`` (input column), ``component`` and
            ``value`` (loading).
        """
        check_is_fitted(self, "pca_")
        loadings = pd.DataFrame(
            self.pca_.components_.T,
            index=pd.Index(self.columns_, name="terms"),
            columns=self.component_names_,
        )
        return (
            loadings.reset_index()
            .melt(id_vars="terms", var_name="component", value_name="value")
            .reset_index(drop=True)
        )

    def variance_explained(self) -> pd.DataFrame:
        """Share and cumulative share of variance per component."""
        check_is_fitted(self, "pca_")
        ratio = self.pca_.explained_variance_ratio_
        return pd.DataFrame(
            {
                "component": self.component_names_,
                "variance": self.pca_.explained_variance_,
                "percent_variance": ratio * 100,
                "cumulative_percent_variance": np.cumsum(ratio) * 100,
            }
        )


class StepUmap(RecipeStep):
    """Replace numeric columns by a ``num_comp``-dimensional UMAP embedding."""

    kind = "umap"

    def __init__(
        self,
        columns: Selector = "all_numeric_predictors",
        num_comp: int = 2,
        neighbors: int = 15,
        min_dist: float = 0.01,
        random_state: int | None = None,
        prefix: str = "UMAP",
    ) -> None:
        super().__init__(columns)
        self.num_comp = num_comp
        self.neighbors = neighbors
        self.min_dist = min_dist
        self.random_state = random_state
        self.prefix = prefix

    def _fit(self, X: pd.DataFrame) -> None:
        import umap

        values = X[self.columns_].to_numpy(dtype=float)
        self.umap_ = umap.UMAP(
            n_components=self.num_comp,
            n_neighbors=min(self.neighbors, len(X) - 1),
            min_dist=self.min_dist,
            random_state=self.random_state,
        ).fit(values)
        self.component_names_ = [f"{self.prefix}{i + 1}" for i in range(self.num_comp)]

    def _output_names(self, X: pd.DataFrame) -> list[str]:
        kept = [col for col in X.columns if col not in self.columns_]
        return kept + self.component_names_

    def _with_embedding(self, X: pd.DataFrame, embedding: np.ndarray) -> pd.DataFrame:
        scores = pd.DataFrame(embedding, columns=self.component_names_, index=X.index)
        return pd.concat([X.drop(columns=self.columns_), scores], axis=1)

    def fit_transform(
        self, X: pd.DataFrame, y: Any = None, **fit_params: Any
    ) -> pd.DataFrame:
        """Fit on ``X`` and return its fitted embedding."""
        self.fit(X, y)
        return self._with_embedding(X.copy(), self.umap_.embedding_)

    def _transform(self, X: pd.DataFrame) -> pd.DataFrame:
        embedding = self.umap_.transform(X[self.columns_].to_numpy(dtype=float))
        return self._with_embedding(X, embedding)


STEP_TYPES: dict[str, type[RecipeStep]] = {
    cls.kind: cls
    for cls in (
        StepNormalize,
        StepDummy,
        StepOther,
        StepUnknown,
        StepImputeSimple,
        StepImputeKnn,
        StepImputeLinear,
        StepZv,
        StepLog,
        StepNs,
        StepPca,
        StepUmap,
    )
}
