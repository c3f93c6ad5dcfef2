"""
Declarative preprocessing recipes.

A Recipe names the outcome, the id columns and an ordered list of steps.
It is immutable: every ``step_*`` call returns a new Recipe, so a base
recipe can be extended into variants without affecting the original.

Example:
    base = (
        Recipe("weight_lbs")
        .step_other(["country", "gpc_site"], threshold=0.02)
        .step_dummy()
    )
    splines = base.step_ns(["ot"], deg_free=10)
"""

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import FunctionTransformer

from recipeflow.recipes.selectors import Selector
from recipeflow.recipes.steps import (
    RecipeStep,
    StepDummy,
    StepImputeKnn,
    StepImputeLinear,
    StepImputeSimple,
    StepLog,
    StepNormalize,
    StepNs,
    StepOther,
    StepPca,
    StepUmap,
    StepUnknown,
    StepZv,
)
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class Recipe:
    """
    Preprocessing specification.

    Attributes:
        outcome: Outcome column, or None for unsupervised recipes.
        ids: Columns kept alongside the data but never used as predictors.
        predictors: Explicit predictor columns; None means every column that
            is neither the outcome nor an id.
        steps: Ordered preprocessing steps (unfitted).
    """

    outcome: str | None = None
    ids: tuple[str, ...] = ()
    predictors: tuple[str, ...] | None = None
    steps: tuple[RecipeStep, ...] = field(default_factory=tuple)

    def add_step(self, step: RecipeStep) -> "Recipe":
        """Return a new recipe with ``step`` appended."""
        return replace(self, steps=(*self.steps, step))

    def update_role(self, *columns: str, role: str = "id") -> "Recipe":
        """Mark columns as ids (the only non-predictor role besides outcome)."""
        if role != "id":
            msg = f"Unsupported role '{role}'; only 'id' is supported"
            raise ValueError(msg)
        return replace(self, ids=(*self.ids, *columns))

    def select(self, *columns: str) -> "Recipe":
        """Restrict predictors to the given columns."""
        return replace(self, predictors=tuple(columns))

    # Step shortcuts, mirroring the step classes

    def step_normalize(self, columns: Selector = "all_numeric_predictors") -> "Recipe":
        return self.add_step(StepNormalize(columns))

    def step_dummy(
        self, columns: Selector = "all_nominal_predictors", *, one_hot: bool = False
    ) -> "Recipe":
        return self.add_step(StepDummy(columns, one_hot=one_hot))

    def step_other(
        self,
        columns: Selector = "all_nominal_predictors",
        *,
        threshold: float = 0.05,
        other: str = "other",
    ) -> "Recipe":
        return self.add_step(StepOther(columns, threshold=threshold, other=other))

    def step_unknown(
        self, columns: Selector = "all_nominal_predictors", *, new_level: str = "unknown"
    ) -> "Recipe":
        return self.add_step(StepUnknown(columns, new_level=new_level))

    def step_impute_mean(self, columns: Selector = "all_numeric_predictors") -> "Recipe":
        return self.add_step(StepImputeSimple(columns, strategy="mean"))

    def step_impute_median(
        self, columns: Selector = "all_numeric_predictors"
    ) -> "Recipe":
        return self.add_step(StepImputeSimple(columns, strategy="median"))

    def step_impute_mode(self, columns: Selector = "all_nominal_predictors") -> "Recipe":
        return self.add_step(StepImputeSimple(columns, strategy="most_frequent"))

    def step_impute_knn(
        self, columns: Selector = "all_numeric_predictors", *, neighbors: int = 5
    ) -> "Recipe":
        return self.add_step(StepImputeKnn(columns, neighbors=neighbors))

    def step_impute_linear(
        self,
        columns: Selector,
        *,
        impute_with: Selector = "all_numeric_predictors",
    ) -> "Recipe":
        return self.add_step(StepImputeLinear(columns, impute_with=impute_with))

    def step_zv(self, columns: Selector = "all_predictors") -> "Recipe":
        return self.add_step(StepZv(columns))

    def step_log(
        self,
        columns: Selector = "all_numeric_predictors",
        *,
        base: float = np.e,
        offset: float = 0.0,
    ) -> "Recipe":
        return self.add_step(StepLog(columns, base=base, offset=offset))

    def step_ns(
        self, columns: Selector = "all_numeric_predictors", *, deg_free: int = 5
    ) -> "Recipe":
        return self.add_step(StepNs(columns, deg_free=deg_free))

    def step_pca(
        self, columns: Selector = "all_numeric_predictors", *, num_comp: int = 5
    ) -> "Recipe":
        return self.add_step(StepPca(columns, num_comp=num_comp))

    def step_umap(
        self,
        columns: Selector = "all_numeric_predictors",
        *,
        num_comp: int = 2,
        neighbors: int = 15,
        min_dist: float = 0.01,
        random_state: int | None = None,
    ) -> "Recipe":
        return self.add_step(
            StepUmap(
                columns,
                num_comp=num_comp,
                neighbors=neighbors,
                min_dist=min_dist,
                random_state=random_state,
            )
        )

    # Data handling

    def predictor_columns(self, df: pd.DataFrame) -> list[str]:
        """Predictor columns of ``df`` under this recipe's roles."""
        if self.predictors is not None:
            missing = [c for c in self.predictors if c not in df.columns]
            if missing:
                msg = f"Predictor columns not found: {', '.join(missing)}"
                raise KeyError(msg)
            return list(self.predictors)
        excluded = {*self.ids, self.outcome}
        return [col for col in df.columns if col not in excluded]

    def split_xy(self, df: pd.DataFrame) -> tuple[pd.DataFrame, pd.Series | None]:
        """
        Split a frame into predictors and outcome.

        Raises:
            KeyError: If the outcome column is missing.
        """
        X = df[self.predictor_columns(df)]
        if self.outcome is None:
            return X, None
        if self.outcome not in df.columns:
            msg = f"Outcome column '{self.outcome}' not found"
            raise KeyError(msg)
        return X, df[self.outcome]

    def to_pipeline(self) -> Pipeline:
        """
        Build an unfitted scikit-learn Pipeline of freshly cloned steps.

        Step names are the step kinds, numbered when a kind repeats
        (``other``, ``dummy``, ``other_2``).
        """
        if not self.steps:
            return Pipeline(
                [("identity", FunctionTransformer(feature_names_out="one-to-one"))]
            )

        named: list[tuple[str, Any]] = []
        seen: dict[str, int] = {}
        for step in self.steps:
            seen[step.kind] = seen.get(step.kind, 0) + 1
            name = step.kind if seen[step.kind] == 1 else f"{step.kind}_{seen[step.kind]}"
            named.append((name, clone(step)))
        return Pipeline(named)

    def prep(self, df: pd.DataFrame) -> "PreparedRecipe":
        """Fit all steps on ``df`` (the training data)."""
        X, y = self.split_xy(df)
        pipeline = self.to_pipeline()
        processed = pipeline.fit_transform(X, y)
        log.info(
            "Prepped recipe",
            n_steps=len(self.steps),
            n_rows=len(df),
            n_predictors_in=X.shape[1],
        )
        return PreparedRecipe(
            recipe=self,
            pipeline=pipeline,
            training=_with_carried(self, df, processed),
        )

    def describe(self) -> list[str]:
        """One line per step, for reports."""
        lines = []
        for step in self.steps:
            params = {
                k: v for k, v in step.get_params(deep=False).items() if k != "columns"
            }
            columns = step.columns if isinstance(step.columns, str) else list(step.columns)
            extra = ", ".join(f"{k}={v}" for k, v in params.items())
            lines.append(f"step_{step.kind}({columns}{', ' + extra if extra else ''})")
        return lines


@dataclass(frozen=True)
class PreparedRecipe:
    """A recipe whose steps have been fitted on training data."""

    recipe: Recipe
    pipeline: Pipeline
    training: pd.DataFrame | None = field(default=None, repr=False)

    def bake(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """
        Apply the fitted steps to ``new_data``.

        Id columns and (when present) the outcome are carried through
        unchanged in front of the processed predictors.
        """
        X = new_data[self.recipe.predictor_columns(new_data)]
        return _with_carried(self.recipe, new_data, self.pipeline.transform(X))

    def juice(self) -> pd.DataFrame:
        """
        The processed training data, as produced while fitting.

        Differs from ``bake(training_data)`` only for steps whose fitted
        output is not a pure transform of their input (UMAP).

        Raises:
            ValueError: If the recipe was fitted outside ``Recipe.prep``.
        """
        if self.training is None:
            msg = "No processed training data kept; use bake() instead"
            raise ValueError(msg)
        return self.training.copy()

    def step(self, kind: str) -> RecipeStep:
        """
        Return the first fitted step of a kind (e.g. ``pca``).

        Raises:
            KeyError: If the recipe has no step of that kind.
        """
        for _, step in self.pipeline.steps:
            if getattr(step, "kind", None) == kind:
                return step
        msg = f"Recipe has no '{kind}' step"
        raise KeyError(msg)

    def tidy(self, kind: str) -> pd.DataFrame:
        """Tidy summary of a fitted step that provides one (e.g. PCA loadings)."""
        step = self.step(kind)
        if not hasattr(step, "tidy"):
            msg = f"Step '{kind}' has no tidy summary"
            raise ValueError(msg)
        return step.tidy()


def _with_carried(
    spec: Recipe, data: pd.DataFrame, processed: pd.DataFrame
) -> pd.DataFrame:
    """Put id columns and the outcome (when present) in front of ``processed``."""
    carried = [c for c in spec.ids if c in data.columns]
    if spec.outcome is not None and spec.outcome in data.columns:
        carried.append(spec.outcome)
    return pd.concat([data[carried], processed], axis=1)


def recipe(
    outcome: str | None = None,
    *,
    ids: Sequence[str] = (),
    predictors: Sequence[str] | None = None,
) -> Recipe:
    """Start a recipe (functional spelling of ``Recipe(...)``)."""
    return Recipe(
        outcome=outcome,
        ids=tuple(ids),
        predictors=tuple(predictors) if predictors is not None else None,
    )
