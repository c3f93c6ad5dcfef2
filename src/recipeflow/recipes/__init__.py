"""
Declarative preprocessing recipes.

A recipe lists the preprocessing steps applied before a model is fitted.
Steps are scikit-learn transformers, so a recipe becomes the first half of
a Pipeline.
"""

from recipeflow.recipes.recipe import PreparedRecipe, Recipe, recipe
from recipeflow.recipes.selectors import (
    SELECTORS,
    all_nominal_predictors,
    all_numeric_predictors,
    all_predictors,
    resolve_columns,
)
from recipeflow.recipes.steps import STEP_TYPES, RecipeStep

__all__ = [
    "SELECTORS",
    "STEP_TYPES",
    "PreparedRecipe",
    "Recipe",
    "RecipeStep",
    "all_nominal_predictors",
    "all_numeric_predictors",
    "all_predictors",
    "recipe",
    "resolve_columns",
]
