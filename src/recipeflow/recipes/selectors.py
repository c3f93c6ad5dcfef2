"""
Column selectors for recipe steps.

A selector is either one of the names in ``SELECTORS`` or an explicit list
of column names. Selectors are resolved against the frame a step is
fitted on, so ``all_numeric_predictors`` placed after ``step_dummy`` also
picks up the indicator columns.
"""

from collections.abc import Callable, Sequence

import pandas as pd

Selector = str | Sequence[str]


def _is_numeric(series: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(
        series
    )


def all_predictors(X: pd.DataFrame) -> list[str]:
    """Every column handed to the recipe (ids and outcome are never in X)."""
    return list(X.columns)


def all_numeric_predictors(X: pd.DataFrame) -> list[str]:
    """Numeric columns, excluding booleans."""
    return [col for col in X.columns if _is_numeric(X[col])]


def all_nominal_predictors(X: pd.DataFrame) -> list[str]:
    """Text, categorical and boolean columns."""
    return [col for col in X.columns if not _is_numeric(X[col])]


SELECTORS: dict[str, Callable[[pd.DataFrame], list[str]]] = {
    "all_predictors": all_predictors,
    "all_numeric_predictors": all_numeric_predictors,
    "all_nominal_predictors": all_nominal_predictors,
}


def resolve_columns(X: pd.DataFrame, selector: Selector) -> list[str]:
    """
    Resolve a selector against a frame.

    Args:
        X: Frame the step is being fitted on.
        selector: Selector name or explicit column names.

    Returns:
        Selected column names, in frame order for named selectors and in the
        given order for explicit lists.

    Raises:
        KeyError: If the selector name is unknown or a listed column is absent.
    """
    if isinstance(selector, str):
        if selector not in SELECTORS:
            available = ", ".join(SELECTORS)
            msg = f"Unknown selector '{selector}'. Available: {available}"
            raise KeyError(msg)
        return SELECTORS[selector](X)

    missing = [col for col in selector if col not in X.columns]
    if missing:
        msg = f"Columns not found: {', '.join(map(str, missing))}"
        raise KeyError(msg)
    return list(selector)
