"""
Generic cleaning and reshaping helpers.

These operate on whole Series/DataFrames and always return new objects.
"""

import re

import numpy as np
import pandas as pd

from recipeflow.utils.logging import get_logger

log = get_logger(__name__)

# Everything that is not part of a decimal number
_NON_NUMERIC = re.compile(r"[^0-9.\-eE]")


def parse_number(series: pd.Series) -> pd.Series:
    """
    Parse numbers out of text, dropping grouping marks and units.

    "1,234.50" -> 1234.5, "  85 in" -> 85.0, "" or "n/a" -> NaN.

    Args:
        series: Values to parse (any dtype).

    Returns:
        Float series with NaN where no number could be parsed.
    """
    if pd.api.types.is_numeric_dtype(series):
        return series.astype(float)

    cleaned = series.astype("string").str.replace(_NON_NUMERIC, "", regex=True)
    return pd.to_numeric(cleaned, errors="coerce").astype(float)


def pivot_wider(
    df: pd.DataFrame,
    *,
    index: str,
    columns: str,
    values: str,
    fill_value: float | None = None,
    prefix: str = "",
) -> pd.DataFrame:
    """
    Reshape long data to one row per ``index`` and one column per ``columns``.

    Args:
        df: Long-format frame.
        index: Column identifying output rows.
        columns: Column whose values become output column names.
        values: Column holding the cell values.
        fill_value: Value for missing combinations (NaN if None).
        prefix: Prefix for generated column names.

    Returns:
        Wide frame with ``index`` as a regular column and string column names.
    """
    wide = df.pivot(index=index, columns=columns, values=values)
    if fill_value is not None:
        wide = wide.fillna(fill_value)
    wide.columns = [f"{prefix}{c}" for c in wide.columns]
    wide = wide.reset_index()
    log.debug("Pivoted to wide", rows=len(wide), columns=wide.shape[1] - 1)
    return wide


def lump_rare(
    series: pd.Series,
    threshold: float = 0.05,
    other: str = "other",
) -> pd.Series:
    """
    Replace levels whose relative frequency is below ``threshold`` by ``other``.

    Missing values stay missing. A single rare level is kept as is.

    Args:
        series: Categorical values.
        threshold: Minimum share of non-missing rows to keep a level. Values
            >= 1 are interpreted as a minimum count.
        other: Label for pooled levels.
    """
    counts = series.value_counts(dropna=True)
    if counts.empty:
        return series.copy()

    minimum = threshold if threshold >= 1 else threshold * counts.sum()
    rare = counts[counts < minimum].index
    if len(rare) <= 1:
        return series.copy()

    return series.where(~series.isin(rare) | series.isna(), other)


def clean_levels(series: pd.Series) -> pd.Series:
    """Turn category labels into lower snake_case ('Chairs & stools' -> 'chairs_stools')."""
    cleaned = (
        series.astype("string")
        .str.normalize("NFKD")
        .str.encode("ascii", errors="ignore")
        .str.decode("ascii")
        .str.lower()
        .str.replace(r"[^a-z0-9]+", "_", regex=True)
        .str.strip("_")
    )
    return cleaned.astype(object).where(series.notna(), np.nan)
