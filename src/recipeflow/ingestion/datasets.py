"""
CSV loaders for each dataset.

Read options keep text columns as text where pandas would otherwise guess
a numeric type from the first rows (thousands separators, blank strings).
"""

from typing import Any, ClassVar

import pandas as pd

from recipeflow.config.settings import AnalysisConfig
from recipeflow.ingestion.base import DataLoader
from recipeflow.schemas.churn import ChurnSchema
from recipeflow.schemas.ikea import IkeaItemSchema
from recipeflow.schemas.pumpkins import PumpkinSchema
from recipeflow.schemas.unvotes import UnIssueSchema, UnVoteSchema
from recipeflow.schemas.water import WaterPointSchema


class UnVotesLoader(DataLoader[UnVoteSchema]):
    """Loader for UN General Assembly votes."""

    dataset_key = "votes"
    read_options: ClassVar[dict[str, Any]] = {"keep_default_na": False, "na_values": [""]}


class UnIssuesLoader(DataLoader[UnIssueSchema]):
    """Loader for UN roll call issues."""

    dataset_key = "issues"


class WaterPointLoader(DataLoader[WaterPointSchema]):
    """Loader for water point reports."""

    dataset_key = "water"
    read_options: ClassVar[dict[str, Any]] = {
        "dtype": {
            "report_date": str,
            "status_id": str,
            "installer": str,
            "pay": str,
        }
    }


class ChurnLoader(DataLoader[ChurnSchema]):
    """Loader for telecom churn data."""

    dataset_key = "churn"
    read_options: ClassVar[dict[str, Any]] = {"dtype": {"TotalCharges": str}}

    def _load_raw(self) -> pd.DataFrame:
        """Strip the whitespace-only TotalCharges of brand-new customers."""
        df = super()._load_raw()
        total = df["TotalCharges"].str.strip()
        df["TotalCharges"] = total.where(total != "")
        return df


class PumpkinLoader(DataLoader[PumpkinSchema]):
    """Loader for giant pumpkin weigh-off entries."""

    dataset_key = "pumpkins"
    read_options: ClassVar[dict[str, Any]] = {"dtype": str}


class IkeaLoader(DataLoader[IkeaItemSchema]):
    """Loader for IKEA listings."""

    dataset_key = "ikea"

    def _load_raw(self) -> pd.DataFrame:
        """Drop the unnamed row-number column written by the scraper."""
        df = super()._load_raw()
        unnamed = [c for c in df.columns if c.startswith("Unnamed") or c == "...1"]
        return df.drop(columns=unnamed)


LOADERS: dict[str, type[DataLoader[Any]]] = {
    loader.dataset_key: loader
    for loader in (
        UnVotesLoader,
        UnIssuesLoader,
        WaterPointLoader,
        ChurnLoader,
        PumpkinLoader,
        IkeaLoader,
    )
}


def load_dataset(
    config: AnalysisConfig, key: str, *, validate: bool = True
) -> pd.DataFrame:
    """
    Load a configured dataset by key.

    Args:
        config: Analysis configuration.
        key: Dataset key (``votes``, ``issues``, ``water``, ``churn``,
            ``pumpkins`` or ``ikea``).
        validate: Whether to validate against the dataset schema.

    Raises:
        KeyError: If no loader exists for the key.
    """
    if key not in LOADERS:
        available = ", ".join(LOADERS)
        msg = f"No loader for dataset '{key}'. Available: {available}"
        raise KeyError(msg)
    return LOADERS[key](config).load(validate=validate)
