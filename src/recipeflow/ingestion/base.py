"""
Base classes and utilities for data ingestion.

Provides common functionality for all CSV loaders.
"""

from abc import ABC
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar

import pandas as pd
import pandera.pandas as pa

from recipeflow.config.settings import AnalysisConfig
from recipeflow.schemas.registry import SchemaRegistry
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T", bound=pa.DataFrameModel)


class DataLoader(ABC, Generic[T]):
    """
    Abstract base class for dataset loaders.

    All loaders validate at the system boundary against the Pandera schema
    registered under their ``dataset_key`` (the key in ``data.files``).
    Subclasses set ``dataset_key`` and, where needed, ``read_options``
    passed to ``pandas.read_csv``.
    """

    dataset_key: ClassVar[str]
    read_options: ClassVar[dict[str, Any]] = {}

    def __init__(self, config: AnalysisConfig) -> None:
        """
        Initialize data loader.

        Args:
            config: Analysis configuration.
        """
        self.config = config

    @property
    def schema(self) -> type[pa.DataFrameModel]:
        """Registered schema for this dataset."""
        return SchemaRegistry.get(self.dataset_key)

    @property
    def path(self) -> Path:
        """Resolved path of the CSV file."""
        return self.config.data.resolve(self.dataset_key)

    def _load_raw(self) -> pd.DataFrame:
        """Read the CSV file. Subclasses may post-process the raw frame."""
        path = self.path
        if not path.exists():
            msg = f"{self.dataset_key} file not found: {path}"
            raise FileNotFoundError(msg)

        log.info("Reading CSV", dataset=self.dataset_key, path=str(path))
        return pd.read_csv(path, **self.read_options)

    def load(self, *, validate: bool = True) -> pd.DataFrame:
        """
        Load and optionally validate data.

        Args:
            validate: Whether to validate against schema.

        Returns:
            Loaded (and optionally validated) DataFrame.

        Raises:
            FileNotFoundError: If data file not found.
            pandera.errors.SchemaError: If validation fails.
        """
        df = self._load_raw()
        log.info(
            "Loaded raw data",
            loader=self.__class__.__name__,
            rows=len(df),
            columns=len(df.columns),
        )

        if validate:
            df = SchemaRegistry.validate(df, self.dataset_key)
            log.debug("Schema validation passed", schema=self.schema.__name__)

        return df
