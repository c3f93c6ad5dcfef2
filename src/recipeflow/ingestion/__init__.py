"""
Data ingestion layer.

Every loader reads one CSV file and validates it against its schema.
"""

from recipeflow.ingestion.base import DataLoader
from recipeflow.ingestion.datasets import (
    LOADERS,
    ChurnLoader,
    IkeaLoader,
    PumpkinLoader,
    UnIssuesLoader,
    UnVotesLoader,
    WaterPointLoader,
    load_dataset,
)

__all__ = [
    "LOADERS",
    "ChurnLoader",
    "DataLoader",
    "IkeaLoader",
    "PumpkinLoader",
    "UnIssuesLoader",
    "UnVotesLoader",
    "WaterPointLoader",
    "load_dataset",
]
