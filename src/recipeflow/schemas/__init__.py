"""
Schema definitions using Pandera for data validation.

Every raw CSV is validated against one of these contracts when loaded.
"""

from recipeflow.schemas.churn import ChurnSchema
from recipeflow.schemas.ikea import IkeaItemSchema
from recipeflow.schemas.pumpkins import PumpkinSchema
from recipeflow.schemas.registry import DataRole, SchemaRegistry
from recipeflow.schemas.unvotes import UnIssueSchema, UnVoteSchema
from recipeflow.schemas.water import WaterPointSchema

__all__ = [
    "ChurnSchema",
    "DataRole",
    "IkeaItemSchema",
    "PumpkinSchema",
    "SchemaRegistry",
    "UnIssueSchema",
    "UnVoteSchema",
    "WaterPointSchema",
]
