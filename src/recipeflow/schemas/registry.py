"""
Schema registry for versioning and discovery.

Provides centralized access to all schema definitions with version tracking.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

import pandera.pandas as pa

from recipeflow.schemas.churn import ChurnSchema
from recipeflow.schemas.ikea import IkeaItemSchema
from recipeflow.schemas.pumpkins import PumpkinSchema
from recipeflow.schemas.unvotes import UnIssueSchema, UnVoteSchema
from recipeflow.schemas.water import WaterPointSchema

if TYPE_CHECKING:
    import pandas as pd


class DataRole(Enum):
    """Classification of datasets by how an analysis uses them."""

    OBSERVATIONS = "observations"  # One row per modelled unit
    LOOKUP = "lookup"  # Joined onto observations or results


@dataclass(frozen=True)
class SchemaInfo:
    """Metadata about a registered schema."""

    name: str
    schema: type[pa.DataFrameModel]
    version: str
    role: DataRole
    description: str


class SchemaRegistry:
    """
    Centralized registry for all data schemas.

    Schema names double as the dataset keys used in ``data.files``.
    """

    _version = "1.0.0"

    _schemas: ClassVar[dict[str, SchemaInfo]] = {
        "votes": SchemaInfo(
            name="votes",
            schema=UnVoteSchema,
            version="1.0.0",
            role=DataRole.OBSERVATIONS,
            description="UN General Assembly votes per roll call and country",
        ),
        "issues": SchemaInfo(
            name="issues",
            schema=UnIssueSchema,
            version="1.0.0",
            role=DataRole.LOOKUP,
            description="Issue category per UN roll call",
        ),
        "water": SchemaInfo(
            name="water",
            schema=WaterPointSchema,
            version="1.0.0",
            role=DataRole.OBSERVATIONS,
            description="Water point availability reports",
        ),
        "churn": SchemaInfo(
            name="churn",
            schema=ChurnSchema,
            version="1.0.0",
            role=DataRole.OBSERVATIONS,
            description="Telecom customers and churn outcome",
        ),
        "pumpkins": SchemaInfo(
            name="pumpkins",
            schema=PumpkinSchema,
            version="1.0.0",
            role=DataRole.OBSERVATIONS,
            description="Giant pumpkin weigh-off entries",
        ),
        "ikea": SchemaInfo(
            name="ikea",
            schema=IkeaItemSchema,
            version="1.0.0",
            role=DataRole.OBSERVATIONS,
            description="IKEA furniture listings with prices and dimensions",
        ),
    }

    @classmethod
    def registry_version(cls) -> str:
        """Get the registry version."""
        return cls._version

    @classmethod
    def get(cls, name: str) -> type[pa.DataFrameModel]:
        """
        Get a schema by name.

        Raises:
            KeyError: If schema not found.
        """
        return cls.get_info(name).schema

    @classmethod
    def get_info(cls, name: str) -> SchemaInfo:
        """Get full schema info by name."""
        if name not in cls._schemas:
            available = ", ".join(cls._schemas.keys())
            msg = f"Unknown schema '{name}'. Available: {available}"
            raise KeyError(msg)
        return cls._schemas[name]

    @classmethod
    def list_schemas(cls) -> list[str]:
        """List all registered schema names."""
        return list(cls._schemas.keys())

    @classmethod
    def list_by_role(cls, role: DataRole) -> list[str]:
        """List schemas filtered by their data role."""
        return [name for name, info in cls._schemas.items() if info.role == role]

    @classmethod
    def validate(cls, df: "pd.DataFrame", schema_name: str) -> "pd.DataFrame":
        """
        Validate a DataFrame against a registered schema.

        Raises:
            pandera.errors.SchemaError: If validation fails.
        """
        schema = cls.get(schema_name)
        return schema.validate(df)
