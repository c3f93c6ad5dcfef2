"""
Data cleaning and reshaping.

Generic helpers plus one preparation function per dataset.
"""

from recipeflow.normalization.cleaning import (
    clean_levels,
    lump_rare,
    parse_number,
    pivot_wider,
)
from recipeflow.normalization.datasets import (
    VOTE_VALUES,
    prepare_churn,
    prepare_ikea,
    prepare_pumpkins,
    prepare_unvotes,
    prepare_water,
)

__all__ = [
    "VOTE_VALUES",
    "clean_levels",
    "lump_rare",
    "parse_number",
    "pivot_wider",
    "prepare_churn",
    "prepare_ikea",
    "prepare_pumpkins",
    "prepare_unvotes",
    "prepare_water",
]
