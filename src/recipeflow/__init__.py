"""
recipeflow: Tabular analyses with recipes, resampling and workflow sets.

This package loads a handful of public tabular datasets, explores them,
and fits standard models through declarative preprocessing recipes.
"""

from importlib.metadata import version

__version__ = version("recipeflow")

__all__ = ["__version__"]
