"""
End-to-end analyses.

Each analysis module exposes ``load`` (read and clean its datasets),
``explore`` (exploratory figures) and ``run`` (the full modelling
pipeline, returning a result dataclass).
"""

from collections.abc import Callable
from dataclasses import dataclass
from types import ModuleType
from typing import Any

from matplotlib.figure import Figure

from recipeflow.analyses import churn, ikea, pumpkins, unvotes, water
from recipeflow.analyses.base import AnalysisResult
from recipeflow.config.settings import AnalysisConfig, AnalysisName


@dataclass(frozen=True)
class Analysis:
    """Entry points of one analysis."""

    name: AnalysisName
    load: Callable[[AnalysisConfig], Any]
    explore: Callable[..., dict[str, Figure]]
    run: Callable[..., AnalysisResult]
    description: str

    @classmethod
    def from_module(cls, name: AnalysisName, module: ModuleType) -> "Analysis":
        doc = (module.__doc__ or "").strip().splitlines()
        return cls(
            name=name,
            load=module.load,
            explore=module.explore,
            run=module.run,
            description=doc[0] if doc else name.value,
        )


ANALYSES: dict[AnalysisName, Analysis] = {
    name: Analysis.from_module(name, module)
    for name, module in (
        (AnalysisName.UNVOTES, unvotes),
        (AnalysisName.WATER, water),
        (AnalysisName.CHURN, churn),
        (AnalysisName.PUMPKINS, pumpkins),
        (AnalysisName.IKEA, ikea),
    )
}


def get_analysis(name: AnalysisName | str) -> Analysis:
    """
    Look up an analysis by name.

    Raises:
        ValueError: If the name is not a known analysis.
    """
    return ANALYSES[AnalysisName(name)]


__all__ = ["ANALYSES", "Analysis", "AnalysisResult", "get_analysis"]
