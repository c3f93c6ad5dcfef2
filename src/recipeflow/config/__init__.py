"""
Configuration management with typed Pydantic models.

One YAML file per analysis, optionally inheriting from a shared base.yaml.
"""

from recipeflow.config.loader import load_config
from recipeflow.config.settings import (
    AnalysisConfig,
    AnalysisName,
    DataConfig,
    MLflowConfig,
    ModelsConfig,
    ParallelConfig,
    ResamplingConfig,
    ResamplingMethod,
    SplitConfig,
    TuningConfig,
)

__all__ = [
    "AnalysisConfig",
    "AnalysisName",
    "DataConfig",
    "MLflowConfig",
    "ModelsConfig",
    "ParallelConfig",
    "ResamplingConfig",
    "ResamplingMethod",
    "SplitConfig",
    "TuningConfig",
    "load_config",
]
