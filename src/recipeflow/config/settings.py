"""
Typed configuration models using Pydantic.

Every analysis is parameterized here; no file names, split proportions
or grid values are hardcoded in the analysis modules.
"""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AnalysisName(str, Enum):
    """The analyses shipped with the package."""

    UNVOTES = "unvotes"
    WATER = "water"
    CHURN = "churn"
    PUMPKINS = "pumpkins"
    IKEA = "ikea"


class ResamplingMethod(str, Enum):
    """How resamples are drawn from the training set."""

    VFOLD = "vfold"
    BOOTSTRAP = "bootstrap"


class DataConfig(BaseModel):
    """Input file configuration.

    All paths are relative to root. Use resolve() to get full paths.

    files maps a dataset key (e.g. ``votes``, ``issues``) to a CSV path.
    results_cache is the optional serialized pre-computed results object.
    """

    model_config = ConfigDict(frozen=True)

    root: Path = Field(default=Path("./data"), description="Root directory for data")
    files: dict[str, Path] = Field(description="Dataset key -> CSV path")
    results_cache: Path | None = Field(
        default=None, description="Serialized pre-computed results (joblib)"
    )

    @field_validator("files")
    @classmethod
    def validate_files(cls, v: dict[str, Path]) -> dict[str, Path]:
        """Require at least one input file."""
        if not v:
            msg = "data.files must name at least one CSV file"
            raise ValueError(msg)
        return v

    def resolve(self, key: str) -> Path:
        """Resolve a dataset key against root."""
        if key not in self.files:
            available = ", ".join(sorted(self.files))
            msg = f"Dataset '{key}' is not configured. Available: {available}"
            raise KeyError(msg)
        return self.root / self.files[key]

    @property
    def results_cache_path(self) -> Path | None:
        """Full path of the results cache, if configured."""
        if self.results_cache is None:
            return None
        return self.root / self.results_cache


class SplitConfig(BaseModel):
    """Initial train/test split."""

    model_config = ConfigDict(frozen=True)

    prop: float = Field(default=0.75, gt=0.0, lt=1.0, description="Training share")
    strata: str | None = Field(default=None, description="Stratification column")


class ResamplingConfig(BaseModel):
    """Resampling scheme used for fit_resamples and tune_grid."""

    model_config = ConfigDict(frozen=True)

    method: ResamplingMethod = ResamplingMethod.VFOLD
    folds: int = Field(default=10, ge=2, le=50)
    repeats: int = Field(default=1, ge=1, le=20)
    times: int = Field(default=25, ge=2, le=1000, description="Bootstrap resamples")
    strata: str | None = None


class ModelsConfig(BaseModel):
    """Model selection and hyperparameter grids."""

    model_config = ConfigDict(frozen=True)

    enabled: list[str] = Field(default_factory=list, description="Model names")
    params: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Fixed parameter overrides per model"
    )
    grids: dict[str, dict[str, list[Any]]] = Field(
        default_factory=dict, description="Tuning grids per model"
    )


class TuningConfig(BaseModel):
    """Hyperparameter search configuration."""

    model_config = ConfigDict(frozen=True)

    metric: str | None = Field(
        default=None, description="Metric used to rank workflows and candidates"
    )
    grid_size: int = Field(default=10, ge=1, le=500)


class ParallelConfig(BaseModel):
    """Parallel backend configuration for resampling."""

    model_config = ConfigDict(frozen=True)

    n_jobs: int = Field(default=1, description="Worker processes (-1 = all cores)")
    backend: str = Field(default="loky")

    @field_validator("n_jobs")
    @classmethod
    def validate_n_jobs(cls, v: int) -> int:
        """Reject zero, which joblib does not accept."""
        if v == 0:
            msg = "parallel.n_jobs must be a positive integer or -1"
            raise ValueError(msg)
        return v


class MLflowConfig(BaseModel):
    """Optional MLflow experiment tracking."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    tracking_uri: str = Field(default="http://127.0.0.1:5000")
    experiment_name: str | None = Field(
        default=None, description="MLflow experiment name (defaults to project name)"
    )


class OutputConfig(BaseModel):
    """Output paths configuration.

    Structure: ./output/{project}/plots, ./output/{project}/reports, etc.
    """

    model_config = ConfigDict(frozen=True)

    root: Path = Field(default=Path("./output"))
    save_model: bool = Field(
        default=False, description="Serialize the final fitted workflow"
    )


class AnalysisConfig(BaseModel):
    """Complete configuration for one analysis run."""

    model_config = ConfigDict(frozen=True)

    project: str = Field(description="Project identifier (e.g. 'pumpkins-2021')")
    analysis: AnalysisName
    data: DataConfig
    split: SplitConfig = Field(default_factory=SplitConfig)
    resampling: ResamplingConfig = Field(default_factory=ResamplingConfig)
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    tuning: TuningConfig = Field(default_factory=TuningConfig)
    parallel: ParallelConfig = Field(default_factory=ParallelConfig)
    mlflow: MLflowConfig = Field(default_factory=MLflowConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    random_state: int = Field(default=123)
    options: dict[str, Any] = Field(
        default_factory=dict, description="Analysis-specific settings"
    )

    @model_validator(mode="after")
    def validate_resampling(self) -> "AnalysisConfig":
        """Bootstrap resampling ignores repeats; reject ambiguous configs."""
        if (
            self.resampling.method == ResamplingMethod.BOOTSTRAP
            and self.resampling.repeats > 1
        ):
            msg = "resampling.repeats only applies to vfold resampling"
            raise ValueError(msg)
        return self

    @property
    def experiment_name(self) -> str:
        """MLflow experiment name (derived from project if not set)."""
        return self.mlflow.experiment_name or self.project

    def option(self, key: str, default: Any = None) -> Any:
        """Look up an analysis-specific option."""
        return self.options.get(key, default)

    @property
    def plots_dir(self) -> Path:
        """Path to plots output directory."""
        return self.output.root / self.project / "plots"

    @property
    def reports_dir(self) -> Path:
        """Path to rendered reports."""
        return self.output.root / self.project / "reports"

    @property
    def models_dir(self) -> Path:
        """Path to serialized models."""
        return self.output.root / self.project / "models"

    @property
    def cache_dir(self) -> Path:
        """Path to cache directory."""
        return self.output.root / self.project / "cache"
