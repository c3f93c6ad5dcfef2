"""
Configuration loading utilities.

Supports environment variable interpolation and config inheritance.
Minimal configs only need: project, analysis, data.files
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from recipeflow.config.settings import (
    AnalysisConfig,
    AnalysisName,
    DataConfig,
    MLflowConfig,
    ModelsConfig,
    OutputConfig,
    ParallelConfig,
    ResamplingConfig,
    ResamplingMethod,
    SplitConfig,
    TuningConfig,
)


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _process_config_values(data) if data else {}


def build_config(merged: dict[str, Any]) -> AnalysisConfig:
    """
    Build a validated AnalysisConfig from a merged config dictionary.

    Args:
        merged: Raw configuration (already merged with base values).

    Returns:
        Fully validated AnalysisConfig instance.

    Raises:
        ValueError: If a required key is missing or a value is invalid.
    """
    project = merged.get("project")
    if not project:
        msg = "Config must specify 'project' name"
        raise ValueError(msg)

    analysis = merged.get("analysis")
    if not analysis:
        msg = "Config must specify 'analysis' (one of: " + ", ".join(
            a.value for a in AnalysisName
        ) + ")"
        raise ValueError(msg)

    data_data = merged.get("data", {})
    files = data_data.get("files")
    if not files:
        msg = "Config must specify 'data.files'"
        raise ValueError(msg)

    data = DataConfig(
        root=Path(data_data.get("root", "./data")),
        files={key: Path(value) for key, value in files.items()},
        results_cache=Path(data_data["results_cache"])
        if data_data.get("results_cache")
        else None,
    )

    split_data = merged.get("split", {})
    split = SplitConfig(
        prop=split_data.get("prop", 0.75),
        strata=split_data.get("strata"),
    )

    resampling_data = merged.get("resampling", {})
    resampling = ResamplingConfig(
        method=ResamplingMethod(resampling_data.get("method", "vfold")),
        folds=resampling_data.get("folds", 10),
        repeats=resampling_data.get("repeats", 1),
        times=resampling_data.get("times", 25),
        strata=resampling_data.get("strata"),
    )

    models_data = merged.get("models", {})
    models = ModelsConfig(
        enabled=models_data.get("enabled", []),
        params=models_data.get("params", {}),
        grids=models_data.get("grids", {}),
    )

    tuning_data = merged.get("tuning", {})
    tuning = TuningConfig(
        metric=tuning_data.get("metric"),
        grid_size=tuning_data.get("grid_size", 10),
    )

    parallel_data = merged.get("parallel", {})
    parallel = ParallelConfig(
        n_jobs=int(parallel_data.get("n_jobs", 1)),
        backend=parallel_data.get("backend", "loky"),
    )

    mlflow_data = merged.get("mlflow", {})
    mlflow = MLflowConfig(
        enabled=bool(mlflow_data.get("enabled", False)),
        tracking_uri=mlflow_data.get("tracking_uri", "http://127.0.0.1:5000"),
        experiment_name=mlflow_data.get("experiment_name"),
    )

    output_data = merged.get("output", {})
    output = OutputConfig(
        root=Path(output_data.get("root", "./output")),
        save_model=bool(output_data.get("save_model", False)),
    )

    return AnalysisConfig(
        project=project,
        analysis=AnalysisName(analysis),
        data=data,
        split=split,
        resampling=resampling,
        models=models,
        tuning=tuning,
        parallel=parallel,
        mlflow=mlflow,
        output=output,
        random_state=merged.get("random_state", 123),
        options=merged.get("options", {}),
    )


def load_config(
    config_path: Path,
    base_path: Path | None = None,
) -> AnalysisConfig:
    """
    Load analysis configuration from YAML file(s).

    Minimal config requires only:
        - project: str
        - analysis: one of unvotes, water, churn, pumpkins, ikea
        - data.files: mapping of dataset key to CSV path

    Args:
        config_path: Path to the analysis configuration file.
        base_path: Optional path to base configuration for inheritance.

    Returns:
        Fully validated AnalysisConfig instance.
    """
    if base_path is not None:
        base_data = load_yaml(base_path)
    else:
        potential_base = config_path.parent / "base.yaml"
        base_data = (
            load_yaml(potential_base)
            if potential_base.exists() and potential_base != config_path
            else {}
        )

    main_data = load_yaml(config_path)
    merged = _deep_merge(base_data, main_data)

    return build_config(merged)
