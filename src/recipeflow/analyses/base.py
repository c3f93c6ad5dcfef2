"""
Shared plumbing for analyses.

Every analysis follows the same shape: load and clean, explore, split,
define recipes and models, resample or tune, evaluate, fit the final
workflow. The helpers here turn configuration sections into the objects
those steps need and write the outputs.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from matplotlib.figure import Figure
from rich.console import Console
from sklearn.base import BaseEstimator

from recipeflow.config.settings import AnalysisConfig, ResamplingMethod
from recipeflow.evaluation.plots import save_figure
from recipeflow.evaluation.report import AnalysisReport, write_report
from recipeflow.modeling.models import get_model, get_param_grid
from recipeflow.modeling.persistence import save_model
from recipeflow.modeling.resampling import (
    Resamples,
    Split,
    bootstraps,
    initial_split,
    vfold_cv,
)
from recipeflow.modeling.workflows import LastFitResult
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(kw_only=True)
class AnalysisResult:
    """
    Outputs common to every analysis.

    Attributes:
        report: The analysis document.
        report_path: Where the HTML document was written, if rendered.
        model_path: Where the final workflow was saved, if requested.
        mlflow_run_id: MLflow run id, if tracking is enabled.
    """

    report: AnalysisReport
    report_path: Path | None = None
    model_path: Path | None = None
    mlflow_run_id: str | None = None


def make_split(config: AnalysisConfig, df: pd.DataFrame, strata: str | None) -> Split:
    """Initial split from the ``split`` section (``strata`` is the fallback)."""
    return initial_split(
        df,
        prop=config.split.prop,
        strata=config.split.strata or strata,
        random_state=config.random_state,
    )


def make_resamples(
    config: AnalysisConfig, df: pd.DataFrame, strata: str | None
) -> Resamples:
    """Resamples of the training set from the ``resampling`` section."""
    settings = config.resampling
    chosen_strata = settings.strata or strata
    if settings.method == ResamplingMethod.BOOTSTRAP:
        return bootstraps(
            df,
            times=settings.times,
            strata=chosen_strata,
            random_state=config.random_state,
        )
    return vfold_cv(
        df,
        v=settings.folds,
        repeats=settings.repeats,
        strata=chosen_strata,
        random_state=config.random_state,
    )


def make_models(
    config: AnalysisConfig,
    mode: str,
    defaults: Sequence[str],
) -> dict[str, BaseEstimator]:
    """
    Model specifications for the enabled models.

    ``models.enabled`` overrides ``defaults``; ``models.params`` overrides
    registry parameters. Models with a ``random_state`` parameter get the
    configured seed unless it is set explicitly.
    """
    names = config.models.enabled or list(defaults)
    models = {}
    for name in names:
        params: dict[str, Any] = dict(config.models.params.get(name, {}))
        model = get_model(name, mode, **params)
        if "random_state" in model.get_params() and "random_state" not in params:
            model.set_params(random_state=config.random_state)
        models[name] = model
    return models


def model_grid(
    config: AnalysisConfig, name: str, mode: str
) -> dict[str, list[Any]] | None:
    """Tuning grid for a model: configured grid, else the registry default."""
    return config.models.grids.get(name) or get_param_grid(name, mode)


def ranking_metric(config: AnalysisConfig, default: str) -> str:
    return config.tuning.metric or default


def save_plots(config: AnalysisConfig, figures: dict[str, Figure]) -> dict[str, Path]:
    """Write figures to ``plots_dir`` as ``<name>.png`` (figures are closed)."""
    return {
        name: save_figure(fig, config.plots_dir / f"{name}.png")
        for name, fig in figures.items()
    }


def finish(
    config: AnalysisConfig,
    report: AnalysisReport,
    *,
    render: bool,
    console: Console | None,
    last_fit: LastFitResult | None = None,
) -> tuple[Path | None, Path | None]:
    """
    Print the report tables, write the HTML document and export the model.

    Returns:
        Tuple of (report_path, model_path), each None when not written.
    """
    report.print(console)

    report_path = None
    if render:
        report_path = write_report(
            report, config.reports_dir / f"{config.analysis.value}.html"
        )

    model_path = None
    if config.output.save_model and last_fit is not None:
        model_path, _ = save_model(
            last_fit.workflow,
            config.models_dir / last_fit.workflow.id,
            metadata={"project": config.project, "test_metrics": last_fit.metrics},
        )
    return report_path, model_path
