"""
IKEA furniture prices: tuned random forest.

Log10 price is modelled from the product line, category and dimensions.
Random forest parameters are tuned over bootstrap resamples; the best
candidate is finalized, last-fit and explained with permutation
importance.
"""

from dataclasses import dataclass

import pandas as pd
from matplotlib.figure import Figure
from rich.console import Console

from recipeflow.analyses.base import (
    AnalysisResult,
    finish,
    make_models,
    make_resamples,
    make_split,
    model_grid,
    ranking_metric,
)
from recipeflow.config.settings import AnalysisConfig
from recipeflow.evaluation.experiment import track_analysis
from recipeflow.evaluation.importance import permutation_importance_table
from recipeflow.evaluation.plots import (
    plot_boxplot,
    plot_histogram,
    plot_importance,
    plot_predictions,
    plot_scatter,
    plot_tuning,
)
from recipeflow.evaluation.report import AnalysisReport
from recipeflow.ingestion import load_dataset
from recipeflow.modeling.parallel import parallel_backend
from recipeflow.modeling.workflows import LastFitResult, TuneResults, Workflow
from recipeflow.normalization import prepare_ikea
from recipeflow.recipes import Recipe
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)

OUTCOME = "price"
DIMENSIONS = ["depth", "height", "width"]


@dataclass(kw_only=True)
class IkeaResult(AnalysisResult):
    """
    Attributes:
        tuning: Resampled performance of every candidate.
        best_params: Parameters of the selected candidate.
        last_fit: Finalized workflow fitted on training, evaluated on test.
        importance: Permutation importance on the test set.
    """

    tuning: TuneResults
    best_params: dict
    last_fit: LastFitResult
    importance: pd.DataFrame


def load(config: AnalysisConfig) -> pd.DataFrame:
    return prepare_ikea(load_dataset(config, "ikea"))


def explore(config: AnalysisConfig, data: pd.DataFrame | None = None) -> dict[str, Figure]:
    df = data if data is not None else load(config)
    return {
        "ikea_price": plot_histogram(df, OUTCOME, title="log10 price"),
        "ikea_width": plot_scatter(df, "width", OUTCOME, title="Price vs width"),
        "ikea_category": plot_boxplot(
            df, "category", OUTCOME, title="Price by category"
        ),
    }


def build_recipe(config: AnalysisConfig) -> Recipe:
    """Rare names/categories lumped, dimensions imputed by KNN, dummies."""
    return (
        Recipe(OUTCOME)
        .step_other(
            ["name", "category"], threshold=config.option("other_threshold", 0.01)
        )
        .step_impute_knn(DIMENSIONS, neighbors=config.option("knn_neighbors", 5))
        .step_dummy()
    )


def run(
    config: AnalysisConfig,
    *,
    render: bool = True,
    use_cache: bool = True,
    console: Console | None = None,
) -> IkeaResult:
    """Tune, finalize, last-fit and explain the price model."""
    df = load(config)
    split = make_split(config, df, strata=OUTCOME)
    metric = ranking_metric(config, "rmse")

    model_name, model = next(
        iter(make_models(config, "regression", ["random_forest"]).items())
    )
    workflow = Workflow(
        build_recipe(config), model, recipe_name="ikea", model_name=model_name
    )
    grid = model_grid(config, model_name, "regression")
    if not grid:
        msg = f"No tuning grid for model '{model_name}'"
        raise ValueError(msg)
    resamples = make_resamples(config, split.training(), strata=OUTCOME)

    with parallel_backend(config.parallel.n_jobs, config.parallel.backend):
        tuning = workflow.tune_grid(
            resamples,
            grid,
            size=config.tuning.grid_size,
            random_state=config.random_state,
        )
        best_params = tuning.select_best(metric)
        final = workflow.finalize(best_params).last_fit(split)

    importance = permutation_importance_table(
        final.workflow,
        split.testing(),
        metric,
        n_repeats=config.option("importance_repeats", 5),
        random_state=config.random_state,
    )
    predictions = final.collect_predictions()

    report = AnalysisReport(
        title="IKEA prices: tuned random forest",
        project=config.project,
        metadata={
            "items": len(df),
            "training rows": len(split.train_idx),
            "test rows": len(split.test_idx),
            "resamples": len(resamples),
            "candidates": len(tuning.candidates),
        },
    )
    report.section("Recipe", "; ".join(workflow.recipe.describe()))

    tune = report.section("Tuning", f"Candidates ranked by {metric}")
    tune.add_table("Best candidates", tuning.show_best(metric))
    params = tuning.param_names
    tune.add_plot(
        "Tuning results",
        plot_tuning(
            tuning.collect_metrics(),
            params[0],
            hue=params[1] if len(params) > 1 else None,
        ),
    )

    test = report.section(
        "Test set", ", ".join(f"{k}={v}" for k, v in best_params.items())
    )
    test.add_table("Test metrics", final.collect_metrics())
    test.add_plot(
        "Predicted vs observed",
        plot_predictions(predictions[OUTCOME], predictions[".pred"]),
    )

    explain = report.section("Variable importance", f"Permutation importance ({metric})")
    explain.add_table("Importance", importance)
    explain.add_plot("Importance", plot_importance(importance))

    report_path, model_path = finish(
        config, report, render=render, console=console, last_fit=final
    )
    run_id = track_analysis(
        config,
        params={"metric": metric, **best_params},
        last_fit=final,
        artifacts=[report_path] if report_path else None,
    )
    return IkeaResult(
        report=report,
        report_path=report_path,
        model_path=model_path,
        mlflow_run_id=run_id,
        tuning=tuning,
        best_params=best_params,
        last_fit=final,
        importance=importance,
    )
