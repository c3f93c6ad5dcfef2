"""
Water point availability: random forest classifier.

Predicts whether a water point in one country has water available
(``status_id`` y/n) from its location, source, technology, installer,
installation year and payment.
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
    ranking_metric,
)
from recipeflow.config.settings import AnalysisConfig
from recipeflow.evaluation.experiment import track_analysis
from recipeflow.evaluation.importance import (
    model_importance_table,
    permutation_importance_table,
)
from recipeflow.evaluation.metrics import confusion_table, roc_curve_data
from recipeflow.evaluation.plots import (
    plot_confusion_matrix,
    plot_counts,
    plot_histogram,
    plot_importance,
    plot_roc_curves,
    plot_scatter,
)
from recipeflow.evaluation.report import AnalysisReport
from recipeflow.ingestion import load_dataset
from recipeflow.modeling.parallel import parallel_backend
from recipeflow.modeling.workflows import LastFitResult, ResampleResults, Workflow
from recipeflow.normalization import prepare_water
from recipeflow.recipes import Recipe
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)

OUTCOME = "status_id"


@dataclass(kw_only=True)
class WaterResult(AnalysisResult):
    """
    Attributes:
        resamples: Cross-validated performance of the workflow.
        last_fit: Final workflow and its test-set evaluation.
        confusion: Test-set confusion table.
        importance: Permutation importance on the test set.
    """

    resamples: ResampleResults
    last_fit: LastFitResult
    confusion: pd.DataFrame
    importance: pd.DataFrame


def load(config: AnalysisConfig) -> pd.DataFrame:
    raw = load_dataset(config, "water")
    return prepare_water(
        raw,
        country=config.option("country", "Sierra Leone"),
        max_install_year=config.option("max_install_year", 2021),
    )


def explore(config: AnalysisConfig, data: pd.DataFrame | None = None) -> dict[str, Figure]:
    df = data if data is not None else load(config)
    return {
        "water_map": plot_scatter(
            df, "lon_deg", "lat_deg", hue=OUTCOME, alpha=0.3, title="Water points"
        ),
        "water_install_year": plot_histogram(
            df, "install_year", hue=OUTCOME, title="Installation year"
        ),
        "water_pay": plot_counts(df, "pay", hue=OUTCOME, title="Payment"),
        "water_source": plot_counts(
            df, "water_source", hue=OUTCOME, title="Water source"
        ),
    }


def build_recipe(config: AnalysisConfig) -> Recipe:
    """Unknown levels, rare levels lumped, install year imputed, dummies."""
    return (
        Recipe(OUTCOME, ids=("row_id",))
        .step_unknown()
        .step_other(threshold=config.option("other_threshold", 0.03))
        .step_impute_linear(["install_year"])
        .step_dummy()
    )


def run(
    config: AnalysisConfig,
    *,
    render: bool = True,
    use_cache: bool = True,
    console: Console | None = None,
) -> WaterResult:
    """Resample, last-fit and explain the water availability classifier."""
    df = load(config)
    split = make_split(config, df, strata=OUTCOME)
    train = split.training()
    metric = ranking_metric(config, "roc_auc")

    model_name, model = next(
        iter(make_models(config, "classification", ["random_forest"]).items())
    )
    workflow = Workflow(
        build_recipe(config), model, recipe_name="water", model_name=model_name
    )
    resamples = make_resamples(config, train, strata=OUTCOME)

    with parallel_backend(config.parallel.n_jobs, config.parallel.backend):
        resampled = workflow.fit_resamples(resamples)
        final = workflow.last_fit(split)

    predictions = final.collect_predictions()
    confusion = confusion_table(predictions[OUTCOME], predictions[".pred"])
    importance = permutation_importance_table(
        final.workflow,
        split.testing(),
        metric,
        n_repeats=config.option("importance_repeats", 5),
        random_state=config.random_state,
    )

    report = AnalysisReport(
        title="Water point availability",
        project=config.project,
        metadata={
            "water points": len(df),
            "training rows": len(split.train_idx),
            "test rows": len(split.test_idx),
            "resamples": len(resamples),
            "workflow": workflow.id,
        },
    )
    report.section("Recipe", "; ".join(workflow.recipe.describe()))
    resampling = report.section("Resampling")
    resampling.add_table("Cross-validated metrics", resampled.collect_metrics())

    test = report.section("Test set", f"Event class: {final.event}")
    test.add_table("Test metrics", final.collect_metrics())
    test.add_table("Confusion matrix", confusion.reset_index())
    test.add_plot("Confusion matrix", plot_confusion_matrix(confusion))
    if final.event is not None:
        curve = roc_curve_data(
            predictions[OUTCOME], predictions[f".pred_{final.event}"], final.event
        )
        test.add_plot("ROC curve", plot_roc_curves({workflow.id: curve}))

    explain = report.section("Variable importance", f"Permutation importance ({metric})")
    explain.add_table("Importance", importance)
    explain.add_plot("Importance", plot_importance(importance))
    impurity = model_importance_table(final.workflow)
    if impurity is not None:
        explain.add_table("Impurity importance (processed columns)", impurity.head(15))

    report_path, model_path = finish(
        config, report, render=render, console=console, last_fit=final
    )
    run_id = track_analysis(
        config,
        params={"workflow": workflow.id, "resamples": len(resamples)},
        last_fit=final,
        artifacts=[report_path] if report_path else None,
    )
    return WaterResult(
        report=report,
        report_path=report_path,
        model_path=model_path,
        mlflow_run_id=run_id,
        resamples=resampled,
        last_fit=final,
        confusion=confusion,
        importance=importance,
    )
