"""
Giant pumpkin weights: regression workflow set.

Weight is predicted from the over-the-top measurement (``ot``), the
growing site and the country. A spline recipe lets linear models bend
with ``ot``; tree and MARS models see the raw measurement.
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
from recipeflow.evaluation.plots import (
    plot_boxplot,
    plot_histogram,
    plot_predictions,
    plot_scatter,
    plot_workflow_ranking,
)
from recipeflow.evaluation.report import AnalysisReport
from recipeflow.ingestion import load_dataset
from recipeflow.modeling.parallel import parallel_backend
from recipeflow.modeling.workflows import LastFitResult, WorkflowSet
from recipeflow.normalization import lump_rare, prepare_pumpkins
from recipeflow.recipes import Recipe
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)

OUTCOME = "weight_lbs"
DEFAULT_MODELS = ["random_forest", "mars", "linear_regression"]


@dataclass(kw_only=True)
class PumpkinsResult(AnalysisResult):
    """
    Attributes:
        workflow_set: Every evaluated recipe x model workflow.
        ranking: Workflows ranked by the ranking metric.
        last_fit: Best workflow fitted on the training set, evaluated on test.
    """

    workflow_set: WorkflowSet
    ranking: pd.DataFrame
    last_fit: LastFitResult


def load(config: AnalysisConfig) -> pd.DataFrame:
    return prepare_pumpkins(
        load_dataset(config, "pumpkins"),
        type_code=config.option("type_code", "P"),
        ot_min=config.option("ot_min", 20.0),
        ot_max=config.option("ot_max", 1000.0),
    )


def explore(config: AnalysisConfig, data: pd.DataFrame | None = None) -> dict[str, Figure]:
    df = data if data is not None else load(config)
    by_country = df.assign(country=lump_rare(df["country"], threshold=0.02))
    return {
        "pumpkins_weight": plot_histogram(df, OUTCOME, title="Weight (lbs)"),
        "pumpkins_ot": plot_scatter(
            df, "ot", OUTCOME, hue="year", title="Weight vs over-the-top"
        ),
        "pumpkins_country": plot_boxplot(
            by_country, "country", OUTCOME, title="Weight by country"
        ),
    }


def build_recipes(config: AnalysisConfig) -> dict[str, Recipe]:
    """``base`` (lumped levels, dummies) and ``spline`` (plus splines of ot)."""
    base = (
        Recipe(OUTCOME)
        .select("ot", "gpc_site", "country")
        .step_other(
            ["country", "gpc_site"], threshold=config.option("other_threshold", 0.02)
        )
        .step_dummy()
    )
    return {
        "base": base,
        "spline": base.step_ns(["ot"], deg_free=config.option("deg_free", 10)),
    }


def run(
    config: AnalysisConfig,
    *,
    render: bool = True,
    use_cache: bool = True,
    console: Console | None = None,
) -> PumpkinsResult:
    """Compare the pumpkin workflows and last-fit the best one."""
    df = load(config)
    split = make_split(config, df, strata=OUTCOME)
    metric = ranking_metric(config, "rmse")

    models = make_models(config, "regression", DEFAULT_MODELS)
    wset = WorkflowSet.cross(build_recipes(config), models)
    resamples = make_resamples(config, split.training(), strata=OUTCOME)

    with parallel_backend(config.parallel.n_jobs, config.parallel.backend):
        wset.fit_resamples(resamples)
        ranking = wset.rank_results(metric)
        best = wset.best_workflow(metric)
        final = best.last_fit(split)

    predictions = final.collect_predictions()

    report = AnalysisReport(
        title="Giant pumpkin weights: workflow comparison",
        project=config.project,
        metadata={
            "pumpkins": len(df),
            "training rows": len(split.train_idx),
            "test rows": len(split.test_idx),
            "resamples": len(resamples),
            "workflows": len(wset),
            "best workflow": best.id,
        },
    )
    comparison = report.section("Workflow comparison", f"Ranked by {metric}")
    comparison.add_table(
        "Ranking", ranking[ranking[".metric"] == metric].reset_index(drop=True)
    )
    comparison.add_table("All metrics", ranking)
    comparison.add_plot("Ranking", plot_workflow_ranking(ranking, metric))

    test = report.section("Test set", best.id)
    test.add_table("Test metrics", final.collect_metrics())
    test.add_plot(
        "Predicted vs observed",
        plot_predictions(predictions[OUTCOME], predictions[".pred"]),
    )

    report_path, model_path = finish(
        config, report, render=render, console=console, last_fit=final
    )
    run_id = track_analysis(
        config,
        params={"metric": metric, "resamples": len(resamples)},
        workflow_set=wset,
        metric=metric,
        last_fit=final,
        artifacts=[report_path] if report_path else None,
    )
    return PumpkinsResult(
        report=report,
        report_path=report_path,
        model_path=model_path,
        mlflow_run_id=run_id,
        workflow_set=wset,
        ranking=ranking,
        last_fit=final,
    )
