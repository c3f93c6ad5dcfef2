"""
Telco customer churn: comparing workflows.

Two recipes (plain and log-transformed charges) crossed with several
classifiers. Resampling every workflow is slow, so the evaluated workflow
set is cached on disk and reused on later runs.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

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
from recipeflow.evaluation.metrics import confusion_table, roc_curve_data
from recipeflow.evaluation.plots import (
    plot_boxplot,
    plot_confusion_matrix,
    plot_counts,
    plot_roc_curves,
    plot_workflow_ranking,
)
from recipeflow.evaluation.report import AnalysisReport
from recipeflow.ingestion import load_dataset
from recipeflow.modeling.parallel import parallel_backend
from recipeflow.modeling.persistence import has_results, load_results, save_results
from recipeflow.modeling.workflows import LastFitResult, WorkflowSet
from recipeflow.normalization import prepare_churn
from recipeflow.recipes import Recipe
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)

OUTCOME = "Churn"
LOG_COLUMNS = ["tenure", "MonthlyCharges", "TotalCharges"]
DEFAULT_MODELS = ["logistic_regression", "svm", "knn", "random_forest", "mars"]


@dataclass(kw_only=True)
class ChurnResult(AnalysisResult):
    """
    Attributes:
        workflow_set: Every evaluated recipe x model workflow.
        ranking: Workflows ranked by the ranking metric.
        last_fit: Best workflow fitted on the training set, evaluated on test.
        from_cache: Whether the workflow set was read from the cache.
    """

    workflow_set: WorkflowSet
    ranking: pd.DataFrame
    last_fit: LastFitResult
    from_cache: bool = False


def load(config: AnalysisConfig) -> pd.DataFrame:
    return prepare_churn(load_dataset(config, "churn"))


def explore(config: AnalysisConfig, data: pd.DataFrame | None = None) -> dict[str, Figure]:
    df = data if data is not None else load(config)
    return {
        "churn_contract": plot_counts(df, "Contract", hue=OUTCOME, title="Contract"),
        "churn_internet": plot_counts(
            df, "InternetService", hue=OUTCOME, title="Internet service"
        ),
        "churn_tenure": plot_boxplot(df, OUTCOME, "tenure", title="Tenure (months)"),
        "churn_monthly": plot_boxplot(
            df, OUTCOME, "MonthlyCharges", title="Monthly charges"
        ),
    }


def build_recipes() -> dict[str, Recipe]:
    """``base`` and ``log`` recipes; ``log`` adds log(x + 1) of the charges."""
    start = Recipe(OUTCOME, ids=("customerID",)).step_impute_median()
    return {
        "base": start.step_dummy().step_zv().step_normalize(),
        "log": start.step_log(LOG_COLUMNS, offset=1)
        .step_dummy()
        .step_zv()
        .step_normalize(),
    }


def cache_path(config: AnalysisConfig) -> Path:
    """Base path of the cached workflow set."""
    return config.data.results_cache_path or config.cache_dir / "churn_workflow_set"


def cache_key(config: AnalysisConfig) -> dict[str, Any]:
    """Settings a cached workflow set must have been evaluated with."""
    models = make_models(config, "classification", DEFAULT_MODELS)
    return {
        "workflows": WorkflowSet.cross(build_recipes(), models).ids,
        "random_state": config.random_state,
        "tune": bool(config.option("tune", False)),
        "resampling": config.resampling.model_dump(mode="json"),
    }


def stale_cache_keys(config: AnalysisConfig, metadata: dict[str, Any]) -> list[str]:
    """Cache key entries whose saved value differs from the current config."""
    return [
        key for key, value in cache_key(config).items() if metadata.get(key) != value
    ]


def evaluate_workflow_set(
    config: AnalysisConfig, train: pd.DataFrame, metric: str
) -> WorkflowSet:
    """Resample (or tune, with ``options.tune``) every recipe x model pair."""
    models = make_models(config, "classification", DEFAULT_MODELS)
    wset = WorkflowSet.cross(build_recipes(), models)
    resamples = make_resamples(config, train, strata=OUTCOME)

    with parallel_backend(config.parallel.n_jobs, config.parallel.backend):
        if config.option("tune", False):
            grids = {name: model_grid(config, name, "classification") for name in models}
            wset.tune_grid(
                resamples,
                {name: grid for name, grid in grids.items() if grid},
                size=config.tuning.grid_size,
                random_state=config.random_state,
            )
        else:
            wset.fit_resamples(resamples)

    log.info(
        "Evaluated churn workflows",
        n_workflows=len(wset),
        best=wset.rank_results(metric).loc[0, "wflow_id"],
    )
    return wset


def run(
    config: AnalysisConfig,
    *,
    render: bool = True,
    use_cache: bool = True,
    console: Console | None = None,
) -> ChurnResult:
    """Rank the churn workflows and last-fit the best one."""
    df = load(config)
    split = make_split(config, df, strata=OUTCOME)
    metric = ranking_metric(config, "roc_auc")

    path = cache_path(config)
    from_cache = use_cache and has_results(path)
    if from_cache:
        wset, metadata = load_results(path)
        stale = stale_cache_keys(config, metadata)
        if stale:
            log.warning(
                "Cached workflow set does not match config, re-evaluating",
                path=str(path),
                changed=stale,
            )
            from_cache = False
        else:
            log.info(
                "Using cached workflow set",
                path=str(path),
                saved_at=metadata.get("saved_at"),
            )
    if not from_cache:
        wset = evaluate_workflow_set(config, split.training(), metric)
        save_results(
            wset,
            path,
            metadata={"project": config.project, **cache_key(config)},
        )

    ranking = wset.rank_results(metric)
    best = wset.best_workflow(metric)
    with parallel_backend(config.parallel.n_jobs, config.parallel.backend):
        final = best.last_fit(split)

    predictions = final.collect_predictions()
    confusion = confusion_table(predictions[OUTCOME], predictions[".pred"])

    report = AnalysisReport(
        title="Customer churn: workflow comparison",
        project=config.project,
        metadata={
            "customers": len(df),
            "training rows": len(split.train_idx),
            "test rows": len(split.test_idx),
            "workflows": len(wset),
            "cached results": from_cache,
            "best workflow": best.id,
        },
    )
    steps = {name: "; ".join(rec.describe()) for name, rec in build_recipes().items()}
    report.section("Recipes", " ".join(f"{k}: {v}." for k, v in steps.items()))

    comparison = report.section("Workflow comparison", f"Ranked by {metric}")
    comparison.add_table(
        "Ranking", ranking[ranking[".metric"] == metric].reset_index(drop=True)
    )
    comparison.add_table("All metrics", ranking)
    comparison.add_plot("Ranking", plot_workflow_ranking(ranking, metric))

    test = report.section("Test set", f"{best.id}, event class {final.event}")
    test.add_table("Test metrics", final.collect_metrics())
    test.add_table("Confusion matrix", confusion.reset_index())
    test.add_plot("Confusion matrix", plot_confusion_matrix(confusion))
    if final.event is not None:
        curve = roc_curve_data(
            predictions[OUTCOME], predictions[f".pred_{final.event}"], final.event
        )
        test.add_plot("ROC curve", plot_roc_curves({best.id: curve}))

    report_path, model_path = finish(
        config, report, render=render, console=console, last_fit=final
    )
    run_id = track_analysis(
        config,
        params={"metric": metric, "from_cache": from_cache},
        workflow_set=wset,
        metric=metric,
        last_fit=final,
        artifacts=[report_path] if report_path else None,
    )
    return ChurnResult(
        report=report,
        report_path=report_path,
        model_path=model_path,
        mlflow_run_id=run_id,
        workflow_set=wset,
        ranking=ranking,
        last_fit=final,
        from_cache=from_cache,
    )
