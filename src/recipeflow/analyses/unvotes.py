"""
UN General Assembly votes: dimensionality reduction.

Countries are described by how they voted on every roll call. PCA on the
normalized vote matrix gives interpretable components (loadings are joined
to the roll call issues); UMAP gives a non-linear 2D map of the same data.
"""

from dataclasses import dataclass

import pandas as pd
from matplotlib.figure import Figure
from rich.console import Console

from recipeflow.analyses.base import AnalysisResult, finish
from recipeflow.config.settings import AnalysisConfig
from recipeflow.evaluation.experiment import track_analysis
from recipeflow.evaluation.plots import (
    plot_counts,
    plot_embedding,
    plot_histogram,
    plot_loadings,
    plot_variance_explained,
)
from recipeflow.evaluation.report import AnalysisReport
from recipeflow.ingestion import load_dataset
from recipeflow.normalization import prepare_unvotes
from recipeflow.recipes import Recipe
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(kw_only=True)
class UnVotesResult(AnalysisResult):
    """
    Attributes:
        scores: One row per country with its component scores.
        loadings: Long PCA loadings (``terms``, ``component``, ``value``)
            with the issues of each roll call.
        variance: Variance explained per component.
        embedding: UMAP coordinates per country, if computed.
    """

    scores: pd.DataFrame
    loadings: pd.DataFrame
    variance: pd.DataFrame
    embedding: pd.DataFrame | None = None


def load(config: AnalysisConfig) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Country x roll call vote matrix and the roll call issues."""
    votes = load_dataset(config, "votes")
    issues = load_dataset(config, "issues")
    wide = prepare_unvotes(votes, min_votes=config.option("min_votes", 0))
    return wide, issues


def explore(
    config: AnalysisConfig, data: tuple[pd.DataFrame, pd.DataFrame] | None = None
) -> dict[str, Figure]:
    wide, issues = data if data is not None else load(config)
    agreement = pd.DataFrame(
        {
            "country": wide["country"],
            "mean_vote": wide.drop(columns="country").mean(axis=1),
        }
    )
    return {
        "unvotes_issues": plot_counts(issues, "issue", title="Roll calls per issue"),
        "unvotes_mean_vote": plot_histogram(
            agreement, "mean_vote", title="Mean vote per country (yes=1, no=-1)"
        ),
    }


def join_issues(loadings: pd.DataFrame, issues: pd.DataFrame) -> pd.DataFrame:
    """
    Attach roll call issues to PCA loadings.

    A roll call can touch several issues; they are joined into one label.
    Roll calls without an issue get ``NA``.
    """
    labels = (
        issues.groupby("rcid")["short_name"]
        .agg(lambda s: ",".join(sorted(set(s))))
        .rename("issue")
    )
    joined = loadings.assign(rcid=loadings["terms"].astype(int)).merge(
        labels, left_on="rcid", right_index=True, how="left"
    )
    return joined.assign(issue=joined["issue"].fillna("NA"))


def run(
    config: AnalysisConfig,
    *,
    render: bool = True,
    use_cache: bool = True,
    console: Console | None = None,
) -> UnVotesResult:
    """PCA and UMAP of the vote matrix."""
    wide, issues = load(config)
    num_comp = config.option("num_comp", 5)
    log.info("Running UN votes analysis", countries=len(wide), num_comp=num_comp)

    pca_recipe = Recipe(ids=("country",)).step_normalize().step_pca(num_comp=num_comp)
    prepped = pca_recipe.prep(wide)
    scores = prepped.bake(wide)
    loadings = join_issues(prepped.tidy("pca"), issues)
    variance = prepped.step("pca").variance_explained()
    components = list(variance["component"])

    report = AnalysisReport(
        title="UN votes: principal components and UMAP",
        project=config.project,
        metadata={
            "countries": len(wide),
            "roll calls": wide.shape[1] - 1,
            "components": len(components),
        },
    )
    pca_section = report.section(
        "Principal components",
        "Votes are normalized per roll call before PCA.",
    )
    pca_section.add_table("Variance explained", variance)
    pca_section.add_table(
        "Top loadings",
        loadings.reindex(loadings["value"].abs().sort_values(ascending=False).index)
        .head(20)
        .reset_index(drop=True),
    )
    if len(components) >= 2:
        pca_section.add_plot(
            "Countries on the first two components",
            plot_embedding(scores, components[0], components[1], label="country"),
        )
    pca_section.add_plot(
        "Loadings by issue",
        plot_loadings(loadings, components[:4], label="issue"),
    )
    pca_section.add_plot("Variance explained", plot_variance_explained(variance))

    embedding = None
    if config.option("umap", True):
        umap_recipe = (
            Recipe(ids=("country",))
            .step_normalize()
            .step_umap(
                num_comp=2,
                neighbors=config.option("umap_neighbors", 15),
                min_dist=config.option("umap_min_dist", 0.01),
                random_state=config.random_state,
            )
        )
        embedding = umap_recipe.prep(wide).juice()
        report.section("UMAP").add_plot(
            "Countries in the UMAP embedding",
            plot_embedding(embedding, "UMAP1", "UMAP2", label="country"),
        )

    report_path, _ = finish(config, report, render=render, console=console)
    run_id = track_analysis(
        config,
        params={"num_comp": num_comp, "umap": embedding is not None},
        artifacts=[report_path] if report_path else None,
    )
    return UnVotesResult(
        report=report,
        report_path=report_path,
        mlflow_run_id=run_id,
        scores=scores,
        loadings=loadings,
        variance=variance,
        embedding=embedding,
    )
