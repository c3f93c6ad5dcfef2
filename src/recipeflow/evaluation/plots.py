"""
Exploratory and model plots.

Every function returns a matplotlib Figure; callers either embed it in a
report (``fig_to_base64``) or write it to disk (``save_figure``). Figures
are closed by those two helpers.
"""

import base64
from io import BytesIO
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.figure import Figure

from recipeflow.utils.logging import get_logger

log = get_logger(__name__)

PALETTE = "viridis"


def fig_to_base64(fig: Figure) -> str:
    """Convert a figure to a base64 PNG string and close it."""
    buf = BytesIO()
    fig.savefig(buf, format="png", dpi=120, bbox_inches="tight")
    plt.close(fig)
    buf.seek(0)
    return base64.b64encode(buf.read()).decode("utf-8")


def save_figure(fig: Figure, path: Path) -> Path:
    """Write a figure as PNG and close it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, format="png", dpi=120, bbox_inches="tight")
    plt.close(fig)
    log.debug("Saved plot", path=str(path))
    return path


# Exploratory plots


def plot_counts(
    df: pd.DataFrame,
    column: str,
    hue: str | None = None,
    top_n: int = 20,
    title: str | None = None,
) -> Figure:
    """Horizontal bar chart of the most frequent levels of a column."""
    order = df[column].value_counts().head(top_n).index
    fig, ax = plt.subplots(figsize=(8, max(3, len(order) * 0.35)))
    sns.countplot(
        data=df[df[column].isin(order)],
        y=column,
        hue=hue,
        order=order,
        palette=PALETTE if hue else None,
        ax=ax,
    )
    ax.set_title(title or f"Counts of {column}")
    ax.set_xlabel("count")
    fig.tight_layout()
    return fig


def plot_histogram(
    df: pd.DataFrame,
    column: str,
    hue: str | None = None,
    bins: int = 30,
    log_scale: bool = False,
    title: str | None = None,
) -> Figure:
    """Histogram of a numeric column, optionally split by a category."""
    fig, ax = plt.subplots(figsize=(8, 5))
    sns.histplot(
        data=df,
        x=column,
        hue=hue,
        bins=bins,
        log_scale=log_scale,
        element="step" if hue else "bars",
        ax=ax,
    )
    ax.set_title(title or f"Distribution of {column}")
    fig.tight_layout()
    return fig


def plot_scatter(
    df: pd.DataFrame,
    x: str,
    y: str,
    hue: str | None = None,
    alpha: float = 0.5,
    title: str | None = None,
) -> Figure:
    """Scatterplot of two columns."""
    fig, ax = plt.subplots(figsize=(8, 6))
    sns.scatterplot(data=df, x=x, y=y, hue=hue, alpha=alpha, s=15, ax=ax)
    ax.set_title(title or f"{y} vs {x}")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_boxplot(
    df: pd.DataFrame,
    x: str,
    y: str,
    title: str | None = None,
) -> Figure:
    """Distribution of a numeric column per level of a category."""
    order = df.groupby(x)[y].median().sort_values().index
    fig, ax = plt.subplots(figsize=(9, max(4, len(order) * 0.4)))
    sns.boxplot(data=df, x=y, y=x, order=order, color="#4a90a4", ax=ax)
    ax.set_title(title or f"{y} by {x}")
    fig.tight_layout()
    return fig


# Dimensionality reduction


def plot_embedding(
    scores: pd.DataFrame,
    x: str,
    y: str,
    label: str | None = None,
    title: str | None = None,
) -> Figure:
    """Scores of two components, optionally labelled per point."""
    fig, ax = plt.subplots(figsize=(9, 7))
    ax.scatter(scores[x], scores[y], s=12, alpha=0.7, color="#4a90a4")
    if label is not None:
        for _, row in scores.iterrows():
            ax.annotate(str(row[label]), (row[x], row[y]), fontsize=6, alpha=0.8)
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(title or f"{y} vs {x}")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_loadings(
    loadings: pd.DataFrame,
    components: list[str],
    label: str = "terms",
    top_n: int = 10,
) -> Figure:
    """
    Largest absolute loadings per component.

    Args:
        loadings: Long table with ``component``, ``value`` and ``label``
            columns (e.g. from a PCA step's ``tidy``).
        components: Components to show, one panel each.
        label: Column naming each loading.
        top_n: Loadings per component.
    """
    fig, axes = plt.subplots(
        1, len(components), figsize=(5 * len(components), 5), squeeze=False
    )
    for ax, component in zip(axes[0], components, strict=True):
        rows = loadings[loadings["component"] == component]
        top = rows.reindex(rows["value"].abs().sort_values(ascending=False).index).head(
            top_n
        )
        colors = np.where(top["value"] > 0, "#4a90a4", "#d9534f")
        ax.barh(top[label].astype(str), top["value"], color=colors)
        ax.invert_yaxis()
        ax.set_title(component)
        ax.axvline(0, color="black", linewidth=0.8)
    fig.tight_layout()
    return fig


def plot_variance_explained(variance: pd.DataFrame) -> Figure:
    """Percent variance per component with the cumulative share."""
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.bar(variance["component"], variance["percent_variance"], color="#4a90a4")
    ax.plot(
        variance["component"],
        variance["cumulative_percent_variance"],
        color="#d9534f",
        marker="o",
        label="cumulative",
    )
    ax.set_ylabel("percent variance")
    ax.set_title("Variance explained")
    ax.legend()
    fig.tight_layout()
    return fig


# Model evaluation


def plot_workflow_ranking(ranked: pd.DataFrame, metric: str) -> Figure:
    """Mean and standard error of a metric per ranked workflow."""
    rows = ranked[ranked[".metric"] == metric].sort_values("rank")
    fig, ax = plt.subplots(figsize=(9, max(3, len(rows) * 0.45)))
    ax.errorbar(
        rows["mean"],
        rows["wflow_id"],
        xerr=rows["std_err"].fillna(0),
        fmt="o",
        color="#4a90a4",
        capsize=3,
    )
    ax.invert_yaxis()
    ax.set_xlabel(metric)
    ax.set_title(f"Workflows ranked by {metric}")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_tuning(metrics: pd.DataFrame, param: str, hue: str | None = None) -> Figure:
    """Tuning curves: mean metric vs one parameter, one panel per metric."""
    names = list(dict.fromkeys(metrics[".metric"]))
    fig, axes = plt.subplots(1, len(names), figsize=(5 * len(names), 4), squeeze=False)
    for ax, name in zip(axes[0], names, strict=True):
        rows = metrics[metrics[".metric"] == name]
        sns.lineplot(
            data=rows,
            x=param,
            y="mean",
            hue=hue,
            marker="o",
            palette=PALETTE if hue else None,
            ax=ax,
        )
        ax.set_title(name)
        ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_confusion_matrix(table: pd.DataFrame, title: str = "Confusion matrix") -> Figure:
    """Heatmap of a confusion table (truth rows, prediction columns)."""
    fig, ax = plt.subplots(figsize=(5, 4))
    sns.heatmap(table, annot=True, fmt="d", cmap="Blues", cbar=False, ax=ax)
    ax.set_title(title)
    fig.tight_layout()
    return fig


def plot_roc_curves(curves: dict[str, pd.DataFrame]) -> Figure:
    """ROC curves (sensitivity vs 1 - specificity), one line per name."""
    fig, ax = plt.subplots(figsize=(6, 6))
    for name, curve in curves.items():
        ax.plot(1 - curve["specificity"], curve["sensitivity"], label=name, linewidth=1.5)
    ax.plot([0, 1], [0, 1], "k--", linewidth=0.8)
    ax.set_xlabel("1 - specificity")
    ax.set_ylabel("sensitivity")
    ax.set_aspect("equal")
    ax.set_title("ROC curve")
    ax.legend(loc="lower right")
    fig.tight_layout()
    return fig


def plot_importance(
    importance: pd.DataFrame,
    top_n: int = 15,
    title: str | None = None,
) -> Figure:
    """Bar chart of the ``top_n`` most important variables."""
    top = importance.head(top_n)
    fig, ax = plt.subplots(figsize=(8, max(3, len(top) * 0.4)))
    ax.barh(top["variable"], top["importance"], color="#4a90a4")
    if "std" in top.columns:
        ax.errorbar(
            top["importance"], top["variable"], xerr=top["std"], fmt="none", color="black"
        )
    ax.invert_yaxis()
    ax.set_xlabel("importance")
    ax.set_title(title or "Variable importance")
    fig.tight_layout()
    return fig


def plot_predictions(
    truth: np.ndarray,
    pred: np.ndarray,
    title: str = "Predicted vs observed",
) -> Figure:
    """Predicted vs observed values with the identity line."""
    truth = np.asarray(truth, dtype=float)
    pred = np.asarray(pred, dtype=float)
    fig, ax = plt.subplots(figsize=(6, 6))
    ax.scatter(truth, pred, alpha=0.5, s=15, color="#4a90a4")
    low = float(np.nanmin([truth.min(), pred.min()]))
    high = float(np.nanmax([truth.max(), pred.max()]))
    ax.plot([low, high], [low, high], "r--", linewidth=1)
    ax.set_xlabel("observed")
    ax.set_ylabel("predicted")
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig
