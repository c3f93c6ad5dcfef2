"""
Variable importance for fitted workflows.

Permutation importance shuffles the original predictors (before the
recipe), so importances are reported per input variable rather than per
dummy or spline column. Model-based importance reads the fitted model and
is reported per processed column.
"""

from typing import TYPE_CHECKING

import numpy as np
import pandas as pd
from sklearn.inspection import permutation_importance

from recipeflow.evaluation.metrics import MetricScorer, get_metric
from recipeflow.utils.logging import get_logger

if TYPE_CHECKING:
    from recipeflow.modeling.workflows import Workflow

log = get_logger(__name__)


def permutation_importance_table(
    workflow: "Workflow",
    df: pd.DataFrame,
    metric: str,
    n_repeats: int = 5,
    random_state: int | None = None,
) -> pd.DataFrame:
    """
    Drop in performance when each predictor is shuffled.

    Args:
        workflow: Fitted workflow.
        df: Data to evaluate on (usually the test set).
        metric: Metric name; importances are positive when shuffling hurts.
        n_repeats: Shuffles per predictor.
        random_state: Seed for shuffling.

    Returns:
        Columns ``variable``, ``importance``, ``std``, most important first.
    """
    X, y = workflow.recipe.split_xy(df)
    scorer = MetricScorer(get_metric(metric))
    result = permutation_importance(
        workflow.extract_pipeline(),
        X,
        y,
        scoring=scorer,
        n_repeats=n_repeats,
        random_state=random_state,
    )
    sign = 1.0 if scorer.metric.maximize else -1.0
    table = pd.DataFrame(
        {
            "variable": list(X.columns),
            "importance": sign * result.importances_mean,
            "std": result.importances_std,
        }
    )
    table = table.sort_values("importance", ascending=False).reset_index(drop=True)
    log.info(
        "Computed permutation importance",
        wflow_id=workflow.id,
        metric=metric,
        top=table["variable"].head(3).tolist(),
    )
    return table


def model_importance_table(workflow: "Workflow") -> pd.DataFrame | None:
    """
    Importance reported by the fitted model itself.

    Tree ensembles give impurity importance; linear models give absolute
    coefficients. Returns None for models that expose neither.
    """
    model = workflow.extract_model()
    names = list(workflow.extract_recipe().pipeline.get_feature_names_out())

    if hasattr(model, "feature_importances_"):
        values = np.asarray(model.feature_importances_)
    elif hasattr(model, "coef_"):
        coef = np.asarray(model.coef_)
        values = np.abs(coef).mean(axis=0) if coef.ndim > 1 else np.abs(coef)
    else:
        return None

    if len(values) != len(names):
        log.warning(
            "Importance length does not match processed columns",
            n_values=len(values),
            n_columns=len(names),
        )
        return None

    return (
        pd.DataFrame({"variable": names, "importance": values})
        .sort_values("importance", ascending=False)
        .reset_index(drop=True)
    )
