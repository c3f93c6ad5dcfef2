"""
Model registry and factory.

Model specifications are registered per mode (classification or
regression) under short snake_case names, which also end up in workflow
ids such as ``base_random_forest``.
"""

from typing import Any

from sklearn.base import BaseEstimator
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.linear_model import LinearRegression, LogisticRegression
from sklearn.neighbors import KNeighborsClassifier, KNeighborsRegressor
from sklearn.svm import SVC, SVR

from recipeflow.modeling.mars import MarsClassifier, MarsRegressor
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)

MODES = ("classification", "regression")

# Model configurations: mode -> name -> (class, default_kwargs)
MODEL_REGISTRY: dict[str, dict[str, tuple[type[BaseEstimator], dict[str, Any]]]] = {
    "classification": {
        "random_forest": (
            RandomForestClassifier,
            {"n_estimators": 500, "min_samples_leaf": 1},
        ),
        "logistic_regression": (LogisticRegression, {"max_iter": 2000}),
        # Probability outputs are needed for roc_auc and log loss
        "svm": (SVC, {"kernel": "rbf", "C": 1.0, "probability": True}),
        "knn": (KNeighborsClassifier, {"n_neighbors": 5}),
        "mars": (MarsClassifier, {"n_knots": 5}),
    },
    "regression": {
        "random_forest": (
            RandomForestRegressor,
            {"n_estimators": 500, "min_samples_leaf": 1},
        ),
        "linear_regression": (LinearRegression, {}),
        "svm": (SVR, {"kernel": "rbf", "C": 1.0}),
        "knn": (KNeighborsRegressor, {"n_neighbors": 5}),
        "mars": (MarsRegressor, {"n_knots": 5}),
    },
}

# Default tuning grids, keyed on the estimator's own parameter names
PARAM_GRIDS: dict[str, dict[str, dict[str, list[Any]]]] = {
    "classification": {
        "random_forest": {
            "max_features": ["sqrt", 0.3, 0.6],
            "min_samples_leaf": [1, 5, 20],
        },
        "logistic_regression": {"C": [0.01, 0.1, 1.0, 10.0]},
        "svm": {"C": [0.25, 1.0, 4.0], "gamma": ["scale", 0.01]},
        "knn": {"n_neighbors": [5, 11, 21, 41]},
        "mars": {"n_knots": [3, 5, 9]},
    },
    "regression": {
        "random_forest": {
            "max_features": [0.2, 0.4, 0.6, 0.8, 1.0],
            "min_samples_leaf": [2, 5, 10, 20],
        },
        "linear_regression": {"fit_intercept": [True]},
        "svm": {"C": [0.25, 1.0, 4.0], "epsilon": [0.01, 0.1]},
        "knn": {"n_neighbors": [5, 11, 21, 41]},
        "mars": {"n_knots": [3, 5, 9], "alpha": [0.0, 1.0]},
    },
}


def _check_mode(mode: str) -> None:
    if mode not in MODES:
        msg = f"Unknown mode '{mode}'. Available: {', '.join(MODES)}"
        raise ValueError(msg)


def get_model(name: str, mode: str = "regression", **kwargs: Any) -> BaseEstimator:
    """
    Get a model instance by name.

    Args:
        name: Model name from registry.
        mode: ``classification`` or ``regression``.
        **kwargs: Override default parameters.

    Returns:
        Unfitted model instance.

    Raises:
        KeyError: If the model is not registered for the mode.
    """
    _check_mode(mode)
    registry = MODEL_REGISTRY[mode]
    if name not in registry:
        available = ", ".join(registry.keys())
        msg = f"Unknown {mode} model '{name}'. Available: {available}"
        raise KeyError(msg)

    model_class, default_kwargs = registry[name]
    params = {**default_kwargs, **kwargs}

    log.debug("Creating model", name=name, mode=mode, params=params)
    return model_class(**params)


def get_param_grid(name: str, mode: str = "regression") -> dict[str, list[Any]] | None:
    """
    Get the default hyperparameter grid for a model.

    Returns:
        Parameter grid or None if not defined.
    """
    _check_mode(mode)
    return PARAM_GRIDS[mode].get(name)


def list_models(mode: str | None = None) -> dict[str, list[str]]:
    """List registered model names per mode (or for one mode)."""
    if mode is not None:
        _check_mode(mode)
        return {mode: list(MODEL_REGISTRY[mode])}
    return {m: list(MODEL_REGISTRY[m]) for m in MODES}
