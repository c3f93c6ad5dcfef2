"""Tests for the model registry and the MARS-style models."""

import numpy as np
import pytest
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LinearRegression

from recipeflow.modeling.mars import HingeBasis, MarsClassifier, MarsRegressor
from recipeflow.modeling.models import (
    MODEL_REGISTRY,
    PARAM_GRIDS,
    get_model,
    get_param_grid,
    list_models,
)


class TestRegistry:
    """Tests for get_model, get_param_grid and list_models."""

    def test_get_model_defaults(self) -> None:
        model = get_model("random_forest", "classification")
        assert isinstance(model, RandomForestClassifier)
        assert model.n_estimators == 500

    def test_get_model_overrides(self) -> None:
        model = get_model("random_forest", "classification", n_estimators=10)
        assert model.n_estimators == 10

    def test_regression_default_mode(self) -> None:
        assert isinstance(get_model("linear_regression"), LinearRegression)

    def test_unknown_model(self) -> None:
        with pytest.raises(KeyError, match="Unknown classification model"):
            get_model("linear_regression", "classification")

    def test_unknown_mode(self) -> None:
        with pytest.raises(ValueError, match="Unknown mode"):
            get_model("random_forest", "survival")

    def test_svm_classifier_has_probabilities(self) -> None:
        assert get_model("svm", "classification").probability is True

    def test_param_grid(self) -> None:
        grid = get_param_grid("random_forest", "regression")
        assert set(grid) == {"max_features", "min_samples_leaf"}
        assert get_param_grid("nope", "regression") is None

    def test_grids_match_estimator_params(self) -> None:
        for mode, grids in PARAM_GRIDS.items():
            for name, grid in grids.items():
                params = get_model(name, mode).get_params()
                assert set(grid) <= set(params), (mode, name)

    def test_list_models(self) -> None:
        models = list_models()
        assert set(models) == {"classification", "regression"}
        assert "mars" in models["classification"]
        assert list_models("regression") == {
            "regression": list(MODEL_REGISTRY["regression"])
        }


class TestHingeBasis:
    def test_expands_numeric_and_passes_indicators(self) -> None:
        X = np.column_stack([np.arange(50, dtype=float), np.tile([0.0, 1.0], 25)])
        basis = HingeBasis(n_knots=3).fit(X)
        assert basis.knots_[1] is None
        assert len(basis.knots_[0]) == 3
        # column + 3 hinge pairs, then the indicator unchanged
        assert basis.transform(X).shape == (50, 1 + 2 * 3 + 1)

    def test_hinges_are_non_negative(self) -> None:
        X = np.linspace(-5, 5, 40).reshape(-1, 1)
        out = HingeBasis(n_knots=4).fit_transform(X)
        assert (out[:, 1:] >= 0).all()

    def test_invalid_knots(self) -> None:
        with pytest.raises(ValueError, match="n_knots"):
            HingeBasis(n_knots=0).fit(np.ones((5, 1)))


class TestMars:
    """Tests for MarsRegressor and MarsClassifier."""

    def test_regressor_fits_piecewise_linear(self) -> None:
        x = np.linspace(0, 10, 200)
        y = np.where(x < 5, x, 10 - x)
        model = MarsRegressor(n_knots=9).fit(x.reshape(-1, 1), y)
        assert model.score(x.reshape(-1, 1), y) > 0.95
        assert model.n_features_in_ == 1

    def test_ridge_variant(self) -> None:
        rng = np.random.default_rng(0)
        X = rng.normal(size=(80, 3))
        y = X[:, 0] * 2 + rng.normal(scale=0.1, size=80)
        model = MarsRegressor(alpha=1.0).fit(X, y)
        assert model.predict(X).shape == (80,)

    def test_classifier_probabilities(self) -> None:
        rng = np.random.default_rng(0)
        X = rng.normal(size=(120, 2))
        y = np.where(X[:, 0] + rng.normal(scale=0.3, size=120) > 0, "Yes", "No")
        model = MarsClassifier(n_knots=3).fit(X, y)
        assert list(model.classes_) == ["No", "Yes"]
        proba = model.predict_proba(X)
        assert proba.shape == (120, 2)
        np.testing.assert_allclose(proba.sum(axis=1), 1.0)
        assert (model.predict(X) == y).mean() > 0.8

    def test_class_weight_passed_through(self) -> None:
        model = get_model("mars", "classification", class_weight="balanced")
        assert model.get_params()["class_weight"] == "balanced"
