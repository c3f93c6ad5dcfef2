"""End-to-end tests of the five analyses on small synthetic datasets."""

import pandas as pd
import pytest
from matplotlib.figure import Figure

from recipeflow.analyses import ANALYSES, churn, ikea, pumpkins, unvotes, water
from recipeflow.analyses.base import make_models, make_resamples, model_grid, save_plots
from recipeflow.config.settings import AnalysisName
from recipeflow.modeling.persistence import load_results


class TestBaseHelpers:
    """Tests for the shared analysis helpers."""

    def test_make_models_injects_seed_and_params(self, make_config) -> None:
        config = make_config("water")
        models = make_models(config, "classification", ["random_forest", "knn"])
        assert list(models) == ["random_forest", "knn"]
        assert models["random_forest"].n_estimators == 20
        assert models["random_forest"].random_state == 1

    def test_enabled_overrides_defaults(self, make_config) -> None:
        config = make_config("pumpkins", models={"enabled": ["linear_regression"]})
        assert list(make_models(config, "regression", ["random_forest"])) == [
            "linear_regression"
        ]

    def test_configured_grid_wins(self, make_config) -> None:
        config = make_config(
            "ikea", models={"grids": {"random_forest": {"min_samples_leaf": [3]}}}
        )
        assert model_grid(config, "random_forest", "regression") == {
            "min_samples_leaf": [3]
        }
        assert "n_neighbors" in model_grid(config, "knn", "regression")

    def test_bootstrap_resamples(self, make_config, regression_frame) -> None:
        config = make_config("ikea", resampling={"method": "bootstrap", "times": 4})
        resamples = make_resamples(config, regression_frame, strata="y")
        assert resamples.method == "bootstrap"
        assert len(resamples) == 4

    def test_save_plots(self, make_config) -> None:
        config = make_config("pumpkins")
        paths = save_plots(config, pumpkins.explore(config))
        assert set(paths) == {"pumpkins_weight", "pumpkins_ot", "pumpkins_country"}
        assert all(p.exists() and p.parent == config.plots_dir for p in paths.values())


class TestRegistry:
    def test_every_analysis_registered(self) -> None:
        assert set(ANALYSES) == set(AnalysisName)
        assert ANALYSES[AnalysisName.CHURN].description.startswith("Telco customer churn")


class TestUnVotes:
    """Tests for the PCA/UMAP analysis."""

    def test_join_issues(self) -> None:
        loadings = pd.DataFrame(
            {"terms": ["1", "2", "3"], "value": [0.1, 0.2, 0.3], "component": "PC1"}
        )
        issues = pd.DataFrame({"rcid": [1, 1, 2], "short_name": ["me", "hr", "nu"]})
        joined = unvotes.join_issues(loadings, issues)
        assert list(joined["issue"]) == ["hr,me", "nu", "NA"]

    def test_explore(self, make_config) -> None:
        figures = unvotes.explore(make_config("unvotes"))
        assert set(figures) == {"unvotes_issues", "unvotes_mean_vote"}
        assert all(isinstance(f, Figure) for f in figures.values())

    def test_run_pca(self, make_config) -> None:
        config = make_config("unvotes", options={"num_comp": 3})
        result = unvotes.run(config)
        assert len(result.scores) == 30
        assert {"country", "PC1", "PC2", "PC3"} <= set(result.scores.columns)
        assert set(result.loadings["component"]) == {"PC1", "PC2", "PC3"}
        assert "issue" in result.loadings.columns
        assert result.variance["cumulative_percent_variance"].is_monotonic_increasing
        assert result.embedding is None
        assert result.report_path.exists()
        assert result.model_path is None

    def test_run_with_umap(self, make_config) -> None:
        config = make_config(
            "unvotes", options={"umap": True, "umap_neighbors": 5, "num_comp": 2}
        )
        result = unvotes.run(config, render=False)
        assert list(result.embedding.columns) == ["country", "UMAP1", "UMAP2"]
        assert result.report_path is None


class TestWater:
    def test_run(self, make_config) -> None:
        result = water.run(make_config("water"))
        assert result.last_fit.event == "y"
        assert set(result.confusion.index) <= {"n", "y"}
        assert {"install_year", "water_source"} <= set(result.importance["variable"])
        metrics = result.resamples.collect_metrics()
        assert (metrics["n"] == 3).all()
        assert result.report_path.exists()


class TestChurn:
    """Tests for the churn workflow set and its results cache."""

    @pytest.fixture
    def config(self, make_config):
        return make_config(
            "churn", models={"enabled": ["logistic_regression", "knn"]}
        )

    def test_build_recipes(self) -> None:
        recipes = churn.build_recipes()
        assert set(recipes) == {"base", "log"}
        kinds = [step.kind for step in recipes["log"].steps]
        assert kinds == ["impute", "log", "dummy", "zv", "normalize"]

    def test_run_then_cached(self, config) -> None:
        first = churn.run(config, render=False)
        assert not first.from_cache
        assert len(first.workflow_set) == 4
        ranked = first.ranking[first.ranking[".metric"] == "roc_auc"]
        assert list(ranked["rank"]) == [1, 2, 3, 4]
        assert first.last_fit.event == "Yes"
        assert churn.cache_path(config).parent.exists()

        second = churn.run(config, render=False)
        assert second.from_cache
        assert second.workflow_set.ids == first.workflow_set.ids

        fresh = churn.run(config, render=False, use_cache=False)
        assert not fresh.from_cache

    def test_cache_invalidated_by_config_change(self, config, make_config) -> None:
        first = churn.run(config, render=False)
        assert len(first.workflow_set) == 4

        fewer = make_config("churn", models={"enabled": ["knn"]})
        _, metadata = load_results(churn.cache_path(fewer))
        assert churn.stale_cache_keys(fewer, metadata) == ["workflows"]

        second = churn.run(fewer, render=False)
        assert not second.from_cache
        assert len(second.workflow_set) == 2
        assert second.workflow_set.ids == churn.cache_key(fewer)["workflows"]

        reseeded = make_config(
            "churn", models={"enabled": ["knn"]}, random_state=fewer.random_state + 1
        )
        assert not churn.run(reseeded, render=False).from_cache
        assert churn.run(reseeded, render=False).from_cache

    def test_tuned(self, make_config) -> None:
        config = make_config(
            "churn",
            models={"enabled": ["knn"], "grids": {"knn": {"n_neighbors": [5, 15]}}},
            options={"tune": True},
        )
        result = churn.run(config, render=False, use_cache=False)
        assert len(result.workflow_set) == 2
        assert result.last_fit.workflow.model.n_neighbors in (5, 15)


class TestPumpkins:
    def test_build_recipes(self, make_config) -> None:
        recipes = pumpkins.build_recipes(make_config("pumpkins"))
        assert [s.kind for s in recipes["spline"].steps] == ["other", "dummy", "ns"]
        assert recipes["base"].predictors == ("ot", "gpc_site", "country")

    def test_run(self, make_config) -> None:
        config = make_config(
            "pumpkins", models={"enabled": ["linear_regression", "mars"]}
        )
        result = pumpkins.run(config)
        assert len(result.workflow_set) == 4
        assert result.last_fit.workflow.id == result.ranking.loc[0, "wflow_id"]
        assert set(result.last_fit.metrics) == {"rmse", "rsq", "mae"}


class TestIkea:
    def test_run(self, make_config) -> None:
        config = make_config(
            "ikea",
            resampling={"method": "bootstrap", "times": 3},
            models={"grids": {"random_forest": {"min_samples_leaf": [2, 10]}}},
            output={"save_model": True},
        )
        result = ikea.run(config)
        assert len(result.tuning.candidates) == 2
        assert result.best_params["min_samples_leaf"] in (2, 10)
        assert result.last_fit.workflow.model.min_samples_leaf == (
            result.best_params["min_samples_leaf"]
        )
        assert "width" in set(result.importance["variable"])
        assert result.model_path is not None
        assert result.model_path.exists()
