"""Tests for workflows and workflow sets."""

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression, LogisticRegression
from sklearn.neighbors import KNeighborsRegressor

from recipeflow.modeling.mars import MarsRegressor
from recipeflow.modeling.resampling import initial_split, vfold_cv
from recipeflow.modeling.workflows import (
    ResampleResults,
    TuneResults,
    Workflow,
    WorkflowSet,
    expand_grid,
)
from recipeflow.recipes import Recipe


@pytest.fixture
def reg_recipe() -> Recipe:
    return Recipe("y", ids=("id",)).step_dummy().step_normalize()


@pytest.fixture
def clf_recipe() -> Recipe:
    return Recipe("outcome", ids=("id",)).step_dummy()


@pytest.fixture
def reg_folds(regression_frame: pd.DataFrame):
    return vfold_cv(regression_frame, v=3, random_state=1)


class TestExpandGrid:
    """Tests for expand_grid."""

    def test_full_grid(self) -> None:
        candidates = expand_grid({"a": [1, 2], "b": ["x", "y", "z"]})
        assert len(candidates) == 6
        assert {"a": 2, "b": "z"} in candidates

    def test_strips_model_prefix(self) -> None:
        assert expand_grid({"model__C": [1.0]}) == [{"C": 1.0}]

    def test_subsampled_to_size(self) -> None:
        candidates = expand_grid({"a": range(10), "b": range(10)}, size=7, random_state=0)
        assert len(candidates) == 7
        assert len({(c["a"], c["b"]) for c in candidates}) == 7

    def test_explicit_candidates(self) -> None:
        grid = [{"a": 1}, {"a": 2}, {"a": 3}]
        assert expand_grid(grid, size=2) == [{"a": 1}, {"a": 2}]

    def test_empty_grid(self) -> None:
        with pytest.raises(ValueError, match="at least one"):
            expand_grid({})
        with pytest.raises(ValueError, match="at least one"):
            expand_grid({"a": []})
        with pytest.raises(ValueError, match="at least one candidate"):
            expand_grid([])


class TestWorkflow:
    """Tests for fitting, predicting and resampling a single workflow."""

    def test_requires_outcome(self) -> None:
        with pytest.raises(ValueError, match="outcome"):
            Workflow(Recipe(), LinearRegression())

    def test_id_and_mode(self, reg_recipe: Recipe, clf_recipe: Recipe) -> None:
        reg = Workflow(reg_recipe, LinearRegression(), recipe_name="base")
        assert reg.id == "base_linearregression"
        assert reg.mode == "regression"
        clf = Workflow(clf_recipe, LogisticRegression(), model_name="logistic")
        assert clf.id == "recipe_logistic"
        assert clf.mode == "classification"
        assert "unfitted" in repr(clf)

    def test_fit_predict(self, reg_recipe: Recipe, regression_frame: pd.DataFrame) -> None:
        wf = Workflow(reg_recipe, LinearRegression()).fit(regression_frame)
        pred = wf.predict(regression_frame)
        assert pred.shape == (len(regression_frame),)
        assert np.corrcoef(pred, regression_frame["y"])[0, 1] > 0.9
        assert isinstance(wf.extract_model(), LinearRegression)
        baked = wf.extract_recipe().bake(regression_frame)
        assert {"cat_b", "cat_c"} <= set(baked.columns)

    def test_predict_unfitted(
        self, reg_recipe: Recipe, regression_frame: pd.DataFrame
    ) -> None:
        with pytest.raises(ValueError, match="not fitted"):
            Workflow(reg_recipe, LinearRegression()).predict(regression_frame)

    def test_predict_proba_columns(
        self, clf_recipe: Recipe, classification_frame: pd.DataFrame
    ) -> None:
        wf = Workflow(clf_recipe, LogisticRegression()).fit(classification_frame)
        proba = wf.predict_proba(classification_frame)
        assert list(proba.columns) == [".pred_No", ".pred_Yes"]
        np.testing.assert_allclose(proba.sum(axis=1), 1.0)
        augmented = wf.augment(classification_frame)
        assert {".pred", ".pred_Yes"} <= set(augmented.columns)

    def test_augment_ignores_extra_columns(
        self, clf_recipe: Recipe, classification_frame: pd.DataFrame
    ) -> None:
        wf = Workflow(clf_recipe, LogisticRegression()).fit(classification_frame)
        augmented = wf.augment(classification_frame)
        pd.testing.assert_frame_equal(wf.augment(augmented), augmented)
        noisy = classification_frame.assign(extra=1.0)
        np.testing.assert_array_equal(
            wf.predict(noisy), wf.predict(classification_frame)
        )

    def test_predict_proba_regression(
        self, reg_recipe: Recipe, regression_frame: pd.DataFrame
    ) -> None:
        wf = Workflow(reg_recipe, LinearRegression()).fit(regression_frame)
        with pytest.raises(ValueError, match="regression workflow"):
            wf.predict_proba(regression_frame)

    def test_fit_resamples(self, reg_recipe: Recipe, reg_folds) -> None:
        result = Workflow(reg_recipe, LinearRegression()).fit_resamples(reg_folds)
        assert isinstance(result, ResampleResults)
        raw = result.collect_metrics(summarize=False)
        assert len(raw) == 3 * 3
        summary = result.collect_metrics()
        assert list(summary[".metric"]) == ["rmse", "rsq", "mae"]
        assert (summary["n"] == 3).all()
        rsq = summary.loc[summary[".metric"] == "rsq", "mean"].iloc[0]
        assert rsq > 0.8

    def test_fit_resamples_classification(
        self, clf_recipe: Recipe, classification_frame: pd.DataFrame
    ) -> None:
        folds = vfold_cv(classification_frame, v=3, strata="outcome", random_state=1)
        result = Workflow(clf_recipe, LogisticRegression()).fit_resamples(
            folds, metrics=["roc_auc", "accuracy"]
        )
        summary = result.collect_metrics().set_index(".metric")
        assert summary.loc["roc_auc", "mean"] > 0.7
        assert 0 <= summary.loc["accuracy", "mean"] <= 1

    def test_tune_grid_and_select_best(self, reg_recipe: Recipe, reg_folds) -> None:
        wf = Workflow(reg_recipe, KNeighborsRegressor(), model_name="knn")
        tuning = wf.tune_grid(reg_folds, {"n_neighbors": [3, 7, 15]})
        assert isinstance(tuning, TuneResults)
        assert tuning.param_names == ["n_neighbors"]
        assert len(tuning.candidates) == 3
        metrics = tuning.collect_metrics()
        assert len(metrics) == 3 * 3
        assert "n_neighbors" in metrics.columns

        best = tuning.show_best("rmse", n=2)
        assert len(best) == 2
        assert best["mean"].is_monotonic_increasing
        params = tuning.select_best("rmse")
        assert params["n_neighbors"] == best.loc[0, "n_neighbors"]

    def test_show_best_unknown_metric(self, reg_recipe: Recipe, reg_folds) -> None:
        wf = Workflow(reg_recipe, KNeighborsRegressor())
        tuning = wf.tune_grid(reg_folds, {"n_neighbors": [3, 5]})
        with pytest.raises(ValueError, match="not in results"):
            tuning.show_best("roc_auc")

    def test_finalize(self, reg_recipe: Recipe) -> None:
        wf = Workflow(reg_recipe, KNeighborsRegressor(), model_name="knn")
        final = wf.finalize({"model__n_neighbors": 9})
        assert final.model.n_neighbors == 9
        assert wf.model.n_neighbors == 5
        assert final.id == wf.id

    def test_last_fit_regression(
        self, reg_recipe: Recipe, regression_frame: pd.DataFrame
    ) -> None:
        split = initial_split(regression_frame, random_state=1)
        result = Workflow(reg_recipe, LinearRegression()).last_fit(split)
        assert set(result.metrics) == {"rmse", "rsq", "mae"}
        assert result.event is None
        predictions = result.collect_predictions()
        assert len(predictions) == len(split.test_idx)
        assert {".row", ".pred", "y"} <= set(predictions.columns)
        assert list(result.collect_metrics().columns) == [".metric", ".estimate"]

    def test_last_fit_classification(
        self, clf_recipe: Recipe, classification_frame: pd.DataFrame
    ) -> None:
        split = initial_split(classification_frame, strata="outcome", random_state=1)
        result = Workflow(clf_recipe, LogisticRegression()).last_fit(split)
        assert result.event == "Yes"
        assert {".pred_No", ".pred_Yes", "outcome"} <= set(result.predictions.columns)
        assert result.metrics["roc_auc"] > 0.7
        assert result.workflow.pipeline_ is not None


class TestWorkflowSet:
    """Tests for crossing and ranking workflows."""

    @pytest.fixture
    def wset(self, reg_recipe: Recipe) -> WorkflowSet:
        recipes = {"base": reg_recipe, "plain": Recipe("y", ids=("id",)).step_dummy()}
        models = {"linear_regression": LinearRegression(), "mars": MarsRegressor()}
        return WorkflowSet.cross(recipes, models)

    def test_cross(self, wset: WorkflowSet) -> None:
        assert len(wset) == 4
        assert wset.ids == [
            "base_linear_regression",
            "base_mars",
            "plain_linear_regression",
            "plain_mars",
        ]

    def test_rank_requires_results(self, wset: WorkflowSet) -> None:
        with pytest.raises(ValueError, match="no results"):
            wset.rank_results("rmse")

    def test_fit_resamples_and_rank(self, wset: WorkflowSet, reg_folds) -> None:
        wset.fit_resamples(reg_folds)
        ranking = wset.rank_results("rmse")
        assert set(ranking["wflow_id"]) == set(wset.ids)
        rmse = ranking[ranking[".metric"] == "rmse"]
        assert list(rmse["rank"]) == [1, 2, 3, 4]
        assert rmse["mean"].is_monotonic_increasing
        best = wset.best_workflow("rmse")
        assert best.id == rmse["wflow_id"].iloc[0]

    def test_unknown_metric(self, wset: WorkflowSet, reg_folds) -> None:
        wset.fit_resamples(reg_folds)
        with pytest.raises(ValueError, match="not in workflow set"):
            wset.rank_results("roc_auc")

    def test_tune_grid_mixes_tuned_and_resampled(
        self, wset: WorkflowSet, reg_folds
    ) -> None:
        wset.tune_grid(reg_folds, {"mars": {"n_knots": [2, 4]}})
        assert isinstance(wset.extract_result("base_mars"), TuneResults)
        assert isinstance(
            wset.extract_result("base_linear_regression"), ResampleResults
        )
        all_candidates = wset.rank_results("rmse", select_best=False)
        assert all_candidates["rank"].max() == 6
        best = wset.best_workflow("rmse")
        if best.model_name == "mars":
            assert best.model.n_knots in (2, 4)

    def test_extract_workflow(self, wset: WorkflowSet) -> None:
        assert wset.extract_workflow("base_mars").model_name == "mars"
        with pytest.raises(KeyError, match="Unknown workflow"):
            wset.extract_workflow("base_svm")
        with pytest.raises(KeyError, match="no results"):
            wset.extract_result("base_mars")
