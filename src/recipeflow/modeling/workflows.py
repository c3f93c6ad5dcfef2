"""
Workflows and workflow sets.

A Workflow bundles a preprocessing Recipe with a model specification and
compiles both into one scikit-learn Pipeline (``recipe`` then ``model``),
so every resample refits the recipe on its own analysis set.

A WorkflowSet crosses named recipes with named models and evaluates all
combinations on the same resamples.
"""

import itertools
import time
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, clone, is_classifier
from sklearn.model_selection import (
    GridSearchCV,
    ParameterGrid,
    ParameterSampler,
    cross_validate,
)
from sklearn.pipeline import Pipeline

from recipeflow.evaluation.metrics import (
    Metric,
    compute_metrics,
    is_maximized,
    make_scorers,
    metric_set,
)
from recipeflow.modeling.resampling import Resamples, Split
from recipeflow.recipes.recipe import PreparedRecipe, Recipe
from recipeflow.utils.logging import get_logger, log_context

log = get_logger(__name__)

Grid = Mapping[str, Sequence[Any]] | Sequence[Mapping[str, Any]]

MODEL_PREFIX = "model__"


def _summarize(results: pd.DataFrame, by: list[str]) -> pd.DataFrame:
    """Mean, count and standard error of ``.estimate`` per group."""
    grouped = results.groupby(by, sort=False)[".estimate"]
    summary = grouped.agg(mean="mean", n="count", std="std").reset_index()
    summary["std_err"] = summary["std"] / np.sqrt(summary["n"])
    return summary.drop(columns="std")


def _strip_prefix(name: str) -> str:
    return name[len(MODEL_PREFIX) :] if name.startswith(MODEL_PREFIX) else name


def expand_grid(
    grid: Grid,
    size: int | None = None,
    random_state: int | None = None,
) -> list[dict[str, Any]]:
    """
    Turn a tuning grid into an explicit list of candidates.

    Args:
        grid: Either a mapping of parameter -> values (all combinations) or
            an explicit list of candidate dicts. Names may carry the
            ``model__`` prefix.
        size: Upper bound on candidates; larger full grids are subsampled.
        random_state: Seed for subsampling.

    Raises:
        ValueError: If the grid is empty.
    """
    if isinstance(grid, Mapping):
        full = {_strip_prefix(k): list(v) for k, v in grid.items()}
        if not full or any(len(v) == 0 for v in full.values()):
            msg = "Tuning grid must name at least one value per parameter"
            raise ValueError(msg)
        total = int(np.prod([len(v) for v in full.values()]))
        if size is not None and total > size:
            log.debug("Subsampling tuning grid", total=total, size=size)
            return list(ParameterSampler(full, n_iter=size, random_state=random_state))
        return list(ParameterGrid(full))

    candidates = [{_strip_prefix(k): v for k, v in c.items()} for c in grid]
    if not candidates:
        msg = "Tuning grid must contain at least one candidate"
        raise ValueError(msg)
    return candidates[:size] if size is not None else candidates


@dataclass
class ResampleResults:
    """
    Per-resample performance of one workflow.

    Attributes:
        wflow_id: Workflow id.
        metrics: Long table with columns ``id``, ``.metric``, ``.estimate``.
        fit_time_s: Wall-clock time for all resamples.
    """

    wflow_id: str
    metrics: pd.DataFrame
    fit_time_s: float = 0.0

    def collect_metrics(self, summarize: bool = True) -> pd.DataFrame:
        """Metric summary (mean, n, std_err) or the raw per-resample table."""
        if not summarize:
            return self.metrics.copy()
        summary = _summarize(self.metrics, [".metric"])
        summary.insert(0, ".config", "Model01")
        return summary

    def metric_names(self) -> list[str]:
        return list(dict.fromkeys(self.metrics[".metric"]))


@dataclass
class TuneResults:
    """
    Per-resample performance of every tuning candidate of one workflow.

    Attributes:
        wflow_id: Workflow id.
        metrics: Long table with columns ``id``, ``.config``, ``.metric``,
            ``.estimate``.
        candidates: Candidate parameters, in ``.config`` order
            (``Model01`` is ``candidates[0]``).
        fit_time_s: Wall-clock time for the whole search.
    """

    wflow_id: str
    metrics: pd.DataFrame
    candidates: list[dict[str, Any]]
    fit_time_s: float = 0.0

    @property
    def param_names(self) -> list[str]:
        return list(dict.fromkeys(k for c in self.candidates for k in c))

    def _candidate_table(self) -> pd.DataFrame:
        rows = [
            {".config": f"Model{i + 1:02d}", **params}
            for i, params in enumerate(self.candidates)
        ]
        return pd.DataFrame(rows, columns=[".config", *self.param_names])

    def metric_names(self) -> list[str]:
        return list(dict.fromkeys(self.metrics[".metric"]))

    def collect_metrics(self, summarize: bool = True) -> pd.DataFrame:
        """Per-candidate metric summary, with parameter columns first."""
        if not summarize:
            return self.metrics.merge(self._candidate_table(), on=".config")
        summary = _summarize(self.metrics, [".config", ".metric"])
        merged = self._candidate_table().merge(summary, on=".config")
        return merged[[*self.param_names, ".metric", "mean", "n", "std_err", ".config"]]

    def show_best(self, metric: str | None = None, n: int = 5) -> pd.DataFrame:
        """
        Top ``n`` candidates for a metric (default: the first one computed).

        Raises:
            ValueError: If the metric was not computed.
        """
        metric = metric or self.metric_names()[0]
        if metric not in self.metric_names():
            msg = f"Metric '{metric}' not in results: {', '.join(self.metric_names())}"
            raise ValueError(msg)
        summary = self.collect_metrics()
        rows = summary[summary[".metric"] == metric]
        ordered = rows.sort_values("mean", ascending=not is_maximized(metric))
        return ordered.head(n).reset_index(drop=True)

    def select_best(self, metric: str | None = None) -> dict[str, Any]:
        """Parameters of the best candidate for a metric."""
        best_config = self.show_best(metric, n=1).loc[0, ".config"]
        return dict(self.candidates[int(best_config.removeprefix("Model")) - 1])


@dataclass
class LastFitResult:
    """
    A workflow fitted on the full training set and evaluated once on the
    test set.

    Attributes:
        workflow: The fitted workflow.
        metrics: Test-set metrics.
        predictions: Test-set predictions with the true outcome.
        event: Event class for binary classification, else None.
    """

    workflow: "Workflow"
    metrics: dict[str, float]
    predictions: pd.DataFrame
    event: Any = None

    def collect_metrics(self) -> pd.DataFrame:
        return pd.DataFrame(
            {".metric": list(self.metrics), ".estimate": list(self.metrics.values())}
        )

    def collect_predictions(self) -> pd.DataFrame:
        return self.predictions.copy()


class Workflow:
    """
    A recipe plus a model specification.

    Args:
        recipe: Preprocessing recipe; its outcome is the model's target.
        model: Unfitted scikit-learn estimator.
        recipe_name: Short name of the recipe (used in the id).
        model_name: Short name of the model (used in the id).
    """

    def __init__(
        self,
        recipe: Recipe,
        model: BaseEstimator,
        *,
        recipe_name: str = "recipe",
        model_name: str | None = None,
    ) -> None:
        if recipe.outcome is None:
            msg = "A workflow needs a recipe with an outcome"
            raise ValueError(msg)
        self.recipe = recipe
        self.model = model
        self.recipe_name = recipe_name
        self.model_name = model_name or type(model).__name__.lower()
        self.pipeline_: Pipeline | None = None

    @property
    def id(self) -> str:
        return f"{self.recipe_name}_{self.model_name}"

    @property
    def mode(self) -> str:
        return "classification" if is_classifier(self.model) else "regression"

    def __repr__(self) -> str:
        state = "fitted" if self.pipeline_ is not None else "unfitted"
        return f"<Workflow {self.id} ({self.mode}, {state})>"

    def _metrics(self, metrics: Sequence[str] | None) -> list[Metric]:
        return metric_set(self.mode, metrics)

    def build_pipeline(self) -> Pipeline:
        """Unfitted Pipeline of the recipe steps and a fresh model clone."""
        return Pipeline(
            [("recipe", self.recipe.to_pipeline()), ("model", clone(self.model))]
        )

    def _xy(self, df: pd.DataFrame) -> tuple[pd.DataFrame, pd.Series]:
        X, y = self.recipe.split_xy(df)
        if y is None:
            msg = f"Workflow {self.id} has no outcome to fit"
            raise ValueError(msg)
        return X, y

    def _fitted(self) -> Pipeline:
        if self.pipeline_ is None:
            msg = f"Workflow {self.id} is not fitted"
            raise ValueError(msg)
        return self.pipeline_

    def fit(self, df: pd.DataFrame) -> "Workflow":
        """Fit recipe and model on ``df``; returns self."""
        X, y = self._xy(df)
        self.pipeline_ = self.build_pipeline().fit(X, y)
        log.debug("Fitted workflow", wflow_id=self.id, n_rows=len(df))
        return self

    def _predictors(self, df: pd.DataFrame) -> pd.DataFrame:
        """The columns of ``df`` the fitted pipeline was trained on."""
        names = getattr(self._fitted(), "feature_names_in_", None)
        if names is None:
            return df[self.recipe.predictor_columns(df)]
        return df[list(names)]

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        """Class or numeric predictions for new data."""
        return self._fitted().predict(self._predictors(df))

    def predict_proba(self, df: pd.DataFrame) -> pd.DataFrame:
        """Class probabilities as ``.pred_<class>`` columns."""
        pipeline = self._fitted()
        if self.mode != "classification":
            msg = f"Workflow {self.id} is a regression workflow"
            raise ValueError(msg)
        return pd.DataFrame(
            pipeline.predict_proba(self._predictors(df)),
            columns=[f".pred_{c}" for c in pipeline.classes_],
            index=df.index,
        )

    def augment(self, df: pd.DataFrame) -> pd.DataFrame:
        """Copy of ``df`` with prediction columns appended."""
        out = df.copy()
        out[".pred"] = self.predict(df)
        if self.mode == "classification":
            proba = self.predict_proba(df)
            out = out.drop(columns=proba.columns, errors="ignore")
            out = pd.concat([out, proba], axis=1)
        return out

    def extract_pipeline(self) -> Pipeline:
        """The fitted recipe + model Pipeline."""
        return self._fitted()

    def extract_model(self) -> BaseEstimator:
        """The fitted model step."""
        return self._fitted().named_steps["model"]

    def extract_recipe(self) -> PreparedRecipe:
        """The fitted recipe, usable for ``bake``."""
        return PreparedRecipe(
            recipe=self.recipe, pipeline=self._fitted().named_steps["recipe"]
        )

    def fit_resamples(
        self,
        resamples: Resamples,
        metrics: Sequence[str] | None = None,
    ) -> ResampleResults:
        """Fit on every analysis set and score on its assessment set."""
        chosen = self._metrics(metrics)
        X, y = self._xy(resamples.data)
        start = time.perf_counter()
        scores = cross_validate(
            self.build_pipeline(),
            X,
            y,
            cv=resamples,
            scoring=make_scorers(chosen),
            error_score="raise",
        )
        elapsed = time.perf_counter() - start

        rows = [
            {"id": rid, ".metric": m.name, ".estimate": float(scores[f"test_{m.name}"][i])}
            for i, rid in enumerate(resamples.ids)
            for m in chosen
        ]
        result = ResampleResults(
            wflow_id=self.id, metrics=pd.DataFrame(rows), fit_time_s=elapsed
        )
        log.info(
            "Resampled workflow",
            wflow_id=self.id,
            resamples=len(resamples),
            seconds=round(elapsed, 2),
        )
        return result

    def tune_grid(
        self,
        resamples: Resamples,
        grid: Grid,
        metrics: Sequence[str] | None = None,
        size: int | None = None,
        random_state: int | None = None,
    ) -> TuneResults:
        """
        Evaluate every grid candidate on every resample.

        Args:
            resamples: Resamples of the training set.
            grid: Model parameters to tune (see ``expand_grid``).
            metrics: Metric names (default: the mode's metric set).
            size: Maximum number of candidates.
            random_state: Seed for grid subsampling.
        """
        chosen = self._metrics(metrics)
        candidates = expand_grid(grid, size=size, random_state=random_state)
        X, y = self._xy(resamples.data)

        search = GridSearchCV(
            self.build_pipeline(),
            param_grid=[
                {f"{MODEL_PREFIX}{k}": [v] for k, v in c.items()} for c in candidates
            ],
            scoring=make_scorers(chosen),
            refit=False,
            cv=resamples,
            error_score="raise",
        )
        start = time.perf_counter()
        search.fit(X, y)
        elapsed = time.perf_counter() - start

        cv_results = search.cv_results_
        rows = [
            {
                "id": rid,
                ".config": f"Model{ci + 1:02d}",
                ".metric": m.name,
                ".estimate": float(cv_results[f"split{i}_test_{m.name}"][ci]),
            }
            for ci in range(len(candidates))
            for i, rid in enumerate(resamples.ids)
            for m in chosen
        ]
        log.info(
            "Tuned workflow",
            wflow_id=self.id,
            candidates=len(candidates),
            resamples=len(resamples),
            seconds=round(elapsed, 2),
        )
        return TuneResults(
            wflow_id=self.id,
            metrics=pd.DataFrame(rows),
            candidates=candidates,
            fit_time_s=elapsed,
        )

    def finalize(self, params: Mapping[str, Any]) -> "Workflow":
        """New unfitted workflow with the model parameters fixed."""
        model = clone(self.model).set_params(
            **{_strip_prefix(k): v for k, v in params.items()}
        )
        return Workflow(
            self.recipe, model, recipe_name=self.recipe_name, model_name=self.model_name
        )

    def last_fit(
        self,
        split: Split,
        metrics: Sequence[str] | None = None,
    ) -> LastFitResult:
        """Fit on the training set and evaluate once on the test set."""
        chosen = self._metrics(metrics)
        fitted = self.finalize({}).fit(split.training())
        test = split.testing()
        _, y_test = self._xy(test)

        pred = fitted.predict(test)
        predictions = pd.DataFrame({".row": test.index, ".pred": pred})
        event = None
        prob = None
        if self.mode == "classification":
            proba = fitted.predict_proba(test)
            classes = list(fitted.extract_model().classes_)
            if len(classes) == 2:
                event = classes[1]
                prob = proba[f".pred_{event}"].to_numpy()
            for col in proba.columns:
                predictions[col] = proba[col].to_numpy()
        predictions[self.recipe.outcome] = y_test.to_numpy()

        values = compute_metrics(
            y_test.to_numpy(), chosen, pred=pred, prob=prob, event=event
        )
        log.info(
            "Last fit",
            wflow_id=self.id,
            n_train=len(split.train_idx),
            n_test=len(split.test_idx),
            **{k: round(v, 4) for k, v in values.items()},
        )
        return LastFitResult(
            workflow=fitted, metrics=values, predictions=predictions, event=event
        )


@dataclass
class WorkflowSet:
    """
    Named workflows evaluated under the same resamples.

    Attributes:
        workflows: Workflow id -> workflow.
        results: Workflow id -> resampling or tuning results.
    """

    workflows: dict[str, Workflow]
    results: dict[str, ResampleResults | TuneResults] = field(default_factory=dict)

    @classmethod
    def cross(
        cls,
        recipes: Mapping[str, Recipe],
        models: Mapping[str, BaseEstimator],
    ) -> "WorkflowSet":
        """Every recipe paired with every model, ids ``<recipe>_<model>``."""
        workflows = {}
        for (recipe_name, rec), (model_name, model) in itertools.product(
            recipes.items(), models.items()
        ):
            wf = Workflow(rec, model, recipe_name=recipe_name, model_name=model_name)
            workflows[wf.id] = wf
        log.info(
            "Created workflow set",
            n_workflows=len(workflows),
            recipes=list(recipes),
            models=list(models),
        )
        return cls(workflows=workflows)

    def __len__(self) -> int:
        return len(self.workflows)

    def __iter__(self) -> Iterator[Workflow]:
        return iter(self.workflows.values())

    @property
    def ids(self) -> list[str]:
        return list(self.workflows)

    def fit_resamples(
        self,
        resamples: Resamples,
        metrics: Sequence[str] | None = None,
    ) -> "WorkflowSet":
        """Resample every workflow; returns self with results filled in."""
        for wf in self:
            with log_context(wflow_id=wf.id):
                self.results[wf.id] = wf.fit_resamples(resamples, metrics)
        return self

    def tune_grid(
        self,
        resamples: Resamples,
        grids: Mapping[str, Grid],
        metrics: Sequence[str] | None = None,
        size: int | None = None,
        random_state: int | None = None,
    ) -> "WorkflowSet":
        """
        Tune workflows whose model has a grid; resample the rest.

        Args:
            grids: Model name -> tuning grid.
        """
        for wf in self:
            with log_context(wflow_id=wf.id):
                grid = grids.get(wf.model_name)
                if grid:
                    self.results[wf.id] = wf.tune_grid(
                        resamples, grid, metrics, size=size, random_state=random_state
                    )
                else:
                    self.results[wf.id] = wf.fit_resamples(resamples, metrics)
        return self

    def _require_results(self) -> None:
        if not self.results:
            msg = "Workflow set has no results; run fit_resamples or tune_grid first"
            raise ValueError(msg)

    def collect_metrics(self) -> pd.DataFrame:
        """Summarised metrics of all workflows (and tuning candidates)."""
        self._require_results()
        frames = []
        for wflow_id, result in self.results.items():
            wf = self.workflows[wflow_id]
            summary = result.collect_metrics()
            frames.append(
                summary[[".config", ".metric", "mean", "n", "std_err"]].assign(
                    wflow_id=wflow_id, recipe=wf.recipe_name, model=wf.model_name
                )
            )
        combined = pd.concat(frames, ignore_index=True)
        return combined[
            ["wflow_id", ".config", "recipe", "model", ".metric", "mean", "n", "std_err"]
        ]

    def rank_results(self, metric: str, select_best: bool = True) -> pd.DataFrame:
        """
        Rank workflows (or candidates) by a metric.

        Args:
            metric: Ranking metric.
            select_best: Keep only each workflow's best candidate.

        Returns:
            All metrics of the ranked workflows, with a ``rank`` column,
            ordered best first.

        Raises:
            ValueError: If the metric was not computed.
        """
        metrics = self.collect_metrics()
        ranking = metrics[metrics[".metric"] == metric]
        if ranking.empty:
            msg = f"Metric '{metric}' not in workflow set results"
            raise ValueError(msg)

        ranking = ranking.sort_values("mean", ascending=not is_maximized(metric))
        if select_best:
            ranking = ranking.drop_duplicates("wflow_id", keep="first")
        ranking = ranking.assign(rank=np.arange(1, len(ranking) + 1))

        ranked = metrics.merge(
            ranking[["wflow_id", ".config", "rank"]], on=["wflow_id", ".config"]
        )
        return ranked.sort_values(["rank", ".metric"]).reset_index(drop=True)

    def extract_workflow(self, wflow_id: str) -> Workflow:
        """
        Look up a workflow by id.

        Raises:
            KeyError: If the id is not in the set.
        """
        if wflow_id not in self.workflows:
            available = ", ".join(self.workflows)
            msg = f"Unknown workflow '{wflow_id}'. Available: {available}"
            raise KeyError(msg)
        return self.workflows[wflow_id]

    def extract_result(self, wflow_id: str) -> ResampleResults | TuneResults:
        """Resampling or tuning results of one workflow."""
        self.extract_workflow(wflow_id)
        if wflow_id not in self.results:
            msg = f"Workflow '{wflow_id}' has no results"
            raise KeyError(msg)
        return self.results[wflow_id]

    def best_workflow(self, metric: str) -> Workflow:
        """The top-ranked workflow, finalized with its best parameters."""
        best_id = self.rank_results(metric).loc[0, "wflow_id"]
        wf = self.extract_workflow(best_id)
        result = self.results[best_id]
        if isinstance(result, TuneResults):
            return wf.finalize(result.select_best(metric))
        return wf
