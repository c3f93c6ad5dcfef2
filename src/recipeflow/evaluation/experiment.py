"""
MLflow experiment tracking.

Optional: analyses only talk to MLflow when ``mlflow.enabled`` is set in
the configuration. One parent run per analysis, with a nested run per
evaluated workflow.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any

import mlflow

from recipeflow import __version__
from recipeflow.config.settings import AnalysisConfig
from recipeflow.utils.logging import get_logger

if TYPE_CHECKING:
    from recipeflow.modeling.workflows import LastFitResult, WorkflowSet

log = get_logger(__name__)


class AnalysisExperiment:
    """
    MLflow run for one analysis.

    Usage:
        with AnalysisExperiment(config) as experiment:
            experiment.log_params({...})
            experiment.log_workflow_set(wset)
    """

    def __init__(self, config: AnalysisConfig) -> None:
        self.config = config
        self._run_id: str | None = None

    @property
    def run_id(self) -> str | None:
        return self._run_id

    def setup(self) -> None:
        """Point MLflow at the tracking server and experiment."""
        mlflow.set_tracking_uri(self.config.mlflow.tracking_uri)
        mlflow.set_experiment(self.config.experiment_name)
        log.info(
            "Experiment setup",
            name=self.config.experiment_name,
            tracking_uri=self.config.mlflow.tracking_uri,
        )

    def start_run(self, run_name: str | None = None) -> str:
        """Start the parent run and return its id."""
        self.setup()
        tags = {
            "project": self.config.project,
            "analysis": self.config.analysis.value,
            "recipeflow_version": __version__,
        }
        run = mlflow.start_run(run_name=run_name or self.config.project, tags=tags)
        self._run_id = run.info.run_id
        log.info("Started MLflow run", run_id=self._run_id)
        return self._run_id

    def end_run(self) -> None:
        mlflow.end_run()
        log.info("Ended MLflow run", run_id=self._run_id)

    def __enter__(self) -> "AnalysisExperiment":
        self.start_run()
        return self

    def __exit__(self, *exc: object) -> None:
        self.end_run()

    def log_params(self, params: dict[str, Any]) -> None:
        mlflow.log_params({k: str(v) for k, v in params.items()})

    def log_metrics(self, metrics: dict[str, float], prefix: str = "") -> None:
        mlflow.log_metrics({f"{prefix}{k}": float(v) for k, v in metrics.items()})

    def log_artifact(self, path: Path, artifact_path: str | None = None) -> None:
        mlflow.log_artifact(str(path), artifact_path)

    def log_workflow_set(self, wset: "WorkflowSet", metric: str) -> None:
        """One nested run per workflow with the metrics of its best candidate."""
        ranked = wset.rank_results(metric)
        for wflow_id, rows in ranked.groupby("wflow_id", sort=False):
            with mlflow.start_run(run_name=str(wflow_id), nested=True):
                first = rows.iloc[0]
                mlflow.set_tags(
                    {
                        "recipe": first["recipe"],
                        "model": first["model"],
                        "rank": str(first["rank"]),
                    }
                )
                metrics = dict(zip(rows[".metric"], rows["mean"], strict=True))
                self.log_metrics(metrics, prefix="cv_")

    def log_last_fit(self, result: "LastFitResult") -> None:
        """Test-set metrics of the final workflow."""
        mlflow.set_tag("final_workflow", result.workflow.id)
        self.log_metrics(result.metrics, prefix="test_")


def track_analysis(
    config: AnalysisConfig,
    *,
    params: dict[str, Any] | None = None,
    workflow_set: "WorkflowSet | None" = None,
    metric: str | None = None,
    last_fit: "LastFitResult | None" = None,
    artifacts: list[Path] | None = None,
) -> str | None:
    """
    Log an analysis run to MLflow if tracking is enabled.

    Returns:
        The run id, or None when tracking is disabled.
    """
    if not config.mlflow.enabled:
        return None

    experiment = AnalysisExperiment(config)
    with experiment:
        experiment.log_params({"random_state": config.random_state, **(params or {})})
        if workflow_set is not None and metric is not None:
            experiment.log_workflow_set(workflow_set, metric)
        if last_fit is not None:
            experiment.log_last_fit(last_fit)
        for path in artifacts or []:
            experiment.log_artifact(path)
    return experiment.run_id
