"""
Model and results persistence (save/load).

Each object is written as two files next to each other:
    - {path}.{kind}.joblib: the pickled object
    - {path}.{kind}.json: human-readable metadata
"""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import joblib

from recipeflow import __version__
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)


def _paths(path: Path, kind: str) -> tuple[Path, Path]:
    """Object and metadata paths for a base path or an existing object path."""
    path = Path(path)
    if path.suffix == ".joblib":
        base = path.with_suffix("")
        if base.suffix == f".{kind}":
            base = base.with_suffix("")
    else:
        base = path
    return (
        base.with_name(f"{base.name}.{kind}.joblib"),
        base.with_name(f"{base.name}.{kind}.json"),
    )


def _save(obj: Any, path: Path, kind: str, metadata: dict[str, Any]) -> tuple[Path, Path]:
    object_path, metadata_path = _paths(path, kind)
    object_path.parent.mkdir(parents=True, exist_ok=True)

    joblib.dump(obj, object_path)
    log.info(f"Saved {kind}", path=str(object_path))

    full_metadata = {
        "kind": kind,
        "type": type(obj).__name__,
        "saved_at": datetime.now(UTC).isoformat(timespec="seconds"),
        "recipeflow_version": __version__,
        **metadata,
    }
    with open(metadata_path, "w", encoding="utf-8") as f:
        json.dump(full_metadata, f, indent=2, default=str)
    log.info(f"Saved {kind} metadata", path=str(metadata_path))

    return object_path, metadata_path


def _load(path: Path, kind: str) -> tuple[Any, dict[str, Any]]:
    object_path, metadata_path = _paths(path, kind)
    if not object_path.exists():
        msg = f"{kind.capitalize()} file not found: {object_path}"
        raise FileNotFoundError(msg)

    obj = joblib.load(object_path)
    log.info(f"Loaded {kind}", path=str(object_path))

    metadata: dict[str, Any] = {}
    if metadata_path.exists():
        with open(metadata_path, encoding="utf-8") as f:
            metadata = json.load(f)
    else:
        log.warning(f"{kind.capitalize()} metadata not found", path=str(metadata_path))

    return obj, metadata


def save_model(
    model: Any,
    path: Path,
    metadata: dict[str, Any] | None = None,
) -> tuple[Path, Path]:
    """
    Save a fitted workflow or estimator.

    Args:
        model: Fitted object to save.
        path: Base output path (without extension).
        metadata: Extra metadata, e.g. test-set metrics.

    Returns:
        Tuple of (model_path, metadata_path).
    """
    return _save(model, path, "model", metadata or {})


def load_model(path: Path) -> tuple[Any, dict[str, Any]]:
    """
    Load a model saved with ``save_model``.

    Accepts the ``.model.joblib`` path or the base path.

    Raises:
        FileNotFoundError: If the model file doesn't exist.
    """
    return _load(path, "model")


def save_results(
    results: Any,
    path: Path,
    metadata: dict[str, Any] | None = None,
) -> tuple[Path, Path]:
    """Save pre-computed results (e.g. an evaluated workflow set)."""
    return _save(results, path, "results", metadata or {})


def load_results(path: Path) -> tuple[Any, dict[str, Any]]:
    """
    Load results saved with ``save_results``.

    Raises:
        FileNotFoundError: If the results file doesn't exist.
    """
    return _load(path, "results")


def has_results(path: Path) -> bool:
    """Whether ``save_results`` output exists for a base path."""
    object_path, _ = _paths(path, "results")
    return object_path.exists()
