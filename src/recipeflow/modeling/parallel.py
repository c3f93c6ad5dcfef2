"""
Parallel backend registration.

Resampling and tuning run through scikit-learn, which dispatches
independent fits to joblib. Wrapping them in ``parallel_backend`` decides
how many workers those fits get.
"""

from collections.abc import Iterator
from contextlib import contextmanager

import joblib

from recipeflow.utils.logging import get_logger

log = get_logger(__name__)

BACKENDS = ("loky", "threading", "multiprocessing", "sequential")


def effective_n_jobs(n_jobs: int) -> int:
    """Number of workers joblib would actually use for ``n_jobs``."""
    return joblib.effective_n_jobs(n_jobs)


@contextmanager
def parallel_backend(n_jobs: int = 1, backend: str = "loky") -> Iterator[int]:
    """
    Register a joblib backend for the duration of the block.

    Args:
        n_jobs: Worker count; -1 uses all cores, 1 runs sequentially.
        backend: joblib backend name.

    Yields:
        The effective number of workers.

    Raises:
        ValueError: If ``n_jobs`` is 0 or the backend is unknown.
    """
    if n_jobs == 0:
        msg = "n_jobs must not be 0"
        raise ValueError(msg)
    if backend not in BACKENDS:
        msg = f"Unknown backend '{backend}'. Available: {', '.join(BACKENDS)}"
        raise ValueError(msg)

    workers = effective_n_jobs(n_jobs)
    log.debug("Registering parallel backend", backend=backend, n_jobs=workers)
    with joblib.parallel_config(backend=backend, n_jobs=n_jobs):
        yield workers
