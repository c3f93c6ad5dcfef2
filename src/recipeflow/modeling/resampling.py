"""
Data splitting and resampling.

``initial_split`` holds out a test set; ``vfold_cv`` and ``bootstraps``
resample the training set. Splits are positional index arrays into the
frame they were made from, so a ``Resamples`` object can be handed to any
scikit-learn ``cv`` argument.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold

from recipeflow.utils.logging import get_logger

log = get_logger(__name__)


def strata_labels(values: pd.Series, breaks: int = 4) -> np.ndarray:
    """
    Turn a stratification column into discrete labels.

    Numeric columns with more than ``breaks`` distinct values are binned at
    their quantiles (quartiles by default); anything else is used as is.
    Missing values form their own stratum.
    """
    numeric = pd.api.types.is_numeric_dtype(values) and not pd.api.types.is_bool_dtype(
        values
    )
    if numeric and values.nunique() > breaks:
        binned = pd.qcut(values, q=breaks, labels=False, duplicates="drop")
        return binned.fillna(-1).astype(int).to_numpy()
    return values.astype(object).where(values.notna(), "__missing__").astype(str).to_numpy()


@dataclass(frozen=True)
class Split:
    """
    Training/testing split of a frame.

    Attributes:
        data: The frame that was split.
        train_idx: Positional indices of training rows.
        test_idx: Positional indices of testing rows.
    """

    data: pd.DataFrame
    train_idx: np.ndarray
    test_idx: np.ndarray

    def training(self) -> pd.DataFrame:
        return self.data.iloc[self.train_idx]

    def testing(self) -> pd.DataFrame:
        return self.data.iloc[self.test_idx]

    def __repr__(self) -> str:
        return (
            f"<Split training={len(self.train_idx)} testing={len(self.test_idx)} "
            f"total={len(self.data)}>"
        )


def initial_split(
    df: pd.DataFrame,
    prop: float = 0.75,
    strata: str | None = None,
    random_state: int | None = None,
    breaks: int = 4,
) -> Split:
    """
    Randomly assign a proportion of rows to training.

    With ``strata`` the sampling is done within each stratum, so the
    outcome distribution of both parts stays close to the full data.

    Raises:
        ValueError: If ``prop`` is not in (0, 1) or the frame is too small.
        KeyError: If the strata column is missing.
    """
    if not 0 < prop < 1:
        msg = f"prop must be between 0 and 1, got {prop}"
        raise ValueError(msg)
    if len(df) < 2:
        msg = f"Need at least 2 rows to split, got {len(df)}"
        raise ValueError(msg)

    rng = np.random.default_rng(random_state)
    if strata is None:
        groups = [np.arange(len(df))]
    else:
        if strata not in df.columns:
            msg = f"Strata column '{strata}' not found"
            raise KeyError(msg)
        labels = strata_labels(df[strata], breaks=breaks)
        groups = [np.flatnonzero(labels == level) for level in np.unique(labels)]

    train_parts = []
    for members in groups:
        shuffled = rng.permutation(members)
        n_train = int(np.floor(prop * len(shuffled)))
        train_parts.append(shuffled[:n_train])

    train_idx = np.sort(np.concatenate(train_parts))
    test_idx = np.setdiff1d(np.arange(len(df)), train_idx)
    if len(train_idx) == 0 or len(test_idx) == 0:
        msg = f"Split of {len(df)} rows with prop={prop} left an empty part"
        raise ValueError(msg)

    split = Split(data=df, train_idx=train_idx, test_idx=test_idx)
    log.info("Created initial split", training=len(train_idx), testing=len(test_idx))
    return split


@dataclass(frozen=True)
class Resamples:
    """
    A set of (analysis, assessment) splits of one frame.

    Iterating yields ``(analysis_idx, assessment_idx)`` pairs; ``split`` and
    ``get_n_splits`` make the object a scikit-learn CV splitter.
    """

    data: pd.DataFrame
    splits: list[tuple[np.ndarray, np.ndarray]]
    ids: list[str]
    method: str
    params: dict[str, Any] = field(default_factory=dict)

    def __iter__(self) -> Iterator[tuple[np.ndarray, np.ndarray]]:
        return iter(self.splits)

    def __len__(self) -> int:
        return len(self.splits)

    def split(
        self, X: Any = None, y: Any = None, groups: Any = None
    ) -> Iterator[tuple[np.ndarray, np.ndarray]]:
        yield from self.splits

    def get_n_splits(self, X: Any = None, y: Any = None, groups: Any = None) -> int:
        return len(self.splits)

    def analysis(self, i: int) -> pd.DataFrame:
        """Rows used for fitting in resample ``i``."""
        return self.data.iloc[self.splits[i][0]]

    def assessment(self, i: int) -> pd.DataFrame:
        """Held-out rows of resample ``i``."""
        return self.data.iloc[self.splits[i][1]]

    def __repr__(self) -> str:
        return f"<Resamples method={self.method} n={len(self.splits)} rows={len(self.data)}>"


def vfold_cv(
    df: pd.DataFrame,
    v: int = 10,
    repeats: int = 1,
    strata: str | None = None,
    random_state: int | None = None,
    breaks: int = 4,
) -> Resamples:
    """
    V-fold cross-validation, optionally repeated and stratified.

    Ids are ``Fold01`` ... or ``Repeat1_Fold01`` ... when repeated.

    Raises:
        ValueError: If ``v`` is below 2 or exceeds the number of rows.
    """
    if v < 2 or v > len(df):
        msg = f"v must be between 2 and the number of rows ({len(df)}), got {v}"
        raise ValueError(msg)
    if repeats < 1:
        msg = f"repeats must be at least 1, got {repeats}"
        raise ValueError(msg)

    labels = None
    if strata is not None:
        if strata not in df.columns:
            msg = f"Strata column '{strata}' not found"
            raise KeyError(msg)
        labels = strata_labels(df[strata], breaks=breaks)
        smallest = pd.Series(labels).value_counts().min()
        if smallest < v:
            log.warning(
                "Smallest stratum has fewer rows than folds",
                strata=strata,
                smallest=int(smallest),
                v=v,
            )

    splits: list[tuple[np.ndarray, np.ndarray]] = []
    ids: list[str] = []
    positions = np.arange(len(df))
    for r in range(repeats):
        seed = None if random_state is None else random_state + r
        if labels is None:
            folds = KFold(n_splits=v, shuffle=True, random_state=seed).split(positions)
        else:
            folds = StratifiedKFold(n_splits=v, shuffle=True, random_state=seed).split(
                positions, labels
            )
        for i, (analysis_idx, assessment_idx) in enumerate(folds, start=1):
            splits.append((analysis_idx, assessment_idx))
            fold_id = f"Fold{i:02d}"
            ids.append(fold_id if repeats == 1 else f"Repeat{r + 1}_{fold_id}")

    log.info("Created v-fold resamples", v=v, repeats=repeats, strata=strata)
    return Resamples(
        data=df,
        splits=splits,
        ids=ids,
        method="vfold",
        params={"v": v, "repeats": repeats, "strata": strata},
    )


def bootstraps(
    df: pd.DataFrame,
    times: int = 25,
    strata: str | None = None,
    random_state: int | None = None,
    breaks: int = 4,
) -> Resamples:
    """
    Bootstrap resamples with out-of-bag assessment sets.

    Each analysis set draws ``len(df)`` rows with replacement (within
    strata when given); the assessment set is every row never drawn.

    Raises:
        ValueError: If ``times`` is below 1 or the frame has fewer than 2 rows.
    """
    if times < 1:
        msg = f"times must be at least 1, got {times}"
        raise ValueError(msg)
    if len(df) < 2:
        msg = f"Need at least 2 rows to bootstrap, got {len(df)}"
        raise ValueError(msg)

    rng = np.random.default_rng(random_state)
    if strata is None:
        groups = [np.arange(len(df))]
    else:
        if strata not in df.columns:
            msg = f"Strata column '{strata}' not found"
            raise KeyError(msg)
        labels = strata_labels(df[strata], breaks=breaks)
        groups = [np.flatnonzero(labels == level) for level in np.unique(labels)]

    splits: list[tuple[np.ndarray, np.ndarray]] = []
    positions = np.arange(len(df))
    while len(splits) < times:
        analysis_idx = np.concatenate(
            [rng.choice(members, size=len(members), replace=True) for members in groups]
        )
        assessment_idx = np.setdiff1d(positions, analysis_idx)
        # Redraw the (rare) resample that happens to contain every row
        if len(assessment_idx) == 0:
            continue
        splits.append((np.sort(analysis_idx), assessment_idx))

    ids = [f"Bootstrap{i:02d}" for i in range(1, times + 1)]
    log.info("Created bootstrap resamples", times=times, strata=strata)
    return Resamples(
        data=df,
        splits=splits,
        ids=ids,
        method="bootstrap",
        params={"times": times, "strata": strata},
    )
