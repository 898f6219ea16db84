from __future__ import annotations

import warnings
from typing import Iterable, Optional

import pandas as pd

from gtex_eda.errors import ConfigurationError, EmptyResultWarning


def warn_if_empty(df: pd.DataFrame, stage: str) -> pd.DataFrame:
    if len(df) == 0:
        warnings.warn(f"[{stage}] no rows left after filtering", EmptyResultWarning, stacklevel=3)
    return df


def quality_filter(
    samples: pd.DataFrame,
    *,
    freeze_marker: Optional[str] = "RNASEQ",
    max_autolysis: Optional[float] = 3,
    min_rin: Optional[float] = 6.0,
    excluded_tissues: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """
    Keep samples that are in the RNA-Seq freeze, not maximally autolysed,
    above the RIN cutoff, and not in an excluded tissue.

    NaN scores fail the comparisons, so those rows are dropped.
    """
    params = {
        "freeze_marker": freeze_marker,
        "max_autolysis": max_autolysis,
        "min_rin": min_rin,
        "excluded_tissues": excluded_tissues,
    }
    unset = [k for k, v in params.items() if v is None]
    if unset:
        raise ConfigurationError(f"quality_filter: unset parameter(s): {unset}")

    keep = (
        (samples["freeze"] == freeze_marker)
        & (samples["autolysis_score"] < max_autolysis)
        & (samples["rin"] > min_rin)
        & ~samples["tissue"].isin(set(excluded_tissues))
    )
    return warn_if_empty(samples.loc[keep].copy(), "quality_filter")


def batch_volume_filter(samples: pd.DataFrame, *, min_batch_size: Optional[int] = 20) -> pd.DataFrame:
    """
    Drop samples from small extraction batches.

    Batch sizes are counted over the whole input before anything is removed;
    a batch is kept only if its size is strictly greater than min_batch_size.
    """
    if min_batch_size is None:
        raise ConfigurationError("batch_volume_filter: min_batch_size is unset")

    counts = samples["batch_id"].map(samples["batch_id"].value_counts())
    keep = counts > min_batch_size
    return warn_if_empty(samples.loc[keep].copy(), "batch_volume_filter")
