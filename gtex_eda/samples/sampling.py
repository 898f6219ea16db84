from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

from gtex_eda.errors import ConfigurationError
from gtex_eda.samples.quality import warn_if_empty


def balanced_sample(
    samples: pd.DataFrame,
    *,
    cap: Optional[int] = 45,
    seed: Optional[int] = None,
    group_col: str = "tissue_detail",
) -> pd.DataFrame:
    """
    Subsample each group to at most `cap` rows, without replacement.

    Groups smaller than the cap are kept whole. Rows with a blank group
    value form their own group rather than being dropped. Each group is
    put in sample_id order before drawing, and the seed drives a local
    numpy Generator, so the same seed and sample set always give the same
    rows whatever order they arrive in.
    """
    if seed is None:
        raise ConfigurationError("balanced_sample: seed is unset")
    if cap is None or cap < 1:
        raise ConfigurationError(f"balanced_sample: cap must be >= 1, got {cap}")

    rng = np.random.default_rng(seed)

    parts = []
    for _, group in samples.groupby(group_col, sort=True, dropna=False):
        n = min(cap, len(group))
        group = group.sort_values("sample_id", kind="mergesort")
        parts.append(group.sample(n=n, replace=False, random_state=rng))

    if not parts:
        return warn_if_empty(samples.iloc[0:0].copy(), "balanced_sample")
    return warn_if_empty(pd.concat(parts), "balanced_sample")


def group_sizes(before: pd.DataFrame, after: pd.DataFrame, group_col: str = "tissue_detail") -> pd.DataFrame:
    """Per-group counts before and after sampling, plus the coarse tissue."""
    out = pd.DataFrame(
        {
            "n_eligible": before[group_col].value_counts(),
            "n_sampled": after[group_col].value_counts(),
        }
    )
    out["n_sampled"] = out["n_sampled"].fillna(0).astype(int)
    out.index.name = group_col
    out = out.reset_index()

    if group_col != "tissue":
        tissue = before.drop_duplicates(group_col).set_index(group_col)["tissue"]
        out.insert(0, "tissue", out[group_col].map(tissue))
        return out.sort_values(["tissue", group_col]).reset_index(drop=True)
    return out.sort_values(group_col).reset_index(drop=True)
