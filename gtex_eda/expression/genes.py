from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd

from gtex_eda.errors import ConfigurationError, MissingSampleError
from gtex_eda.samples.quality import warn_if_empty


def strip_version(gene_id: str) -> str:
    # ENSG00000223972.5 -> ENSG00000223972
    return str(gene_id).split(".", 1)[0]


def load_biotypes(path: Path, id_col: str = "gene_id", type_col: str = "gene_type") -> pd.Series:
    """
    Read a gene annotation table into versionless gene_id -> biotype.
    """
    path = Path(path)
    sep = "," if ".csv" in [s.lower() for s in path.suffixes] else "\t"
    df = pd.read_csv(path, sep=sep, dtype=str)

    for col in (id_col, type_col):
        if col not in df.columns:
            raise ConfigurationError(f"Biotype table {path} is missing column: {col}")

    df = df.dropna(subset=[id_col])
    ids = df[id_col].map(strip_version)
    out = pd.Series(df[type_col].str.strip().to_numpy(), index=ids.to_numpy(), name="biotype")
    return out[~out.index.duplicated(keep="first")]


def protein_coding_filter(
    expr: pd.DataFrame,
    biotypes: pd.Series,
    biotype: str = "protein_coding",
) -> pd.DataFrame:
    """Keep genes whose versionless id maps to `biotype`."""
    wanted = set(biotypes.index[biotypes == biotype])
    keep = expr.index.map(strip_version).isin(wanted)
    return warn_if_empty(expr.loc[keep].copy(), "protein_coding_filter")


def select_samples(expr: pd.DataFrame, sample_ids: Sequence[str]) -> pd.DataFrame:
    """Restrict columns to exactly `sample_ids`, in that order."""
    sample_ids = list(sample_ids)
    present = set(expr.columns)
    missing = [s for s in sample_ids if s not in present]
    if missing:
        raise MissingSampleError("select_samples", missing)
    return expr.loc[:, sample_ids].copy()


def abundance_filter(expr: pd.DataFrame, *, min_mean_tpm: float = 1.0) -> pd.DataFrame:
    """
    Drop lowly expressed genes on untransformed TPM.

    A gene is kept when log(mean TPM) > log(min_mean_tpm). The log is only
    taken for genes with a positive mean; all-zero genes are dropped without
    evaluating it.
    """
    if min_mean_tpm is None or min_mean_tpm <= 0:
        raise ConfigurationError(f"abundance_filter: min_mean_tpm must be > 0, got {min_mean_tpm}")

    means = expr.mean(axis=1)
    positive = means > 0

    keep = pd.Series(False, index=expr.index)
    keep[positive] = np.log(means[positive]) > np.log(min_mean_tpm)
    return warn_if_empty(expr.loc[keep].copy(), "abundance_filter")
