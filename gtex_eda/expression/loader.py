from __future__ import annotations

import gzip
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from gtex_eda.errors import MissingSampleError

ID_COL = "Name"
NAME_COL = "Description"


def _open_text(path: Path):
    if path.suffix.lower() == ".gz":
        return gzip.open(path, "rt")
    return open(path, "r")


def _sep_for(path: Path) -> str:
    suffixes = [s.lower() for s in path.suffixes]
    return "," if ".csv" in suffixes else "\t"


def read_expression_header(path: Path) -> Tuple[List[str], int]:
    """
    Read only the header of a wide expression table.

    GTEx GCT files start with a version line ("#1.2") and a dimensions line;
    those are skipped. Returns (column names, number of lines to skip).
    """
    path = Path(path)
    with _open_text(path) as f:
        first = f.readline()
        skip = 0
        if first.startswith("#1."):
            f.readline()
            first = f.readline()
            skip = 2
    header = first.rstrip("\r\n").split(_sep_for(path))
    return header, skip


def load_expression(
    path: Path,
    sample_ids: Sequence[str],
    id_col: str = ID_COL,
    name_col: str = NAME_COL,
    chunksize: Optional[int] = None,
) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Load TPM values for the selected samples only.

    The header is checked before any data is read, so a missing sample fails
    fast. Only the id/name columns and the requested sample columns are
    parsed.

    Returns:
      expr  : genes x samples, indexed by gene_id, columns in sample_ids order
      names : gene_id -> display name
    """
    path = Path(path)
    sample_ids = list(sample_ids)
    if len(set(sample_ids)) != len(sample_ids):
        raise ValueError("load_expression: duplicate sample ids requested")

    header, skip = read_expression_header(path)
    for col in (id_col, name_col):
        if col not in header:
            raise ValueError(f"Expression table {path} has no '{col}' column")

    present = set(header)
    missing = [s for s in sample_ids if s not in present]
    if missing:
        raise MissingSampleError("load_expression", missing)

    reader = pd.read_csv(
        path,
        sep=_sep_for(path),
        skiprows=skip,
        usecols=[id_col, name_col] + sample_ids,
        dtype={id_col: str, name_col: str},
        chunksize=chunksize,
    )
    df = pd.concat(reader, ignore_index=True) if chunksize else reader

    if df[id_col].duplicated().any():
        dups = df.loc[df[id_col].duplicated(), id_col].tolist()
        raise ValueError(f"Duplicate gene ids in {path}: {dups[:10]}")

    df = df.set_index(id_col)
    df.index.name = "gene_id"

    names = df[name_col].rename("gene_name")
    expr = df[sample_ids].astype(float)
    return expr, names
