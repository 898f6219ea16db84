from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable

import pandas as pd

from gtex_eda.errors import ConfigurationError

# GTEx SampleAttributesDS column -> canonical name
GTEX_COLUMNS: Dict[str, str] = {
    "SAMPID": "sample_id",
    "SMTS": "tissue",
    "SMTSD": "tissue_detail",
    "SMNABTCH": "batch_id",
    "SMNABTCHT": "batch_type",
    "SMATSSCR": "autolysis_score",
    "SMRIN": "rin",
    "SMAFRZE": "freeze",
}

NUMERIC_COLUMNS = ("autolysis_score", "rin")


def _sep_for(path: Path) -> str:
    return "," if path.suffix.lower() == ".csv" else "\t"


def load_sample_annotations(
    path: Path,
    columns: Dict[str, str] = GTEX_COLUMNS,
) -> pd.DataFrame:
    """
    Load the sample annotation table (GTEx SampleAttributesDS).

    Returns a DataFrame with columns:
      sample_id, tissue, tissue_detail, batch_id, batch_type,
      autolysis_score, rin, freeze
    """
    path = Path(path)
    df = pd.read_csv(path, sep=_sep_for(path), dtype=str, low_memory=False)

    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ConfigurationError(f"Annotation table {path} is missing columns: {missing}")

    # Standardize schema
    out = df[list(columns)].rename(columns=columns)

    for col in out.columns:
        if col not in NUMERIC_COLUMNS:
            out[col] = out[col].str.strip()
    for col in NUMERIC_COLUMNS:
        out[col] = pd.to_numeric(out[col], errors="coerce")

    dups = out.loc[out["sample_id"].duplicated(), "sample_id"].unique().tolist()
    if dups:
        raise ValueError(f"Duplicate sample_id in {path}: {dups[:10]}")

    return out.reset_index(drop=True)


def load_data_dictionary(path: Path) -> pd.Series:
    """Read the attribute data dictionary as VARNAME -> VARDESC."""
    path = Path(path)
    if path.suffix.lower() in (".xlsx", ".xls"):
        dd = pd.read_excel(path)
    else:
        dd = pd.read_csv(path, sep=_sep_for(path), dtype=str)

    for col in ("VARNAME", "VARDESC"):
        if col not in dd.columns:
            raise ConfigurationError(f"Data dictionary {path} is missing column: {col}")

    dd = dd.dropna(subset=["VARNAME"])
    desc = dd.set_index(dd["VARNAME"].astype(str).str.strip())["VARDESC"].fillna("")
    return desc[~desc.index.duplicated(keep="first")]


def describe_columns(dictionary: pd.Series, columns: Iterable[str]) -> Dict[str, str]:
    return {c: str(dictionary.get(c, "")) for c in columns}
