from __future__ import annotations

from pathlib import Path

import pandas as pd


def save_gene_names(names: pd.Series, path: Path) -> Path:
    """Persist gene_id -> gene_name so later runs can label genes without the big table."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    names.rename("gene_name").rename_axis("gene_id").to_csv(path, header=True)
    return path


def load_gene_names(path: Path) -> pd.Series:
    df = pd.read_csv(path, dtype=str)
    return df.set_index("gene_id")["gene_name"]
