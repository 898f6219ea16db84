from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from gtex_eda.errors import ConfigurationError, MissingSampleError, UnknownTissueError


@dataclass(frozen=True)
class AssembledMatrix:
    """
    log10(TPM + pseudocount), genes x samples, columns grouped by tissue.

    `tissues` is aligned to the columns of `values`.
    """

    values: pd.DataFrame
    tissues: pd.Series
    gene_names: Optional[pd.Series] = None

    @property
    def sample_ids(self) -> List[str]:
        return list(self.values.columns)

    def columns_for(self, sample_ids: Sequence[str]) -> pd.DataFrame:
        """Columns in exactly the requested order; nothing is re-sorted."""
        sample_ids = list(sample_ids)
        present = set(self.values.columns)
        missing = [s for s in sample_ids if s not in present]
        if missing:
            raise MissingSampleError("columns_for", missing)
        return self.values.loc[:, sample_ids]

    def tissue_spans(self) -> List[Tuple[str, int, int]]:
        """Contiguous (tissue, start, stop) blocks along the columns."""
        spans: List[Tuple[str, int, int]] = []
        start = 0
        labels = self.tissues.tolist()
        for i in range(1, len(labels) + 1):
            if i == len(labels) or labels[i] != labels[start]:
                spans.append((labels[start], start, i))
                start = i
        return spans

    def row_labels(self) -> List[str]:
        if self.gene_names is None:
            return list(self.values.index)
        names = self.gene_names.reindex(self.values.index)
        return names.fillna(pd.Series(self.values.index, index=self.values.index)).tolist()

    def to_csv(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        header = pd.DataFrame([self.tissues.to_numpy()], columns=self.values.columns, index=["tissue"])
        pd.concat([header, self.values.astype(object)]).to_csv(path, index_label="gene_id")
        return path


def assemble_matrix(
    expr: pd.DataFrame,
    samples: pd.DataFrame,
    tissue_order: Sequence[str],
    *,
    pseudocount: float = 1e-4,
    gene_names: Optional[pd.Series] = None,
) -> AssembledMatrix:
    """
    Join tissues onto the expression columns, order the columns by
    tissue_order (stable, so ties keep their incoming order) and apply
    log10(x + pseudocount) to every cell.

    Must run after all gene filters: the abundance filter works on raw TPM.
    """
    if pseudocount is None or pseudocount <= 0:
        raise ConfigurationError(f"assemble_matrix: pseudocount must be > 0, got {pseudocount}")
    if not tissue_order:
        raise ConfigurationError("assemble_matrix: tissue_order is empty")

    tissue_by_sample = samples.set_index("sample_id")["tissue"]
    cols = list(expr.columns)

    missing = [s for s in cols if s not in tissue_by_sample.index]
    if missing:
        raise MissingSampleError("assemble_matrix", missing)

    tissues = tissue_by_sample.reindex(cols)
    rank = {t: i for i, t in enumerate(tissue_order)}
    unknown = tissues[~tissues.isin(list(rank))]
    if len(unknown):
        raise UnknownTissueError("assemble_matrix", unknown.astype(str).tolist(), unknown.index.tolist())

    position = tissues.map(rank)
    ordered = position.sort_values(kind="mergesort").index.tolist()

    values = np.log10(expr.loc[:, ordered] + pseudocount)
    tissues = tissues.reindex(ordered)

    # post-conditions
    if set(values.columns) != set(cols) or len(values.columns) != len(cols):
        raise MissingSampleError("assemble_matrix", sorted(set(cols) ^ set(values.columns)))
    if not values.index.equals(expr.index):
        raise ValueError("assemble_matrix: gene index changed during assembly")

    return AssembledMatrix(values=values, tissues=tissues, gene_names=gene_names)
