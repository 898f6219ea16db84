from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.colors import ListedColormap
from scipy.cluster.hierarchy import leaves_list, linkage


def cluster(
    matrix: pd.DataFrame,
    metric: str = "correlation",
    method: str = "average",
    axis: int = 0,
) -> List[int]:
    """
    Hierarchical clustering leaf order along `axis` (0 = rows, 1 = columns).

    Returns positional indices. Fewer than two items: identity order.
    """
    data = matrix.to_numpy(dtype=float)
    if axis == 1:
        data = data.T
    n = data.shape[0]
    if n < 2:
        return list(range(n))

    # correlation distance is undefined for constant vectors
    if metric == "correlation":
        flat = np.isclose(data.std(axis=1), 0.0)
        if flat.any():
            data = data.copy()
            data[flat] += np.linspace(0, 1e-9, data.shape[1])

    Z = linkage(data, method=method, metric=metric)
    return [int(i) for i in leaves_list(Z)]


def cluster_within_groups(
    matrix: pd.DataFrame,
    groups: Sequence[str],
    metric: str = "correlation",
    method: str = "average",
) -> List[int]:
    """
    Column order that clusters samples inside each contiguous group while
    keeping the groups themselves in their existing order.
    """
    groups = list(groups)
    order: List[int] = []
    start = 0
    for i in range(1, len(groups) + 1):
        if i == len(groups) or groups[i] != groups[start]:
            block = matrix.iloc[:, start:i]
            order.extend(start + j for j in cluster(block, metric=metric, method=method, axis=1))
            start = i
    return order


def _tissue_colors(labels: Sequence[str]):
    uniq = list(dict.fromkeys(labels))
    cmap = plt.get_cmap("tab20", max(len(uniq), 1))
    codes = np.array([uniq.index(t) for t in labels])[None, :]
    colors = ListedColormap([cmap(i) for i in range(len(uniq))]) if uniq else cmap
    return codes, colors


def render(
    matrix: pd.DataFrame,
    row_order: Sequence[int],
    col_order: Sequence[int],
    color_scale: Dict[str, Any],
    out_path: Path,
    tissues: Optional[Sequence[str]] = None,
    row_labels: Optional[Sequence[str]] = None,
    title: str = "GTEx expression, log10(TPM)",
) -> Path:
    """Draw the ordered matrix as a heatmap (optional tissue strip on top) and save a PNG."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    data = matrix.to_numpy(dtype=float)[np.ix_(list(row_order), list(col_order))]

    fig = plt.figure(figsize=(12, 10))
    if tissues is not None:
        grid = fig.add_gridspec(2, 2, height_ratios=[1, 30], width_ratios=[40, 1], hspace=0.02, wspace=0.03)
        ax_strip = fig.add_subplot(grid[0, 0])
        ax = fig.add_subplot(grid[1, 0])
        cax = fig.add_subplot(grid[1, 1])

        labels = [tissues[i] for i in col_order]
        codes, colors = _tissue_colors(labels)
        ax_strip.imshow(codes, aspect="auto", cmap=colors, interpolation="nearest")
        ax_strip.set_yticks([])
        ax_strip.tick_params(axis="x", labelbottom=False, bottom=False)

        # one tick per tissue block
        ticks, names = [], []
        start = 0
        for i in range(1, len(labels) + 1):
            if i == len(labels) or labels[i] != labels[start]:
                ticks.append((start + i - 1) / 2)
                names.append(labels[start])
                start = i
        ax_strip.set_xticks(ticks)
        ax_strip.set_xticklabels(names, rotation=90, fontsize=6)
        ax_strip.tick_params(axis="x", labeltop=True, top=False)
        ax_strip.set_title(title)
    else:
        grid = fig.add_gridspec(1, 2, width_ratios=[40, 1], wspace=0.03)
        ax = fig.add_subplot(grid[0, 0])
        cax = fig.add_subplot(grid[0, 1])
        ax.set_title(title)

    im = ax.imshow(
        data,
        aspect="auto",
        interpolation="nearest",
        cmap=color_scale.get("cmap", "viridis"),
        vmin=color_scale.get("vmin"),
        vmax=color_scale.get("vmax"),
    )
    fig.colorbar(im, cax=cax, label=color_scale.get("label", "log10(TPM)"))

    ax.set_xticks([])
    if row_labels is not None and len(row_order) <= 100:
        ax.set_yticks(range(len(row_order)))
        ax.set_yticklabels([row_labels[i] for i in row_order], fontsize=5)
    else:
        ax.set_yticks([])
    ax.set_xlabel(f"Samples (n={data.shape[1]})")
    ax.set_ylabel(f"Genes (n={data.shape[0]})")

    fig.savefig(out_path, dpi=200, bbox_inches="tight")
    plt.close(fig)
    return out_path
