import numpy as np
import pandas as pd

from gtex_eda.render import cluster, cluster_within_groups, render


def _blocks():
    rng = np.random.default_rng(7)
    base_a = rng.normal(size=8)
    base_b = rng.normal(size=8)
    rows = [base_a + rng.normal(scale=0.01, size=8) for _ in range(3)]
    rows += [base_b + rng.normal(scale=0.01, size=8) for _ in range(3)]
    # interleave the two patterns
    order = [0, 3, 1, 4, 2, 5]
    return pd.DataFrame([rows[i] for i in order], index=[f"g{i}" for i in range(6)])


def test_cluster_is_permutation_and_groups_similar_rows():
    m = _blocks()
    order = cluster(m, axis=0)
    assert sorted(order) == list(range(len(m)))
    # rows 0, 2, 4 share a pattern and must be contiguous in the leaf order
    pos = sorted(order.index(i) for i in (0, 2, 4))
    assert pos[-1] - pos[0] == 2


def test_cluster_small_and_constant_inputs():
    assert cluster(pd.DataFrame([[1.0, 2.0]]), axis=0) == [0]
    flat = pd.DataFrame([[1.0, 1.0, 1.0], [1.0, 2.0, 3.0], [3.0, 2.0, 1.0]])
    assert sorted(cluster(flat, axis=0)) == [0, 1, 2]


def test_cluster_within_groups_keeps_blocks():
    m = _blocks().T  # 8 samples x 6 genes -> cluster the 6 columns
    groups = ["A", "A", "A", "B", "B", "B"]
    order = cluster_within_groups(m, groups)
    assert sorted(order[:3]) == [0, 1, 2]
    assert sorted(order[3:]) == [3, 4, 5]


def test_render_writes_png(tmp_path):
    m = _blocks()
    tissues = ["Lung"] * 4 + ["Skin"] * 4
    out = render(
        m,
        row_order=cluster(m, axis=0),
        col_order=list(range(m.shape[1])),
        color_scale={"cmap": "magma", "vmin": -2, "vmax": 2},
        out_path=tmp_path / "plots" / "heatmap.png",
        tissues=tissues,
        row_labels=list(m.index),
    )
    assert out.exists()
    assert out.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_render_without_tissue_strip(tmp_path):
    m = _blocks()
    out = render(m, range(6), range(8), {}, tmp_path / "plain.png")
    assert out.stat().st_size > 0
