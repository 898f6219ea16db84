import numpy as np
import pandas as pd
import pytest

from conftest import make_samples
from gtex_eda.assemble import assemble_matrix
from gtex_eda.errors import ConfigurationError, MissingSampleError, UnknownTissueError

ORDER = ["Brain", "Lung", "Skin"]


@pytest.fixture
def annotated():
    samples = make_samples({"Skin": 3, "Brain": 2, "Lung": 2})
    # interleave tissues so the sort has work to do
    cols = ["GTEX-00005", "GTEX-00000", "GTEX-00003", "GTEX-00001", "GTEX-00006", "GTEX-00004", "GTEX-00002"]
    expr = pd.DataFrame(
        np.arange(3 * len(cols), dtype=float).reshape(3, len(cols)),
        index=pd.Index(["g1", "g2", "g3"], name="gene_id"),
        columns=cols,
    )
    expr.iloc[0, 0] = 0.0
    return expr, samples


def test_columns_sorted_by_tissue_order(annotated):
    expr, samples = annotated
    mat = assemble_matrix(expr, samples, ORDER)

    pos = [ORDER.index(t) for t in mat.tissues]
    assert pos == sorted(pos)
    assert set(mat.sample_ids) == set(expr.columns)
    assert mat.tissues.index.tolist() == mat.sample_ids


def test_ties_keep_incoming_order(annotated):
    expr, samples = annotated
    mat = assemble_matrix(expr, samples, ORDER)
    skin = [s for s in mat.sample_ids if mat.tissues[s] == "Skin"]
    assert skin == ["GTEX-00000", "GTEX-00001", "GTEX-00002"]
    lung = [s for s in mat.sample_ids if mat.tissues[s] == "Lung"]
    assert lung == ["GTEX-00005", "GTEX-00006"]


def test_log_transform_with_pseudocount(annotated):
    expr, samples = annotated
    mat = assemble_matrix(expr, samples, ORDER, pseudocount=1e-4)
    assert mat.values.loc["g1", "GTEX-00005"] == pytest.approx(-4.0)
    assert mat.values.loc["g2", "GTEX-00000"] == pytest.approx(np.log10(expr.loc["g2", "GTEX-00000"] + 1e-4))
    assert np.isfinite(mat.values.to_numpy()).all()
    # input stays untransformed
    assert expr.loc["g1", "GTEX-00005"] == 0.0


def test_unknown_tissue(annotated):
    expr, samples = annotated
    with pytest.raises(UnknownTissueError) as exc:
        assemble_matrix(expr, samples, ["Brain", "Lung"])
    assert exc.value.tissues == ["Skin"]
    assert sorted(exc.value.sample_ids) == ["GTEX-00000", "GTEX-00001", "GTEX-00002"]


def test_sample_missing_from_annotations(annotated):
    expr, samples = annotated
    with pytest.raises(MissingSampleError):
        assemble_matrix(expr, samples[samples["sample_id"] != "GTEX-00004"], ORDER)


def test_bad_pseudocount(annotated):
    expr, samples = annotated
    with pytest.raises(ConfigurationError):
        assemble_matrix(expr, samples, ORDER, pseudocount=0)


def test_requery_keeps_assembled_order(annotated):
    expr, samples = annotated
    mat = assemble_matrix(expr, samples, ORDER)
    ids = mat.sample_ids
    again = mat.columns_for(ids)
    assert list(again.columns) == ids
    pd.testing.assert_frame_equal(again, mat.values)

    with pytest.raises(MissingSampleError):
        mat.columns_for(ids + ["GTEX-99999"])


def test_tissue_spans_and_labels(annotated):
    expr, samples = annotated
    names = pd.Series({"g1": "AAA", "g3": "CCC"})
    mat = assemble_matrix(expr, samples, ORDER, gene_names=names)
    assert mat.tissue_spans() == [("Brain", 0, 2), ("Lung", 2, 4), ("Skin", 4, 7)]
    assert mat.row_labels() == ["AAA", "g2", "CCC"]


def test_to_csv(tmp_path, annotated):
    expr, samples = annotated
    mat = assemble_matrix(expr, samples, ORDER)
    path = mat.to_csv(tmp_path / "tables" / "matrix.csv")
    back = pd.read_csv(path, index_col=0)
    assert list(back.columns) == mat.sample_ids
    assert back.loc["tissue"].tolist() == mat.tissues.tolist()
