import gzip

import numpy as np
import pandas as pd
import pytest


def make_samples(tissue_counts, batch_size=30, rin=7.5, autolysis=1, freeze="RNASEQ"):
    """
    Canonical annotation frame. tissue_counts maps coarse tissue -> n samples;
    the detailed tissue is "<tissue> - A". Batches are filled sequentially.
    """
    rows = []
    i = 0
    for tissue, n in tissue_counts.items():
        for _ in range(n):
            rows.append(
                {
                    "sample_id": f"GTEX-{i:05d}",
                    "tissue": tissue,
                    "tissue_detail": f"{tissue} - A",
                    "batch_id": f"BP-{i // batch_size:03d}",
                    "batch_type": "RNA isolation_PAXgene Tissue miRNA",
                    "autolysis_score": autolysis,
                    "rin": rin,
                    "freeze": freeze,
                }
            )
            i += 1
    return pd.DataFrame(rows)


def to_gtex_columns(samples: pd.DataFrame) -> pd.DataFrame:
    from gtex_eda.samples.annotations import GTEX_COLUMNS

    return samples.rename(columns={v: k for k, v in GTEX_COLUMNS.items()})


def write_gct(path, expr: pd.DataFrame, names: pd.Series):
    """Write genes x samples as a GTEx GCT (optionally gzipped by suffix)."""
    body = expr.copy()
    body.insert(0, "Description", names.reindex(expr.index).to_numpy())
    body.insert(0, "Name", expr.index.to_numpy())
    opener = gzip.open if str(path).lower().endswith(".gz") else open
    with opener(path, "wt") as f:
        f.write("#1.2\n")
        f.write(f"{expr.shape[0]}\t{expr.shape[1]}\n")
        body.to_csv(f, sep="\t", index=False)
    return path


@pytest.fixture
def samples():
    return make_samples({"Bladder": 11, "Kidney": 43, "Skin": 200}, batch_size=100)


@pytest.fixture
def small_expression():
    """Four genes (versioned ids) x three samples."""
    expr = pd.DataFrame(
        {
            "S1": [0.0, 0.0, 10.0, 5.0],
            "S2": [0.0, 0.0, 12.0, 5.0],
            "S3": [4.0, 2.0, 8.0, 5.0],
        },
        index=pd.Index(
            ["ENSG00000000001.3", "ENSG00000000002.1", "ENSG00000000003.14", "ENSG00000000004.2"],
            name="gene_id",
        ),
    )
    names = pd.Series(["GENEA", "GENEB", "GENEC", "GENED"], index=expr.index, name="gene_name")
    return expr, names


@pytest.fixture
def biotypes():
    return pd.Series(
        {
            "ENSG00000000001": "protein_coding",
            "ENSG00000000002": "protein_coding",
            "ENSG00000000003": "protein_coding",
            "ENSG00000000004": "lincRNA",
        },
        name="biotype",
    )


@pytest.fixture
def gtex_inputs(tmp_path):
    """
    A small but complete set of pipeline inputs on disk:
    annotations, data dictionary, biotype table and a gzipped GCT.
    """
    samples = make_samples({"Bladder": 5, "Kidney": 25, "Skin": 60, "Lung": 30}, batch_size=30)
    ann_path = tmp_path / "SampleAttributesDS.txt"
    to_gtex_columns(samples).to_csv(ann_path, sep="\t", index=False)

    dd_path = tmp_path / "SampleAttributesDD.txt"
    pd.DataFrame(
        {"VARNAME": ["SAMPID", "SMTS", "SMRIN"], "VARDESC": ["Sample ID", "Tissue Type", "RIN Number"]}
    ).to_csv(dd_path, sep="\t", index=False)

    rng = np.random.default_rng(0)
    n_genes = 12
    ids = [f"ENSG{i:011d}.{i % 3 + 1}" for i in range(n_genes)]
    tpm = rng.gamma(2.0, 5.0, size=(n_genes, len(samples)))
    tpm[0, :] = 0.0  # never expressed
    tpm[1, :] = 0.5  # below the abundance cutoff
    expr = pd.DataFrame(tpm, index=pd.Index(ids, name="gene_id"), columns=samples["sample_id"])
    names = pd.Series([f"G{i}" for i in range(n_genes)], index=expr.index)
    gct_path = write_gct(tmp_path / "gene_tpm.gct.gz", expr, names)

    bio_path = tmp_path / "genes.tsv"
    pd.DataFrame(
        {
            "gene_id": ids,
            "gene_type": ["protein_coding"] * (n_genes - 2) + ["lincRNA", "pseudogene"],
        }
    ).to_csv(bio_path, sep="\t", index=False)

    cfg = {
        "project": {"run_name": "test"},
        "data": {
            "annotations": str(ann_path),
            "data_dictionary": str(dd_path),
            "expression": str(gct_path),
            "biotypes": str(bio_path),
            "processed_dir": str(tmp_path / "processed"),
        },
        "filters": {"min_rin": 6, "min_batch_size": 20, "excluded_tissues": ["Bladder"]},
        "sampling": {"cap_per_tissue": 20, "seed": 4019},
        "matrix": {"tissue_order": ["Skin", "Lung", "Kidney"], "chunksize": 4},
        "plot": {"cluster_samples": True},
        "outputs": {"runs_dir": str(tmp_path / "runs"), "write_matrix": True},
    }
    return cfg
