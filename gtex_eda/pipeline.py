from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import pandas as pd

from gtex_eda.assemble import assemble_matrix
from gtex_eda.config import PipelineConfig
from gtex_eda.expression.gene_names import save_gene_names
from gtex_eda.expression.genes import abundance_filter, load_biotypes, protein_coding_filter, select_samples
from gtex_eda.expression.loader import load_expression
from gtex_eda.render import cluster, cluster_within_groups, render
from gtex_eda.runlog import RunLog
from gtex_eda.samples.annotations import GTEX_COLUMNS, describe_columns, load_data_dictionary, load_sample_annotations
from gtex_eda.samples.quality import batch_volume_filter, quality_filter
from gtex_eda.samples.sampling import balanced_sample, group_sizes


def _require_rows(df: pd.DataFrame, stage: str, log: RunLog) -> None:
    if len(df) == 0:
        log.warn(f"{stage}: no rows left, stopping")
        raise SystemExit(f"Pipeline stopped: stage '{stage}' produced an empty result.")


def run_pipeline(cfg: Dict, run_dir: Path) -> Dict[str, Any]:
    run_dir = Path(run_dir)
    log = RunLog(run_dir / "logs" / "pipeline.log")
    tables_dir = run_dir / "tables"
    tables_dir.mkdir(parents=True, exist_ok=True)

    params = PipelineConfig.from_dict(cfg)
    data = cfg.get("data") or {}
    outputs = cfg.get("outputs") or {}
    processed_dir = Path(data.get("processed_dir", "data/processed"))
    counts: Dict[str, int] = {}

    # --- Sample annotations ---
    samples = load_sample_annotations(Path(data["annotations"]))
    counts["annotated"] = len(samples)
    log.info(f"Loaded {len(samples)} sample annotations from {data['annotations']}")

    if data.get("data_dictionary"):
        dd = load_data_dictionary(Path(data["data_dictionary"]))
        for col, desc in describe_columns(dd, GTEX_COLUMNS).items():
            log.info(f"  {col:10s} -> {GTEX_COLUMNS[col]:16s} {desc}")

    qc = quality_filter(
        samples,
        freeze_marker=params.freeze_marker,
        max_autolysis=params.max_autolysis,
        min_rin=params.min_rin,
        excluded_tissues=params.excluded_tissues,
    )
    counts["quality_filter"] = len(qc)
    log.info(
        f"Quality filter (freeze={params.freeze_marker}, autolysis<{params.max_autolysis}, "
        f"RIN>{params.min_rin}, excluded={sorted(params.excluded_tissues)}): {len(qc)} samples"
    )
    _require_rows(qc, "quality_filter", log)

    batched = batch_volume_filter(qc, min_batch_size=params.min_batch_size)
    counts["batch_volume_filter"] = len(batched)
    log.info(f"Batch-volume filter (batch size>{params.min_batch_size}): {len(batched)} samples")
    _require_rows(batched, "batch_volume_filter", log)

    sampled = balanced_sample(
        batched, cap=params.cap_per_tissue, seed=params.seed, group_col=params.group_col
    )
    counts["balanced_sample"] = len(sampled)
    log.info(f"Balanced sample (cap={params.cap_per_tissue}, seed={params.seed}): {len(sampled)} samples")
    _require_rows(sampled, "balanced_sample", log)

    group_sizes(batched, sampled, params.group_col).to_csv(tables_dir / "sample_counts.csv", index=False)
    sampled.to_csv(tables_dir / "selected_samples.csv", index=False)

    # --- Expression ---
    sample_ids = sampled["sample_id"].tolist()
    expr, names = load_expression(Path(data["expression"]), sample_ids, chunksize=params.chunksize)
    counts["genes_loaded"] = len(expr)
    log.info(f"Loaded expression: {expr.shape[0]} genes x {expr.shape[1]} samples")

    names_path = save_gene_names(names, processed_dir / "gene_names.csv")
    log.info(f"Wrote gene id -> name table to {names_path}")

    biotypes = load_biotypes(
        Path(data["biotypes"]),
        id_col=data.get("biotype_id_col", "gene_id"),
        type_col=data.get("biotype_type_col", "gene_type"),
    )
    coding = protein_coding_filter(expr, biotypes, biotype=params.biotype)
    del expr
    counts["protein_coding_filter"] = len(coding)
    log.info(f"Biotype filter ({params.biotype}): {len(coding)} genes")
    _require_rows(coding, "protein_coding_filter", log)

    coding = select_samples(coding, sample_ids)
    expressed = abundance_filter(coding, min_mean_tpm=params.min_mean_tpm)
    del coding
    counts["abundance_filter"] = len(expressed)
    log.info(f"Abundance filter (mean TPM>{params.min_mean_tpm}): {len(expressed)} genes")
    _require_rows(expressed, "abundance_filter", log)

    # --- Matrix + heatmap ---
    mat = assemble_matrix(
        expressed,
        sampled,
        params.tissue_order,
        pseudocount=params.pseudocount,
        gene_names=names,
    )
    log.info(f"Assembled matrix: {mat.values.shape} across {len(mat.tissue_spans())} tissue blocks")

    if outputs.get("write_matrix", False):
        mat.to_csv(tables_dir / "heatmap_matrix.csv")

    row_order = cluster(mat.values, metric=params.cluster_metric, method=params.cluster_method, axis=0)
    if params.cluster_samples:
        col_order = cluster_within_groups(
            mat.values, mat.tissues.tolist(), metric=params.cluster_metric, method=params.cluster_method
        )
    else:
        col_order = list(range(mat.values.shape[1]))

    plot_path = render(
        mat.values,
        row_order,
        col_order,
        params.color_scale,
        run_dir / "plots" / "heatmap.png",
        tissues=mat.tissues.tolist(),
        row_labels=mat.row_labels(),
    )
    log.info(f"Saved heatmap: {plot_path}")

    summary = {
        "counts": counts,
        "n_genes": int(mat.values.shape[0]),
        "n_samples": int(mat.values.shape[1]),
        "seed": params.seed,
        "cap_per_tissue": params.cap_per_tissue,
        "min_rin": params.min_rin,
        "max_autolysis": params.max_autolysis,
        "min_batch_size": params.min_batch_size,
        "min_mean_tpm": params.min_mean_tpm,
        "pseudocount": params.pseudocount,
        "excluded_tissues": sorted(params.excluded_tissues),
        "tissue_order": list(params.tissue_order),
        "heatmap": str(plot_path),
    }
    (run_dir / "run_summary.json").write_text(json.dumps(summary, indent=2))
    log.info(f"Saved summary: {run_dir / 'run_summary.json'}")
    return summary
