from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

import pandas as pd

from gtex_eda.config import PipelineConfig, load_config
from gtex_eda.errors import ConfigurationError
from gtex_eda.expression.loader import ID_COL, NAME_COL, read_expression_header
from gtex_eda.samples.annotations import GTEX_COLUMNS


def ok(msg: str) -> None:
    print(f"[OK]   {msg}")


def warn(msg: str) -> None:
    print(f"[MISS] {msg}")


def check_columns(path: Path, required, sep: str) -> int:
    # header + a few rows only; these tables can be large
    df = pd.read_csv(path, sep=sep, nrows=5)
    missing = [c for c in required if c not in df.columns]
    if missing:
        warn(f"{path} missing columns: {missing}")
        return 1
    ok(f"{path} has required columns ({len(df.columns)} columns total)")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", required=True)
    args = parser.parse_args()

    cfg = load_config(args.config)
    data = cfg.get("data") or {}
    problems = 0

    try:
        PipelineConfig.from_dict(cfg)
        ok("Config parameters valid")
    except ConfigurationError as e:
        warn(f"Config: {e}")
        problems += 1

    # --- Sample annotations ---
    ann = Path(data.get("annotations", ""))
    if ann.is_file():
        sep = "," if ann.suffix.lower() == ".csv" else "\t"
        problems += check_columns(ann, list(GTEX_COLUMNS), sep)
    else:
        warn(f"Missing sample annotation table: {ann}")
        problems += 1

    # --- Biotype reference ---
    bio = Path(data.get("biotypes", ""))
    if bio.is_file():
        sep = "," if ".csv" in bio.suffixes else "\t"
        required = [data.get("biotype_id_col", "gene_id"), data.get("biotype_type_col", "gene_type")]
        problems += check_columns(bio, required, sep)
    else:
        warn(f"Missing biotype table: {bio}")
        problems += 1

    # --- Expression matrix (header only) ---
    expr = Path(data.get("expression", ""))
    if expr.is_file():
        header, skip = read_expression_header(expr)
        if ID_COL in header and NAME_COL in header:
            ok(f"Expression table: {expr} (sample columns={len(header) - 2}, skipped header lines={skip})")
        else:
            warn(f"Expression table {expr} lacks '{ID_COL}'/'{NAME_COL}' columns")
            problems += 1
    else:
        warn(f"Missing expression table: {expr}")
        problems += 1

    # --- Data dictionary (optional) ---
    dd = data.get("data_dictionary")
    if dd and not Path(dd).is_file():
        warn(f"Data dictionary configured but not found: {dd}")

    print("\n--- Summary ---")
    if problems == 0:
        ok("All pipeline inputs found.")
        return 0
    else:
        warn(f"{problems} required items missing or incomplete.")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
