from __future__ import annotations

import argparse
import sys
from collections import Counter
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from gtex_eda.config import load_config
from gtex_eda.samples.annotations import load_sample_annotations
from gtex_eda.samples.quality import quality_filter


def main():
    parser = argparse.ArgumentParser(description="Per-tissue sample counts after the quality filter.")
    parser.add_argument("--config", required=True)
    parser.add_argument("--min-count", type=int, default=None, help="Only list tissues below this count.")
    args = parser.parse_args()

    cfg = load_config(args.config)
    filters = cfg.get("filters") or {}

    samples = load_sample_annotations(Path(cfg["data"]["annotations"]))
    # No tissue exclusion here: the point is to choose it
    qc = quality_filter(
        samples,
        freeze_marker=filters.get("freeze_marker", "RNASEQ"),
        max_autolysis=filters.get("max_autolysis", 3),
        min_rin=filters.get("min_rin", 6.0),
        excluded_tissues=[],
    )
    print("Annotated samples:", len(samples))
    print("Passing quality filter:", len(qc))

    print("\nSamples per tissue:")
    for k, v in Counter(qc["tissue"]).most_common():
        if args.min_count is None or v < args.min_count:
            print(f"{v:5d}  {k}")

    print("\nTop batch types:")
    for k, v in Counter(qc["batch_type"].dropna()).most_common(10):
        print(f"{v:5d}  {k}")


if __name__ == "__main__":
    main()
