from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple

import yaml

from gtex_eda.errors import ConfigurationError


def load_config(path: str) -> dict:
    with open(path, "r") as f:
        cfg = yaml.safe_load(f)
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Config file {path} does not contain a mapping")
    return cfg


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    sec = cfg.get(name) or {}
    if not isinstance(sec, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return sec


def _required(sec: Dict[str, Any], section: str, key: str):
    if sec.get(key) is None:
        raise ConfigurationError(f"Missing required config value: {section}.{key}")
    return sec[key]


def _coerce(sec: Dict[str, Any], section: str, key: str, kind, default=None, required: bool = False):
    """
    Read sec[key] as `kind`. An explicit null counts as missing, so it takes
    the default (or fails when the value is required).
    """
    value = _required(sec, section, key) if required else sec.get(key)
    if value is None:
        return default
    if kind in (int, float) and isinstance(value, bool):
        raise ConfigurationError(f"Invalid config value for {section}.{key}: {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid config value for {section}.{key}: {value!r}") from e


def _name_list(sec: Dict[str, Any], section: str, key: str) -> list:
    value = _required(sec, section, key)
    if isinstance(value, (str, dict)) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ConfigurationError(f"{section}.{key} must be a list, got {value!r}")
    bad = [v for v in value if not isinstance(v, str)]
    if bad:
        raise ConfigurationError(f"{section}.{key} must list tissue names, got {bad}")
    return list(value)


@dataclass(frozen=True)
class PipelineConfig:
    """
    Validated filter/sampling/matrix parameters.

    seed, excluded_tissues and tissue_order have no defaults; everything
    else falls back to the GTEx notebook values.
    """

    seed: int
    excluded_tissues: FrozenSet[str]
    tissue_order: Tuple[str, ...]
    freeze_marker: str = "RNASEQ"
    max_autolysis: int = 3
    min_rin: float = 6.0
    min_batch_size: int = 20
    cap_per_tissue: int = 45
    group_col: str = "tissue_detail"
    biotype: str = "protein_coding"
    min_mean_tpm: float = 1.0
    pseudocount: float = 1e-4
    chunksize: Optional[int] = None
    color_scale: Dict[str, Any] = field(default_factory=lambda: {"cmap": "viridis"})
    cluster_metric: str = "correlation"
    cluster_method: str = "average"
    cluster_samples: bool = False

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "PipelineConfig":
        filters = _section(cfg, "filters")
        sampling = _section(cfg, "sampling")
        matrix = _section(cfg, "matrix")
        plot = _section(cfg, "plot")

        excluded = _name_list(filters, "filters", "excluded_tissues")
        order = _name_list(matrix, "matrix", "tissue_order")
        if len(order) == 0:
            raise ConfigurationError("matrix.tissue_order is empty")
        if len(set(order)) != len(order):
            raise ConfigurationError("matrix.tissue_order contains duplicates")

        color_scale = plot.get("color_scale") or {"cmap": "viridis"}
        if not isinstance(color_scale, dict):
            raise ConfigurationError(f"plot.color_scale must be a mapping, got {color_scale!r}")

        out = cls(
            seed=_coerce(sampling, "sampling", "seed", int, required=True),
            excluded_tissues=frozenset(excluded),
            tissue_order=tuple(order),
            freeze_marker=_coerce(filters, "filters", "freeze_marker", str, "RNASEQ"),
            max_autolysis=_coerce(filters, "filters", "max_autolysis", int, 3),
            min_rin=_coerce(filters, "filters", "min_rin", float, 6.0),
            min_batch_size=_coerce(filters, "filters", "min_batch_size", int, 20),
            cap_per_tissue=_coerce(sampling, "sampling", "cap_per_tissue", int, 45),
            group_col=_coerce(sampling, "sampling", "group_col", str, "tissue_detail"),
            biotype=_coerce(matrix, "matrix", "biotype", str, "protein_coding"),
            min_mean_tpm=_coerce(matrix, "matrix", "min_mean_tpm", float, 1.0),
            pseudocount=_coerce(matrix, "matrix", "pseudocount", float, 1e-4),
            chunksize=_coerce(matrix, "matrix", "chunksize", int),
            color_scale=dict(color_scale),
            cluster_metric=_coerce(plot, "plot", "cluster_metric", str, "correlation"),
            cluster_method=_coerce(plot, "plot", "cluster_method", str, "average"),
            cluster_samples=bool(plot.get("cluster_samples", False)),
        )

        if out.cap_per_tissue < 1:
            raise ConfigurationError(f"sampling.cap_per_tissue must be >= 1, got {out.cap_per_tissue}")
        if out.min_mean_tpm <= 0:
            raise ConfigurationError(f"matrix.min_mean_tpm must be > 0, got {out.min_mean_tpm}")
        if out.chunksize is not None and out.chunksize < 1:
            raise ConfigurationError(f"matrix.chunksize must be >= 1, got {out.chunksize}")
        if out.pseudocount <= 0:
            raise ConfigurationError(f"matrix.pseudocount must be > 0, got {out.pseudocount}")
        return out


def with_seed(cfg: Dict[str, Any], seed: Optional[int]) -> Dict[str, Any]:
    """Copy of cfg with sampling.seed replaced; an empty `sampling:` section is fine."""
    if seed is None:
        return cfg
    out = dict(cfg)
    out["sampling"] = dict(cfg.get("sampling") or {}, seed=seed)
    return out
