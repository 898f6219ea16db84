from __future__ import annotations

from typing import Iterable, List


def _preview(ids: Iterable[str], limit: int = 10) -> str:
    ids = list(ids)
    shown = ", ".join(str(i) for i in ids[:limit])
    if len(ids) > limit:
        shown += f", ... (+{len(ids) - limit} more)"
    return shown


class PipelineError(Exception):
    """Base class for errors that abort a pipeline run."""


class ConfigurationError(PipelineError, ValueError):
    """A required parameter is missing or invalid."""


class MissingSampleError(PipelineError, KeyError):
    """A required sample id is absent from a table it is joined against."""

    def __init__(self, stage: str, sample_ids: Iterable[str]):
        self.stage = stage
        self.sample_ids: List[str] = list(sample_ids)
        super().__init__(
            f"[{stage}] {len(self.sample_ids)} sample id(s) missing: {_preview(self.sample_ids)}"
        )

    def __str__(self) -> str:
        # KeyError repr-quotes its message otherwise
        return self.args[0]


class UnknownTissueError(PipelineError, ValueError):
    """A sample's coarse tissue is not in the declared tissue order."""

    def __init__(self, stage: str, tissues: Iterable[str], sample_ids: Iterable[str]):
        self.stage = stage
        self.tissues: List[str] = sorted(set(tissues))
        self.sample_ids: List[str] = list(sample_ids)
        super().__init__(
            f"[{stage}] tissue(s) not in tissue_order: {_preview(self.tissues)} "
            f"(samples: {_preview(self.sample_ids)})"
        )


class EmptyResultWarning(UserWarning):
    """A filter stage produced zero rows."""
