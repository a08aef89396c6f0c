"""Run results returned by the engine."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class OutputLayout:
    """Shape of the transformed output."""

    num_rows: int
    num_columns: int
    num_columns_transformed: int


@dataclass
class TransformResult:
    """What one job run produced."""

    job_name: str
    apply_only: bool
    layout: OutputLayout
    metadata_path: Optional[str]
    outputs: list[str] = field(default_factory=list)
    transformed_header: list[str] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def mode(self) -> str:
        return "apply-only" if self.apply_only else "fit+apply"
