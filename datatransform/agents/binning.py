"""Equi-width binning of numeric columns."""

import math
from dataclasses import dataclass
from typing import Sequence

from datatransform.agents.base import Row, TransformationAgent, format_number
from datatransform.agents.registry import register_agent
from datatransform.core.exceptions import CorruptMetadataError
from datatransform.core.metadata import FIELD_SEP, MetadataStore
from datatransform.models.transform_spec import BinMethod, TransformMethod


@dataclass(frozen=True)
class BinMetadata:
    column_id: int
    method: BinMethod
    num_bins: int
    min: float
    max: float

    @property
    def bin_width(self) -> float:
        return (self.max - self.min) / self.num_bins

    def bin_of(self, value: float) -> int:
        """1-based bin index; values outside [min, max] clamp to the edge bins."""
        width = self.bin_width
        if width == 0:
            return 1
        index = math.floor((value - self.min) / width) + 1
        return max(1, min(self.num_bins, index))


@dataclass
class _Range:
    low: float = math.inf
    high: float = -math.inf
    count: int = 0


@register_agent(TransformMethod.BIN)
class BinAgent(TransformationAgent[BinMetadata]):
    """Replaces numeric values with their equi-width bin index."""

    method = TransformMethod.BIN
    directory = "Bin"
    suffix = ".bin"

    def new_partial(self) -> dict[int, _Range]:
        return {column_id: _Range() for column_id in self.column_ids}

    def prepare(self, partial: dict[int, _Range], row: Row) -> None:
        for column_id, value_range in partial.items():
            token = row[column_id - 1]
            if self.is_na(token):
                continue
            value = self.parse_number(token, column_id)
            value_range.low = min(value_range.low, value)
            value_range.high = max(value_range.high, value)
            value_range.count += 1

    def _merge(self, partials: Sequence[dict[int, _Range]]) -> dict[int, BinMetadata]:
        metadata = {}
        for entry in self._spec.bin:
            ranges = [p[entry.id] for p in partials if p[entry.id].count]
            if not ranges:
                raise self.no_values_error(entry.id)
            metadata[entry.id] = BinMetadata(
                column_id=entry.id,
                method=entry.method,
                num_bins=entry.num_bins,
                min=min(r.low for r in ranges),
                max=max(r.high for r in ranges),
            )
        return metadata

    def _artifacts(self, column_id: int, meta: BinMetadata) -> dict[str, str]:
        fields = [
            str(column_id),
            format_number(meta.min),
            format_number(meta.max),
            str(meta.num_bins),
        ]
        return {self.artifact_path(column_id, self.suffix): FIELD_SEP.join(fields) + "\n"}

    def _load(self, store: MetadataStore) -> dict[int, BinMetadata]:
        metadata = {}
        for entry in self._spec.bin:
            relpath = self.artifact_path(entry.id, self.suffix)
            _, low, high, num_bins = self.read_fields(store, relpath, entry.id, 4)
            try:
                meta = BinMetadata(
                    entry.id, entry.method, int(num_bins), float(low), float(high)
                )
            except ValueError as e:
                raise CorruptMetadataError(
                    f"Malformed bin metadata {relpath}: {e}",
                    context=self.describe(entry.id),
                ) from e
            if meta.num_bins != entry.num_bins:
                raise CorruptMetadataError(
                    f"Bin count in {relpath} does not match the specification",
                    context={
                        **self.describe(entry.id),
                        "expected": entry.num_bins,
                        "actual": meta.num_bins,
                    },
                )
            metadata[entry.id] = meta
        return metadata

    def apply(self, row: Row) -> Row:
        out = list(row)
        for column_id, meta in self.metadata.items():
            token = out[column_id - 1]
            if not self.is_na(token):
                value = self.parse_number(token, column_id)
                out[column_id - 1] = str(meta.bin_of(value))
        return out
