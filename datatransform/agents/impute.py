"""Missing-value imputation."""

import math
from dataclasses import dataclass
from typing import Any, Sequence

from datatransform.agents.base import Row, TransformationAgent, format_number
from datatransform.agents.registry import register_agent
from datatransform.core.metadata import FIELD_SEP, MetadataStore
from datatransform.models.transform_spec import ImputeMethod, TransformMethod


@dataclass(frozen=True)
class ImputeMetadata:
    """Replacement token for one column."""

    column_id: int
    method: ImputeMethod
    value: str


@dataclass
class _MeanStats:
    total: float = 0.0
    count: int = 0


@register_agent(TransformMethod.IMPUTE)
class ImputeAgent(TransformationAgent[ImputeMetadata]):
    """Replaces missing-value tokens with a mean, a mode or a constant.

    Mean partials keep (sum, count); mode partials keep a frequency table in
    first-encounter order so ties resolve to the earliest category seen,
    independent of how many partitions the input was split into.
    """

    method = TransformMethod.IMPUTE
    directory = "Impute"
    suffix = ".impute"

    def new_partial(self) -> dict[int, Any]:
        partial: dict[int, Any] = {}
        for entry in self._spec.impute:
            if entry.method == ImputeMethod.GLOBAL_MEAN:
                partial[entry.id] = _MeanStats()
            elif entry.method == ImputeMethod.GLOBAL_MODE:
                partial[entry.id] = {}
        return partial

    def prepare(self, partial: dict[int, Any], row: Row) -> None:
        for column_id, stats in partial.items():
            token = row[column_id - 1]
            if self.is_na(token):
                continue
            if isinstance(stats, dict):
                stats[token] = stats.get(token, 0) + 1
            else:
                stats.total += self.parse_number(token, column_id)
                stats.count += 1

    def _merge(self, partials: Sequence[dict[int, Any]]) -> dict[int, ImputeMetadata]:
        metadata: dict[int, ImputeMetadata] = {}
        for entry in self._spec.impute:
            if entry.method == ImputeMethod.CONSTANT:
                value = entry.value
            elif entry.method == ImputeMethod.GLOBAL_MEAN:
                value = self._merge_mean(entry.id, [p[entry.id] for p in partials])
            else:
                value = self._merge_mode(entry.id, [p[entry.id] for p in partials])
            metadata[entry.id] = ImputeMetadata(entry.id, entry.method, value)
        return metadata

    def _merge_mean(self, column_id: int, stats: list[_MeanStats]) -> str:
        count = sum(s.count for s in stats)
        if count == 0:
            raise self.no_values_error(column_id)
        return format_number(math.fsum(s.total for s in stats) / count)

    def _merge_mode(self, column_id: int, tables: list[dict[str, int]]) -> str:
        merged: dict[str, int] = {}
        for table in tables:
            for token, count in table.items():
                merged[token] = merged.get(token, 0) + count
        if not merged:
            raise self.no_values_error(column_id)

        best, best_count = None, 0
        for token, count in merged.items():
            if count > best_count:
                best, best_count = token, count
        return best

    def _artifacts(self, column_id: int, meta: ImputeMetadata) -> dict[str, str]:
        return {
            self.artifact_path(column_id, self.suffix): (
                f"{column_id}{FIELD_SEP}{meta.value}\n"
            )
        }

    def _load(self, store: MetadataStore) -> dict[int, ImputeMetadata]:
        metadata = {}
        for entry in self._spec.impute:
            relpath = self.artifact_path(entry.id, self.suffix)
            _, value = self.read_fields(store, relpath, entry.id, 2)
            metadata[entry.id] = ImputeMetadata(entry.id, entry.method, value)
        return metadata

    def apply(self, row: Row) -> Row:
        out = list(row)
        for column_id, meta in self.metadata.items():
            if self.is_na(out[column_id - 1]):
                out[column_id - 1] = meta.value
        return out
