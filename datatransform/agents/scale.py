"""Mean subtraction and z-score scaling."""

import math
from dataclasses import dataclass
from typing import Sequence

from datatransform.agents.base import Row, TransformationAgent, format_number
from datatransform.agents.registry import register_agent
from datatransform.core.exceptions import CorruptMetadataError, DivideByZeroError
from datatransform.core.metadata import FIELD_SEP, MetadataStore
from datatransform.models.transform_spec import ScaleMethod, TransformMethod


@dataclass(frozen=True)
class ScaleMetadata:
    column_id: int
    method: ScaleMethod
    mean: float
    stdev: float


@dataclass
class _Moments:
    """Running count, mean and sum of squared deviations (Welford)."""

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def add(self, value: float) -> None:
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (value - self.mean)

    def combine(self, other: "_Moments") -> "_Moments":
        if other.count == 0:
            return self
        if self.count == 0:
            return other
        count = self.count + other.count
        delta = other.mean - self.mean
        return _Moments(
            count=count,
            mean=self.mean + delta * other.count / count,
            m2=self.m2 + other.m2 + delta * delta * self.count * other.count / count,
        )

    @property
    def stdev(self) -> float:
        if self.count < 2:
            return 0.0
        return math.sqrt(self.m2 / (self.count - 1))


@register_agent(TransformMethod.SCALE)
class ScaleAgent(TransformationAgent[ScaleMetadata]):
    """Centers (and optionally standardizes) numeric columns.

    Standard deviation is the sample deviation (n - 1 denominator).
    """

    method = TransformMethod.SCALE
    directory = "Scale"
    suffix = ".scale"

    def new_partial(self) -> dict[int, _Moments]:
        return {column_id: _Moments() for column_id in self.column_ids}

    def prepare(self, partial: dict[int, _Moments], row: Row) -> None:
        for column_id, moments in partial.items():
            token = row[column_id - 1]
            if not self.is_na(token):
                moments.add(self.parse_number(token, column_id))

    def _merge(self, partials: Sequence[dict[int, _Moments]]) -> dict[int, ScaleMetadata]:
        metadata = {}
        for entry in self._spec.scale:
            total = _Moments()
            for partial in partials:
                total = total.combine(partial[entry.id])
            if total.count == 0:
                raise self.no_values_error(entry.id)
            metadata[entry.id] = ScaleMetadata(
                entry.id, entry.method, total.mean, total.stdev
            )
        return metadata

    def _artifacts(self, column_id: int, meta: ScaleMetadata) -> dict[str, str]:
        line = FIELD_SEP.join(
            [str(column_id), format_number(meta.mean), format_number(meta.stdev)]
        )
        return {self.artifact_path(column_id, self.suffix): line + "\n"}

    def _load(self, store: MetadataStore) -> dict[int, ScaleMetadata]:
        metadata = {}
        for entry in self._spec.scale:
            relpath = self.artifact_path(entry.id, self.suffix)
            _, mean, stdev = self.read_fields(store, relpath, entry.id, 3)
            try:
                metadata[entry.id] = ScaleMetadata(
                    entry.id, entry.method, float(mean), float(stdev)
                )
            except ValueError as e:
                raise CorruptMetadataError(
                    f"Malformed scale metadata {relpath}: {e}",
                    context=self.describe(entry.id),
                ) from e
        return metadata

    def apply(self, row: Row) -> Row:
        out = list(row)
        for column_id, meta in self.metadata.items():
            token = out[column_id - 1]
            if self.is_na(token):
                continue
            centered = self.parse_number(token, column_id) - meta.mean
            if meta.method == ScaleMethod.Z_SCORE:
                if meta.stdev == 0:
                    raise DivideByZeroError(
                        "Cannot z-score a column with zero standard deviation",
                        context=self.describe(column_id),
                    )
                centered /= meta.stdev
            out[column_id - 1] = format_number(centered)
        return out
