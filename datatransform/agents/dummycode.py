"""One-hot expansion of recoded or binned columns."""

from dataclasses import dataclass
from typing import Any, Sequence

from datatransform.agents.base import Row, TransformationAgent
from datatransform.agents.registry import register_agent
from datatransform.core.columns import ColumnIndex
from datatransform.core.exceptions import MalformedValueError, MissingMetadataError
from datatransform.core.metadata import FIELD_SEP, MetadataStaging, MetadataStore
from datatransform.models.transform_spec import TransformMethod

DUMMYCODE_MAPS_FILE = "Dummycode/dummyCodeMaps.csv"
NAME_SEP = "_"


@dataclass(frozen=True)
class DummycodeMetadata:
    """Output span of one expanded column. ``start``/``end`` are 1-based, inclusive."""

    column_id: int
    width: int
    start: int
    end: int


@register_agent(TransformMethod.DUMMYCODE)
class DummycodeAgent(TransformationAgent[DummycodeMetadata]):
    """Expands a code or bin index into a 0/1 indicator vector.

    The width of a column's vector comes from its bin count when binned, and
    from its recode distinct count otherwise. Nothing is computed from the
    data, so the same spans are derived whether upstream metadata was just
    merged or loaded from the store. Missing values expand to all zeros.
    """

    method = TransformMethod.DUMMYCODE
    directory = "Dummycode"
    requires = (TransformMethod.RECODE, TransformMethod.BIN)

    def _merge(self, partials: Sequence[Any]) -> dict[int, DummycodeMetadata]:
        return self._resolve_spans()

    def _load(self, store: MetadataStore) -> dict[int, DummycodeMetadata]:
        return self._resolve_spans()

    def _resolve_spans(self) -> dict[int, DummycodeMetadata]:
        binned = self._upstream[TransformMethod.BIN].metadata
        recoded = self._upstream[TransformMethod.RECODE].metadata

        widths: dict[int, int] = {}
        for column_id in self.column_ids:
            if column_id in binned:
                widths[column_id] = binned[column_id].num_bins
            elif column_id in recoded:
                widths[column_id] = recoded[column_id].distinct_count
            else:
                raise MissingMetadataError(
                    "Dummy-coded column has neither recode nor bin metadata",
                    context=self.describe(column_id),
                )

        spans: dict[int, DummycodeMetadata] = {}
        position = 1
        for column_id in range(1, self._spec.num_columns + 1):
            width = widths.get(column_id)
            if width is None:
                position += 1
                continue
            spans[column_id] = DummycodeMetadata(
                column_id, width, position, position + width - 1
            )
            position += width
        return spans

    def persist(self, staging: MetadataStaging) -> None:
        """Write ``dummyCodeMaps.csv`` with one ``id,start,end`` line per column."""
        if not self.metadata:
            return
        staging.write_lines(
            DUMMYCODE_MAPS_FILE,
            [
                FIELD_SEP.join(str(v) for v in (meta.column_id, meta.start, meta.end))
                for meta in sorted(self.metadata.values(), key=lambda m: m.column_id)
            ],
        )

    def output_width(self, num_columns: int) -> int:
        """Column count after expansion."""
        return num_columns + sum(meta.width - 1 for meta in self.metadata.values())

    def transformed_names(self, columns: ColumnIndex) -> list[str]:
        """Header names after expansion, in output order."""
        recoded = self._upstream[TransformMethod.RECODE].metadata
        names: list[str] = []
        for column_id, name in columns:
            meta = self.metadata.get(column_id)
            if meta is None:
                names.append(name)
            elif column_id in self._upstream[TransformMethod.BIN].metadata:
                names.extend(f"{name}{NAME_SEP}{k}" for k in range(1, meta.width + 1))
            else:
                names.extend(
                    f"{name}{NAME_SEP}{category}"
                    for category in recoded[column_id].categories()
                )
        return names

    def apply(self, row: Row) -> Row:
        if not self.metadata:
            return list(row)

        out: Row = []
        for column_id, token in enumerate(row, start=1):
            meta = self.metadata.get(column_id)
            if meta is None:
                out.append(token)
                continue
            vector = ["0"] * meta.width
            if not self.is_na(token):
                try:
                    index = int(token)
                except ValueError:
                    index = 0
                if not 1 <= index <= meta.width:
                    raise MalformedValueError(
                        f"Value '{token}' is not a code in 1..{meta.width}",
                        context={**self.describe(column_id), "value": token},
                    )
                vector[index - 1] = "1"
            out.extend(vector)
        return out
