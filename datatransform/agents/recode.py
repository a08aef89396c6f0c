"""Categorical recoding to dense integer codes."""

import csv
import io
from dataclasses import dataclass
from typing import Mapping, Sequence

from datatransform.agents.base import Row, TransformationAgent
from datatransform.agents.registry import register_agent
from datatransform.core.exceptions import CorruptMetadataError, UnknownCategoryError
from datatransform.core.metadata import MetadataStore
from datatransform.models.transform_spec import TransformMethod


@dataclass(frozen=True)
class RecodeMetadata:
    """Category to code map of one column. Codes are exactly 1..k."""

    column_id: int
    codes: Mapping[str, int]

    @property
    def distinct_count(self) -> int:
        return len(self.codes)

    def categories(self) -> list[str]:
        """Categories ordered by code."""
        return sorted(self.codes, key=self.codes.__getitem__)

    def decode(self, code: int) -> str:
        return self.categories()[code - 1]


@register_agent(TransformMethod.RECODE)
class RecodeAgent(TransformationAgent[RecodeMetadata]):
    """Maps each category token to an integer code.

    Codes are assigned in order of first appearance in the whole input:
    partition partials keep their categories in encounter order and are
    merged in ascending partition index. Missing-value tokens are not
    categories. If the column is also imputed and the replacement token was
    never seen, it receives the next code so imputed rows stay recodable.
    """

    method = TransformMethod.RECODE
    directory = "Recode"
    requires = (TransformMethod.IMPUTE,)
    map_suffix = ".map"
    count_suffix = ".ndistinct"

    def new_partial(self) -> dict[int, dict[str, None]]:
        return {column_id: {} for column_id in self.column_ids}

    def prepare(self, partial: dict[int, dict[str, None]], row: Row) -> None:
        for column_id, seen in partial.items():
            token = row[column_id - 1]
            if not self.is_na(token):
                seen.setdefault(token, None)

    def _merge(
        self, partials: Sequence[dict[int, dict[str, None]]]
    ) -> dict[int, RecodeMetadata]:
        imputed = self._upstream[TransformMethod.IMPUTE].metadata
        metadata = {}
        for column_id in self.column_ids:
            codes: dict[str, int] = {}
            for partial in partials:
                for token in partial[column_id]:
                    if token not in codes:
                        codes[token] = len(codes) + 1
            if column_id in imputed and imputed[column_id].value not in codes:
                codes[imputed[column_id].value] = len(codes) + 1
            metadata[column_id] = RecodeMetadata(column_id, codes)
        return metadata

    def _artifacts(self, column_id: int, meta: RecodeMetadata) -> dict[str, str]:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        for category in meta.categories():
            writer.writerow([category, meta.codes[category]])
        return {
            self.artifact_path(column_id, self.map_suffix): buffer.getvalue(),
            self.artifact_path(column_id, self.count_suffix): f"{meta.distinct_count}\n",
        }

    def _load(self, store: MetadataStore) -> dict[int, RecodeMetadata]:
        metadata = {}
        for column_id in self.column_ids:
            column = self.describe(column_id)
            map_path = self.artifact_path(column_id, self.map_suffix)
            count_path = self.artifact_path(column_id, self.count_suffix)

            codes: dict[str, int] = {}
            try:
                for category, code in csv.reader(
                    io.StringIO(store.read_text(map_path, column))
                ):
                    codes[category] = int(code)
                distinct = int(store.read_text(count_path, column).strip())
            except ValueError as e:
                raise CorruptMetadataError(
                    f"Malformed recode map {map_path}: {e}", context=column
                ) from e

            if distinct != len(codes) or sorted(codes.values()) != list(
                range(1, distinct + 1)
            ):
                raise CorruptMetadataError(
                    f"Recode map {map_path} does not hold codes 1..{distinct}",
                    context={**column, "distinct": distinct, "entries": len(codes)},
                )
            metadata[column_id] = RecodeMetadata(column_id, codes)
        return metadata

    def apply(self, row: Row) -> Row:
        out = list(row)
        for column_id, meta in self.metadata.items():
            token = out[column_id - 1]
            if self.is_na(token):
                continue
            code = meta.codes.get(token)
            if code is None:
                raise UnknownCategoryError(
                    f"Category '{token}' was not seen when the recode map was built",
                    context={**self.describe(column_id), "category": token},
                )
            out[column_id - 1] = str(code)
        return out
