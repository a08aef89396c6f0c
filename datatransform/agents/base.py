"""Base class for per-column transformation agents.

Every agent follows the same two trajectories:

Fit (only when building new metadata)::

    partial = agent.new_partial()          # one per partition
    agent.prepare(partial, row)            # for every row of the partition
    agent.merge_partials([p0, p1, ...])    # once, partition-index order
    agent.persist(staging)                 # inside MetadataStore.publish()

Apply::

    agent.load(store)                      # unless just merged in this run
    agent.apply(row)                       # pure, safe from many threads
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, Iterable, Mapping, Sequence, TypeVar

from datatransform.core.columns import ColumnIndex
from datatransform.core.exceptions import (
    CorruptMetadataError,
    DataError,
    MalformedValueError,
)
from datatransform.core.metadata import FIELD_SEP, MetadataStaging, MetadataStore
from datatransform.models.transform_spec import TransformMethod, TransformSpec

M = TypeVar("M")
Row = list[str]


def format_number(value: float) -> str:
    """Render a computed number so that float(text) round-trips exactly."""
    return repr(float(value))


class TransformationAgent(ABC, Generic[M]):
    """One transformation category applied to its configured columns."""

    method: ClassVar[TransformMethod]
    directory: ClassVar[str]
    requires: ClassVar[tuple[TransformMethod, ...]] = ()

    def __init__(
        self, spec: TransformSpec, columns: ColumnIndex, na_strings: Iterable[str]
    ):
        self._spec = spec
        self._columns = columns
        self._na_strings = frozenset(na_strings)
        self._upstream: dict[TransformMethod, "TransformationAgent"] = {}
        self._metadata: dict[int, M] | None = None

    def connect(self, upstream: Mapping[TransformMethod, "TransformationAgent"]) -> None:
        """Give the agent access to the agents it depends on."""
        self._upstream = {method: upstream[method] for method in self.requires}

    @property
    def column_ids(self) -> list[int]:
        return self._spec.ids(self.method)

    @property
    def is_active(self) -> bool:
        return bool(self.column_ids)

    @property
    def metadata(self) -> dict[int, M]:
        """Finalized per-column metadata keyed by column id."""
        if self._metadata is None:
            raise RuntimeError(
                f"{type(self).__name__} has no metadata; merge or load it first"
            )
        return self._metadata

    # ------------------------------------------------------------------
    # Fit trajectory
    # ------------------------------------------------------------------

    def new_partial(self) -> Any:
        """Create an empty per-partition accumulator."""
        return None

    def prepare(self, partial: Any, row: Row) -> None:
        """Fold one row into a partition's accumulator."""

    def merge_partials(self, partials: Sequence[Any]) -> dict[int, M]:
        """Combine partition accumulators, given in partition-index order."""
        self._metadata = self._merge(partials) if self.is_active else {}
        return self._metadata

    @abstractmethod
    def _merge(self, partials: Sequence[Any]) -> dict[int, M]: ...

    def persist(self, staging: MetadataStaging) -> None:
        """Write finalized metadata into a publish in progress."""
        for column_id, meta in self.metadata.items():
            for relpath, text in self._artifacts(column_id, meta).items():
                staging.write(relpath, text)

    def _artifacts(self, column_id: int, meta: M) -> dict[str, str]:
        """Relative path and content of each artifact for one column."""
        return {}

    # ------------------------------------------------------------------
    # Apply trajectory
    # ------------------------------------------------------------------

    def load(self, store: MetadataStore) -> dict[int, M]:
        """Read previously published metadata for every configured column."""
        self._metadata = self._load(store) if self.is_active else {}
        return self._metadata

    @abstractmethod
    def _load(self, store: MetadataStore) -> dict[int, M]: ...

    @abstractmethod
    def apply(self, row: Row) -> Row:
        """Return a transformed copy of the row."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def is_na(self, token: str) -> bool:
        return token in self._na_strings

    def artifact_path(self, column_id: int, suffix: str) -> str:
        return f"{self.directory}/{self._columns.name_of(column_id)}{suffix}"

    def describe(self, column_id: int) -> dict[str, Any]:
        return self._columns.describe(column_id)

    def parse_number(self, token: str, column_id: int) -> float:
        try:
            return float(token)
        except ValueError:
            raise MalformedValueError(
                f"Non-numeric value '{token}' in {self.method.value} column",
                context={**self.describe(column_id), "value": token},
            ) from None

    def no_values_error(self, column_id: int) -> DataError:
        return DataError(
            f"Column has no non-missing values to compute {self.method.value} metadata",
            context=self.describe(column_id),
        )

    def read_fields(
        self, store: MetadataStore, relpath: str, column_id: int, count: int
    ) -> list[str]:
        """Read a one-line ``id,field,...`` artifact and check its id."""
        column = self.describe(column_id)
        text = store.read_text(relpath, column).rstrip("\n")
        fields = text.split(FIELD_SEP, count - 1)
        if len(fields) != count or fields[0] != str(column_id):
            raise CorruptMetadataError(
                f"Malformed metadata artifact {relpath}",
                context={**column, "content": text},
            )
        return fields
