"""Column index resolution from a sample part file."""

from dataclasses import dataclass, field
from typing import Iterator

from datatransform.core.exceptions import (
    MalformedHeaderError,
    StorageError,
    UnknownColumnError,
)
from datatransform.core.storage import Storage


def unquote(token: str) -> str:
    """Strip surrounding whitespace and one pair of matching quotes."""
    token = token.strip()
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
        return token[1:-1]
    return token


def default_header(num_columns: int, delimiter: str) -> str:
    """Synthesize the ``V1<delim>V2...`` header used when input has none."""
    return delimiter.join(f"V{i}" for i in range(1, num_columns + 1))


@dataclass(frozen=True)
class ColumnIndex:
    """Bidirectional mapping between column names and 1-based column ids.

    ``header`` keeps the header line as it was read (or synthesized) so it
    can be persisted as the pre-transform header snapshot.
    """

    names: tuple[str, ...]
    header: str
    _ids: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        ids: dict[str, int] = {}
        for position, name in enumerate(self.names, start=1):
            if name in ids:
                raise MalformedHeaderError(
                    f"Duplicate column name in header: '{name}'",
                    context={"column_name": name, "column_ids": [ids[name], position]},
                )
            ids[name] = position
        object.__setattr__(self, "_ids", ids)

    @classmethod
    def from_header(cls, header: str, delimiter: str) -> "ColumnIndex":
        names = tuple(unquote(token) for token in header.split(delimiter))
        return cls(names=names, header=header)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: str) -> bool:
        return unquote(name) in self._ids

    def __iter__(self) -> Iterator[tuple[int, str]]:
        return iter(enumerate(self.names, start=1))

    def id_of(self, name: str) -> int:
        """Return the 1-based id of a column name.

        Raises:
            UnknownColumnError: If the name is not in the header
        """
        key = unquote(name)
        try:
            return self._ids[key]
        except KeyError:
            raise UnknownColumnError(
                f"Column '{key}' not found in header",
                context={"column_name": key, "available": list(self.names)},
            ) from None

    def name_of(self, column_id: int) -> str:
        if not 1 <= column_id <= len(self.names):
            raise KeyError(column_id)
        return self.names[column_id - 1]

    def describe(self, column_id: int) -> dict[str, object]:
        """Context dict naming a column, for error reporting."""
        return {"column_id": column_id, "column_name": self.name_of(column_id)}


def resolve_columns(
    storage: Storage, sample_file: str, delimiter: str, has_header: bool
) -> ColumnIndex:
    """Build the column index from the first line of a sample file.

    Args:
        storage: Filesystem holding the sample file
        sample_file: Path of the alphabetically first part file
        delimiter: Field delimiter
        has_header: When False, names ``V1..Vn`` are synthesized from the
            token count of the first line

    Returns:
        ColumnIndex with positional, 1-based ids

    Raises:
        MalformedHeaderError: If the file is empty, unreadable, or its header
            has duplicate names
    """
    try:
        first_line = storage.read_first_line(sample_file)
    except StorageError as e:
        raise MalformedHeaderError(
            f"Cannot read header from sample file: {e.message}",
            context={"path": sample_file},
        ) from e

    if first_line is None or not first_line.strip():
        raise MalformedHeaderError(
            "Sample file is empty", context={"path": sample_file}
        )

    header = first_line
    if not has_header:
        header = default_header(len(header.split(delimiter)), delimiter)

    return ColumnIndex.from_header(header, delimiter)
