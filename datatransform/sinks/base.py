"""Output sink protocol and sink registry."""

import json
import uuid
from abc import ABC, abstractmethod
from typing import Any

from datatransform.core.exceptions import JobError
from datatransform.core.result import OutputLayout
from datatransform.core.storage import Storage
from datatransform.models.job import InputConfig, OutputConfig

Row = list[str]

MTD_SUFFIX = ".mtd"


class OutputSink(ABC):
    """Destination for transformed rows.

    ``write_rows`` is called once per partition, possibly from several
    threads at once and in any order; ``row_offset`` places the rows in the
    output. ``close`` is called once after every partition was written and
    makes the output visible.
    """

    def __init__(
        self,
        config: OutputConfig,
        layout: OutputLayout,
        header: list[str],
        input_config: InputConfig,
    ):
        self.config = config
        self.layout = layout
        self.header = header
        self.input_config = input_config
        self._storage, self.path = Storage.for_url(config.path)

    @abstractmethod
    def write_rows(self, row_offset: int, rows: list[Row]) -> None: ...

    @abstractmethod
    def close(self) -> str:
        """Finish the output and return its path."""

    def _temp_path(self) -> str:
        parent = Storage.parent(self.path)
        return Storage.join(
            parent, f".{Storage.basename(self.path)}.tmp-{uuid.uuid4().hex}"
        )

    def _publish_file(self, temp_path: str) -> None:
        self._storage.rename(temp_path, self.path)

    def _write_mtd(self, properties: dict[str, Any]) -> None:
        """Write the JSON descriptor next to the output."""
        descriptor = {
            "data_type": "matrix",
            "value_type": "double",
            "rows": self.layout.num_rows,
            "cols": self.layout.num_columns_transformed,
            **properties,
        }
        self._storage.write_text(
            self.path + MTD_SUFFIX, json.dumps(descriptor, indent=2) + "\n"
        )


_sink_registry: dict[str, type[OutputSink]] = {}


def register_sink(sink_type: str):
    """Register a sink class under an output type name."""

    def _register(cls: type[OutputSink]) -> type[OutputSink]:
        _sink_registry[sink_type] = cls
        return cls

    return _register


def create_sink(
    config: OutputConfig,
    layout: OutputLayout,
    header: list[str],
    input_config: InputConfig,
) -> OutputSink:
    """Instantiate the sink an output configuration names.

    Raises:
        JobError: If the output type has no sink
    """
    sink_class = _sink_registry.get(config.type)
    if sink_class is None:
        raise JobError(
            f"Unknown output type '{config.type}'",
            context={"available_types": ", ".join(sorted(_sink_registry))},
        )
    return sink_class(config, layout, header, input_config)
