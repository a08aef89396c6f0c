"""Output sinks for transformed rows."""

from datatransform.sinks.base import OutputSink, create_sink, register_sink

# Sink modules register themselves via @register_sink decorator
from datatransform.sinks.csv import CSVSink
from datatransform.sinks.matrix import MatrixBlock, MatrixSink

__all__ = [
    "OutputSink",
    "create_sink",
    "register_sink",
    "CSVSink",
    "MatrixSink",
    "MatrixBlock",
]
