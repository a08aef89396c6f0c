"""Execution modes: how partitions are formed and where tasks run."""

import logging
from typing import Callable, Protocol, TypeVar

from datatransform.core.parallel import AsyncParallelExecutor, run_async
from datatransform.core.reader import InputReader, Partition
from datatransform.models.runtime_config import RuntimeConfig

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ExecutionMode(Protocol):
    """Partitioning plus a task runner.

    ``map_partitions`` must return results in partition order whatever order
    the tasks finish in.
    """

    name: str

    def partition(self, reader: InputReader, num_columns: int) -> list[Partition]: ...

    def map_partitions(
        self, partitions: list[Partition], func: Callable[[Partition], R]
    ) -> list[R]: ...


class SingleNodeExecution:
    """The whole input as one partition, processed in the calling thread."""

    name = "single"

    def partition(self, reader: InputReader, num_columns: int) -> list[Partition]:
        return reader.read_partitions(num_columns, batch_size=None)

    def map_partitions(
        self, partitions: list[Partition], func: Callable[[Partition], R]
    ) -> list[R]:
        return [func(partition) for partition in partitions]


class DistributedExecution:
    """Row-chunk partitions processed concurrently by a bounded worker pool."""

    name = "distributed"

    def __init__(self, parallelism: int, batch_size: int):
        self.parallelism = parallelism
        self.batch_size = batch_size
        self._executor = AsyncParallelExecutor(parallelism)

    def partition(self, reader: InputReader, num_columns: int) -> list[Partition]:
        return reader.read_partitions(num_columns, batch_size=self.batch_size)

    def map_partitions(
        self, partitions: list[Partition], func: Callable[[Partition], R]
    ) -> list[R]:
        logger.debug(
            f"Running {len(partitions)} partition task(s) "
            f"with parallelism={self.parallelism}"
        )
        return run_async(self._executor.process(partitions, func))


def create_execution_mode(runtime: RuntimeConfig) -> ExecutionMode:
    """Build the execution mode a runtime configuration selects."""
    if runtime.mode == "distributed":
        return DistributedExecution(runtime.parallelism, runtime.batch_size)
    return SingleNodeExecution()
