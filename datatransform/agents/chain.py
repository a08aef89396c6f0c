"""Ordered chain of transformation agents."""

from dataclasses import dataclass
from typing import Any, Iterable

from datatransform.agents.base import Row, TransformationAgent
from datatransform.agents.registry import get_agent_class
from datatransform.core.columns import ColumnIndex
from datatransform.core.exceptions import DataTransformError, EngineError
from datatransform.core.metadata import MetadataStaging, MetadataStore
from datatransform.core.reader import Partition
from datatransform.models.transform_spec import TransformMethod, TransformSpec

# Scale runs on original positions, before dummy-code expansion shifts them.
AGENT_ORDER: tuple[TransformMethod, ...] = (
    TransformMethod.IMPUTE,
    TransformMethod.RECODE,
    TransformMethod.BIN,
    TransformMethod.SCALE,
    TransformMethod.DUMMYCODE,
)


@dataclass
class PartitionPartials:
    """Fit accumulators of every agent for one partition."""

    index: int
    num_rows: int
    partials: dict[TransformMethod, Any]


class AgentChain:
    """Runs the agents of a compiled spec in fixed order.

    Fit folds each partition into per-agent partials; merge combines them
    across partitions. Apply pipes every row through all agents, so each
    agent sees the output of the ones before it.
    """

    def __init__(
        self, spec: TransformSpec, columns: ColumnIndex, na_strings: Iterable[str]
    ):
        self.spec = spec
        self.columns = columns
        na_strings = list(na_strings)

        self._agents: dict[TransformMethod, TransformationAgent] = {}
        for method in AGENT_ORDER:
            agent = get_agent_class(method)(spec, columns, na_strings)
            agent.connect(self._agents)
            self._agents[method] = agent

    @property
    def agents(self) -> list[TransformationAgent]:
        return list(self._agents.values())

    def get(self, method: TransformMethod) -> TransformationAgent:
        return self._agents[method]

    # ------------------------------------------------------------------
    # Fit
    # ------------------------------------------------------------------

    def fit_partition(self, partition: Partition) -> PartitionPartials:
        """Build the partials of one partition from its raw input values."""
        partials = {
            method: agent.new_partial()
            for method, agent in self._agents.items()
            if agent.is_active
        }
        for row in partition.rows:
            for method, partial in partials.items():
                self._agents[method].prepare(partial, row)
        return PartitionPartials(partition.index, partition.num_rows, partials)

    def merge(self, results: list[PartitionPartials]) -> None:
        """Finalize metadata from all partitions, lowest partition index first."""
        ordered = sorted(results, key=lambda r: r.index)
        for method, agent in self._agents.items():
            agent.merge_partials([r.partials.get(method) for r in ordered])

    def persist(self, staging: MetadataStaging) -> None:
        for agent in self._agents.values():
            agent.persist(staging)

    def load(self, store: MetadataStore) -> None:
        for agent in self._agents.values():
            agent.load(store)

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def apply(self, row: Row) -> Row:
        for agent in self._agents.values():
            row = agent.apply(row)
        return row

    def apply_partition(self, partition: Partition) -> list[Row]:
        """Transform every row of a partition.

        Raises:
            DataTransformError: Agent failures, with partition and row context added
        """
        rows = []
        for position, row in enumerate(partition.rows):
            try:
                rows.append(self.apply(row))
            except DataTransformError as e:
                e.context.setdefault("partition", partition.index)
                e.context.setdefault("row", partition.row_offset + position + 1)
                raise
            except Exception as e:
                raise EngineError(
                    f"Unexpected failure transforming row: {e}",
                    phase="apply",
                    context={
                        "partition": partition.index,
                        "row": partition.row_offset + position + 1,
                    },
                ) from e
        return rows

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def output_width(self) -> int:
        """Column count of transformed rows."""
        return self.get(TransformMethod.DUMMYCODE).output_width(len(self.columns))

    def transformed_names(self) -> list[str]:
        return self.get(TransformMethod.DUMMYCODE).transformed_names(self.columns)
