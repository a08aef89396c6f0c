"""Transformation orchestrator.

A run goes through these phases:

1. resolve: read the sample file header into a column index
2. compile: resolve the name-keyed spec against it (fit runs only)
3. fit: prepare partials per partition and merge them (fit runs only), or
   load: read published metadata (apply-only runs)
4. publish: atomically publish spec, metadata and header snapshots
5. apply: transform every partition and write all outputs

The fit pass is merged and published before any apply task starts.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from datatransform.agents import AgentChain
from datatransform.core.columns import ColumnIndex, resolve_columns
from datatransform.core.compiler import compile_spec
from datatransform.core.exceptions import (
    DataTransformError,
    EngineError,
    MetadataMismatchError,
)
from datatransform.core.execution import create_execution_mode
from datatransform.core.metadata import (
    GIVEN_HEADER_FILE,
    SPEC_FILE,
    TRANSFORMED_HEADER_FILE,
    MetadataStore,
)
from datatransform.core.metrics import MetricsCollector
from datatransform.core.reader import InputReader, Partition
from datatransform.core.result import OutputLayout, TransformResult
from datatransform.models.job import TransformJob
from datatransform.models.transform_spec import NameSpec, TransformSpec
from datatransform.sinks import OutputSink, create_sink

logger = logging.getLogger(__name__)


def execute(job: TransformJob) -> TransformResult:
    """Run a transformation job end to end.

    Fit+apply when the job carries a spec, apply-only when it names
    ``metadata.apply_from``.

    Args:
        job: Validated job definition

    Returns:
        TransformResult with output layout, paths and metrics

    Raises:
        EngineError: If any phase fails. ``phase`` names the failing phase and
            the original error, with its column context, is the ``__cause__``.
    """
    metrics = MetricsCollector(job.name)
    mode = create_execution_mode(job.runtime)
    log_extra = {"job_name": job.name}

    logger.info(
        f"Starting {'apply-only' if job.is_apply_only else 'fit+apply'} run "
        f"in {mode.name} mode",
        extra=log_extra,
    )

    try:
        with _phase("resolve", job, metrics):
            reader = InputReader(job.input)
            columns = resolve_columns(
                reader.storage,
                reader.sample_file,
                job.input.delimiter,
                job.input.has_header,
            )

        partitions: Optional[list[Partition]] = None
        if job.is_apply_only:
            with _phase("load", job, metrics):
                store = MetadataStore(job.metadata.apply_from)
                chain = _load_chain(store, columns, job)
                publish_store = _export_store(job)
        else:
            with _phase("compile", job, metrics):
                spec = compile_spec(_name_spec(job), columns)
                chain = AgentChain(spec, columns, job.input.na_strings)
            with _phase("fit", job, metrics):
                partitions = mode.partition(reader, len(columns))
                partials = mode.map_partitions(
                    partitions, lambda p: _fit_partition(chain, p, metrics)
                )
                chain.merge(partials)
                publish_store = MetadataStore(job.metadata.path)

        if publish_store is not None:
            with _phase("publish", job, metrics):
                publish_metadata(publish_store, chain, job.input.delimiter)

        with _phase("apply", job, metrics):
            if partitions is None:
                partitions = mode.partition(reader, len(columns))
            layout = OutputLayout(
                num_rows=sum(p.num_rows for p in partitions),
                num_columns=len(columns),
                num_columns_transformed=chain.output_width(),
            )
            header = chain.transformed_names()
            sinks = [
                create_sink(output, layout, header, job.input) for output in job.outputs
            ]
            mode.map_partitions(
                partitions, lambda p: _apply_partition(chain, p, sinks, metrics)
            )
            outputs = [sink.close() for sink in sinks]

    except EngineError as e:
        metrics.record_error(e)
        metrics.finish()
        logger.error(f"Run failed: {e}", extra=log_extra)
        raise

    metrics.finish()
    logger.info(f"Completed run: {metrics.get_summary()}", extra=log_extra)

    return TransformResult(
        job_name=job.name,
        apply_only=job.is_apply_only,
        layout=layout,
        metadata_path=publish_store.url if publish_store else job.metadata.apply_from,
        outputs=outputs,
        transformed_header=header,
        metrics=metrics.to_dict(),
    )


def publish_metadata(store: MetadataStore, chain: AgentChain, delimiter: str) -> None:
    """Publish spec, agent metadata and both header snapshots in one step."""
    with store.publish() as staging:
        staging.write(SPEC_FILE, chain.spec.to_json())
        chain.persist(staging)
        staging.write(GIVEN_HEADER_FILE, chain.columns.header + "\n")
        staging.write(
            TRANSFORMED_HEADER_FILE, delimiter.join(chain.transformed_names()) + "\n"
        )


@contextmanager
def _phase(name: str, job: TransformJob, metrics: MetricsCollector) -> Iterator[None]:
    """Time a phase and wrap its failures in EngineError."""
    extra = {"job_name": job.name, "phase": name}
    logger.debug(f"Entering phase {name}", extra=extra)
    start = time.time()
    try:
        yield
    except EngineError as e:
        if e.phase == name:
            raise
        # Executor failures are tagged "execute"; report the phase that ran them
        context = {k: v for k, v in e.context.items() if k != "phase"}
        raise EngineError(
            f"{name} failed: {e.message}", phase=name, context=context
        ) from e
    except DataTransformError as e:
        raise EngineError(
            f"{name} failed: {e.message}", phase=name, context=e.context
        ) from e
    except Exception as e:
        raise EngineError(f"{name} failed: {e}", phase=name) from e
    finally:
        metrics.record_phase(name, time.time() - start)


def _name_spec(job: TransformJob) -> NameSpec:
    if job.spec is not None:
        return job.spec
    return NameSpec.from_file(job.spec_path)


def _load_chain(
    store: MetadataStore, columns: ColumnIndex, job: TransformJob
) -> AgentChain:
    """Rebuild an agent chain from published metadata.

    Raises:
        MetadataMismatchError: If the input's column count differs from the
            one the metadata was fitted on
    """
    spec: TransformSpec = store.load_spec()
    if spec.num_columns != len(columns):
        raise MetadataMismatchError(
            f"Input has {len(columns)} columns but the metadata was fitted "
            f"on {spec.num_columns}",
            context={"metadata_path": store.url},
        )
    chain = AgentChain(spec, columns, job.input.na_strings)
    chain.load(store)
    return chain


def _export_store(job: TransformJob) -> Optional[MetadataStore]:
    """Store to re-publish loaded metadata to, if the job asks for one."""
    if job.metadata.path is None or job.metadata.path == job.metadata.apply_from:
        return None
    return MetadataStore(job.metadata.path)


def _fit_partition(chain: AgentChain, partition: Partition, metrics: MetricsCollector):
    partials = chain.fit_partition(partition)
    metrics.record_fit(partition.num_rows)
    return partials


def _apply_partition(
    chain: AgentChain,
    partition: Partition,
    sinks: list[OutputSink],
    metrics: MetricsCollector,
) -> int:
    rows = chain.apply_partition(partition)
    for sink in sinks:
        sink.write_rows(partition.row_offset, rows)
    metrics.record_apply(partition.num_rows)
    logger.debug(
        f"Applied {partition.num_rows} row(s)",
        extra={"partition": partition.index},
    )
    return partition.num_rows

