"""CLI command for running transformation jobs."""

import sys

import click

from datatransform import run_job
from datatransform.cli.commands._vars import parse_cli_vars
from datatransform.core.exceptions import EngineError, JobError, SpecError
from datatransform.core.logging import configure_logging
from datatransform.models.job import TransformJob
from datatransform.models.loader import load_job


@click.command()
@click.argument("job_path", type=click.Path(exists=True))
@click.option(
    "--vars",
    multiple=True,
    help="CLI variables in key=value format (can be used multiple times)",
)
@click.option(
    "--apply-from",
    help="Apply metadata published by an earlier run instead of fitting",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Log level (default: INFO)",
)
@click.option(
    "--json-logs",
    is_flag=True,
    help="Use JSON format for logs",
)
def run(
    job_path: str,
    vars: tuple,
    apply_from: str | None,
    log_level: str,
    json_logs: bool,
):
    """Run a transformation job.

    Examples:

        datatransform run job.yaml
        datatransform run job.yaml --vars data_dir=/data/adult
        datatransform run job.yaml --apply-from /models/adult/tfmtd
        datatransform run job.yaml --log-level DEBUG --json-logs
    """
    cli_vars = parse_cli_vars(vars)

    try:
        job = load_job(job_path, cli_vars=cli_vars)
        if apply_from:
            job = _as_apply_only(job, apply_from)

        configure_logging(level=log_level, json_format=json_logs, job_name=job.name)

        click.echo(f"Running job: {job.name}")
        result = run_job(job)
        click.echo(
            f"Job completed ({result.mode}): {result.layout.num_rows} rows, "
            f"{result.layout.num_columns} -> "
            f"{result.layout.num_columns_transformed} columns"
        )
        for output in result.outputs:
            click.echo(f"  Output: {output}")
        if result.metadata_path:
            click.echo(f"  Metadata: {result.metadata_path}")

    except (JobError, SpecError) as e:
        click.echo(f"Job error: {e}", err=True)
        sys.exit(1)
    except EngineError as e:
        click.echo(f"Execution error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


def _as_apply_only(job: TransformJob, apply_from: str) -> TransformJob:
    """Turn a fit job into an apply-only job over the given metadata."""
    data = job.model_dump(exclude={"spec", "spec_path"})
    data["metadata"]["apply_from"] = apply_from
    if data["metadata"]["path"] == apply_from:
        data["metadata"]["path"] = None
    try:
        return TransformJob.model_validate(data)
    except ValueError as e:
        raise JobError(f"Job validation failed: {e}") from e
