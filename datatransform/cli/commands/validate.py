"""CLI command for validating transformation jobs."""

import sys

import click

from datatransform.cli.commands._vars import parse_cli_vars
from datatransform.core.columns import resolve_columns
from datatransform.core.compiler import compile_spec
from datatransform.core.exceptions import DataTransformError
from datatransform.core.metadata import MetadataStore
from datatransform.core.reader import InputReader
from datatransform.models.loader import load_job
from datatransform.models.transform_spec import TransformMethod


@click.command()
@click.argument("job_path", type=click.Path(exists=True))
@click.option(
    "--vars",
    multiple=True,
    help="CLI variables in key=value format (can be used multiple times)",
)
def validate(job_path: str, vars: tuple):
    """Validate a job and its transformation spec without running it.

    Checks:
    - YAML syntax and job schema
    - Template variable resolution
    - Input header and column names
    - Transformation methods and combinations

    Examples:

        datatransform validate job.yaml
        datatransform validate job.yaml --vars data_dir=/data/adult
    """
    cli_vars = parse_cli_vars(vars)

    try:
        job = load_job(job_path, cli_vars=cli_vars)

        reader = InputReader(job.input)
        columns = resolve_columns(
            reader.storage, reader.sample_file, job.input.delimiter, job.input.has_header
        )
        if job.is_apply_only:
            spec = MetadataStore(job.metadata.apply_from).load_spec()
        else:
            spec = compile_spec(job.spec, columns)

        click.echo(f"✓ Job '{job.name}' is valid")
        click.echo(f"  Mode: {'apply-only' if job.is_apply_only else 'fit+apply'}")
        click.echo(f"  Input files: {len(reader.files)}")
        click.echo(f"  Columns: {len(columns)}")
        for method in TransformMethod:
            ids = spec.ids(method)
            if ids:
                names = ", ".join(columns.name_of(i) for i in ids)
                click.echo(f"  {method.value}: {names}")
        click.echo(f"  Outputs: {', '.join(o.type for o in job.outputs)}")
        click.echo(f"  Execution: {job.runtime.mode}")

    except DataTransformError as e:
        click.echo(f"✗ Job validation failed: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"✗ Unexpected error: {e}", err=True)
        sys.exit(1)
