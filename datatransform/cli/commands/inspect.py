"""CLI command for inspecting published transformation metadata."""

import sys

import click

from datatransform.core.exceptions import DataTransformError
from datatransform.core.metadata import MetadataStore
from datatransform.models.transform_spec import TransformMethod


@click.command(name="inspect")
@click.argument("metadata_path")
def inspect_metadata(metadata_path: str):
    """Show what a metadata directory holds.

    Examples:

        datatransform inspect /models/adult/tfmtd
    """
    try:
        store = MetadataStore(metadata_path)
        spec = store.load_spec()
        given, transformed = store.load_headers()

        click.echo(f"Metadata: {metadata_path}")
        click.echo(f"  Columns: {spec.num_columns}")
        for method in TransformMethod:
            ids = spec.ids(method)
            if ids:
                click.echo(f"  {method.value}: {len(ids)} column(s)")
        click.echo(f"  Given header: {given}")
        click.echo(f"  Transformed header: {transformed}")
        click.echo("  Artifacts:")
        for artifact in store.list_artifacts():
            click.echo(f"    {artifact}")

    except DataTransformError as e:
        click.echo(f"Inspect error: {e}", err=True)
        sys.exit(1)
