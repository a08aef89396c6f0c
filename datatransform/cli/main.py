"""Main CLI entry point for datatransform."""

import click

from datatransform import __version__
from datatransform.cli.commands.inspect import inspect_metadata
from datatransform.cli.commands.run import run
from datatransform.cli.commands.validate import validate


@click.group()
@click.version_option(version=__version__)
def main():
    """DataTransform - Spec-driven feature transformation engine."""
    pass


# Register commands
main.add_command(run)
main.add_command(validate)
main.add_command(inspect_metadata)


if __name__ == "__main__":
    main()
