"""CLI module for DistortLab commands.

This module re-exports all command functions so that the console entry point
and tests can reach them from one place.
"""

import click

from .. import __version__
from .blocking_cmd import blocking_mask
from .regions_cmd import regions


@click.group()
@click.version_option(version=__version__, prog_name="distortlab")
def main() -> None:
    """🖼️ DistortLab - full-reference image distortion analysis."""
    pass


main.add_command(blocking_mask)
main.add_command(regions)

__all__ = [
    "blocking_mask",
    "main",
    "regions",
]
