"""Shared utilities for CLI commands."""

import sys
from pathlib import Path

import click


def handle_generic_error(command_name: str, error: Exception) -> None:
    """Handle generic command errors with consistent formatting."""
    click.echo(f"❌ {command_name} failed: {error}", err=True)
    sys.exit(1)


def handle_keyboard_interrupt(command_name: str) -> None:
    """Handle keyboard interrupt with consistent formatting."""
    click.echo(f"\n⏹️  {command_name} interrupted by user", err=True)
    sys.exit(1)


def display_common_header(title: str) -> None:
    """Display a common header for CLI commands."""
    click.echo(f"🖼️  {title}")


def display_path_info(label: str, path: Path, emoji: str = "📁") -> None:
    """Display path information with consistent formatting."""
    click.echo(f"{emoji} {label}: {path}")


def display_results_summary(result: dict) -> None:
    """Display a common results summary format."""
    click.echo("\n📊 Results:")
    click.echo(f"   • Status: {result['status']}")

    for key in ["processed", "failed", "skipped"]:
        if key in result:
            click.echo(f"   • {key.replace('_', ' ').title()}: {result[key]}")

    if "output_path" in result:
        click.echo(f"   • Results saved to: {result['output_path']}")
