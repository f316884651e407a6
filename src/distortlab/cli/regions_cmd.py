"""Region statistics command: region shares, impulse/blur scores and blocking."""

import json
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from ..blocking import calculate_blocking_metrics
from ..color import bgr8_to_lab32, luminance
from ..error_handling import ValidationError
from ..io import atomic_write, read_image, visualize_regions, write_image
from ..region_masks import score_blur, score_impulses
from ..region_provider import PROVIDERS, make_region_provider
from .utils import display_path_info, handle_generic_error, handle_keyboard_interrupt

console = Console()


def compute_region_report(
    ref_path: Path,
    dist_path: Path,
    provider: str,
    overlay_out: Path | None = None,
) -> dict[str, Any]:
    """Region statistics for one reference/distorted pair.

    When *overlay_out* is given, the reference with its region classes painted
    in colour is written there (a directory gets `<stem>_regions<ext>`).
    """
    ref_bgr = read_image(ref_path)
    ref_lab = bgr8_to_lab32(ref_bgr)
    dist_lab = bgr8_to_lab32(read_image(dist_path))
    if ref_lab.shape != dist_lab.shape:
        raise ValidationError(
            f"image size mismatch {ref_lab.shape[:2]} vs {dist_lab.shape[:2]}"
        )

    region_provider = make_region_provider(provider)
    masks = region_provider.compute_regions(ref_lab)
    ref_l, dist_l = luminance(ref_lab), luminance(dist_lab)
    impulse = score_impulses(ref_l, dist_l, masks)
    blur = score_blur(ref_l, dist_l, masks)

    total = masks.flat.size
    counts = masks.counts()

    report: dict[str, Any] = {
        "reference": str(ref_path),
        "distorted": str(dist_path),
        "provider": region_provider.name,
        "flat_ratio": counts["flat"] / total,
        "mid_ratio": counts["mid"] / total,
        "detail_ratio": counts["detail"] / total,
        "impulse_mean": impulse.mean,
        "impulse_p95": impulse.p95,
        "impulse_count": impulse.count,
        "blur_mean": blur.mean,
        "blur_p95": blur.p95,
        "blur_count": blur.count,
    }
    if overlay_out is not None:
        if overlay_out.is_dir():
            overlay_out = overlay_out / regions_overlay_name(ref_path)
        write_image(overlay_out, visualize_regions(ref_bgr, masks))
        report["overlay"] = str(overlay_out)

    report.update(calculate_blocking_metrics(ref_lab, dist_lab))
    return report


def regions_overlay_name(ref_path: Path) -> str:
    return f"{ref_path.stem}_regions{ref_path.suffix}"


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.4f}"
    return str(value)


@click.command()
@click.argument("ref_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("dist_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--provider",
    "-p",
    type=click.Choice(sorted(PROVIDERS)),
    default="pixelwise",
    help="Region provider used for the flat/mid/detail masks",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also save the report as JSON to this path",
)
@click.option(
    "--overlay-out",
    type=click.Path(path_type=Path),
    help="Write the reference with flat/mid/detail painted blue/yellow/red "
    "to this file or directory",
)
def regions(
    ref_path: Path,
    dist_path: Path,
    provider: str,
    output_format: str,
    output: Path | None,
    overlay_out: Path | None,
) -> None:
    """Report region shares and distortion scores for an image pair."""
    try:
        report = compute_region_report(ref_path, dist_path, provider, overlay_out)

        if output_format == "json":
            click.echo(json.dumps(report, indent=2))
        else:
            table = Table(title=f"Regions: {dist_path.name}")
            table.add_column("Metric", style="cyan")
            table.add_column("Value", justify="right")
            for key, value in report.items():
                if key in ("reference", "distorted", "overlay"):
                    continue
                table.add_row(key, _format_value(value))
            console.print(table)
            if "overlay" in report:
                display_path_info("Region overlay", Path(report["overlay"]), "🎨")

        if output is not None:
            with atomic_write(output) as f:
                json.dump(report, f, indent=2)
            click.echo(f"💾 Report saved to: {output}")
    except KeyboardInterrupt:
        handle_keyboard_interrupt("Regions")
    except Exception as e:
        handle_generic_error("Regions", e)
