"""Blocking mask command for reference/distorted image pairs."""

import logging
from pathlib import Path

import click
import numpy as np

from ..blocking import BlockingArtifactDetector
from ..color import bgr8_to_lab32
from ..error_handling import DistortLabError
from ..file_grouping import collect_image_files, group_distorted_by_reference
from ..io import apply_block_mask, read_image, setup_logging, write_image
from .utils import (
    display_common_header,
    display_path_info,
    display_results_summary,
    handle_generic_error,
    handle_keyboard_interrupt,
)

logger = logging.getLogger(__name__)


def output_name(dist_path: Path, overlay: bool) -> str:
    """File name for the result written for *dist_path*."""
    suffix = dist_path.suffix if overlay else ".png"
    return f"{dist_path.stem}_blocks{suffix}"


def process_pair(
    detector: BlockingArtifactDetector,
    ref_bgr: np.ndarray,
    dist_path: Path,
    out_path: Path,
    overlay: bool,
) -> int:
    """Detect blocking for one distorted file and write the result.

    Returns:
        Number of pixels marked as blocking
    """
    dist_bgr = read_image(dist_path)
    mask = detector.detect_mask(bgr8_to_lab32(ref_bgr), bgr8_to_lab32(dist_bgr))
    result = apply_block_mask(dist_bgr, mask) if overlay else mask
    write_image(out_path, result)
    return int(np.count_nonzero(mask))


def run_directory_mode(
    detector: BlockingArtifactDetector,
    ref_dir: Path,
    dist_dir: Path,
    out_dir: Path,
    overlay: bool,
) -> dict:
    """Process every distorted file grouped under its reference image."""
    ref_files = collect_image_files(ref_dir)
    groups = group_distorted_by_reference(ref_files, collect_image_files(dist_dir))
    result = {"processed": 0, "failed": 0, "skipped": 0, "output_path": out_dir}

    click.echo(f"🔎 Found {len(ref_files)} reference images")

    for ref_path in ref_files:
        dist_list = groups.get(ref_path.stem.lower(), [])
        if not dist_list:
            click.echo(f"[ref] {ref_path.name} -> no distorted images")
            result["skipped"] += 1
            continue

        click.echo(f"[ref] {ref_path.name} -> {len(dist_list)} distorted")
        try:
            ref_bgr = read_image(ref_path)
        except DistortLabError as e:
            logger.warning(f"Skipping reference {ref_path}: {e}")
            result["failed"] += len(dist_list)
            continue

        for dist_path in dist_list:
            try:
                process_pair(
                    detector,
                    ref_bgr,
                    dist_path,
                    out_dir / output_name(dist_path, overlay),
                    overlay,
                )
                result["processed"] += 1
            except DistortLabError as e:
                logger.warning(f"Failed to process {dist_path}: {e}")
                result["failed"] += 1

    result["status"] = "completed" if result["failed"] == 0 else "completed_with_errors"
    return result


@click.command(name="blocking-mask")
@click.argument("ref_path", type=click.Path(exists=True, path_type=Path))
@click.argument("dist_path", type=click.Path(exists=True, path_type=Path))
@click.argument("out_path", type=click.Path(path_type=Path))
@click.option(
    "--overlay/--mask-only",
    default=True,
    help="Write the distorted image with blocking pixels painted black (default) "
    "or the raw 0/255 mask",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Also write a timestamped log file to this directory",
)
def blocking_mask(
    ref_path: Path,
    dist_path: Path,
    out_path: Path,
    overlay: bool,
    log_dir: Path | None,
) -> None:
    """Detect compression blocking artifacts.

    REF_PATH and DIST_PATH are either two image files or two directories. In
    directory mode distorted files are matched to references by filename
    prefix and OUT_PATH is an output directory.
    """
    if log_dir is not None:
        setup_logging(log_dir)
    detector = BlockingArtifactDetector()

    try:
        if ref_path.is_file() and dist_path.is_file():
            display_common_header("DistortLab blocking mask")
            if out_path.is_dir():
                out_path = out_path / output_name(dist_path, overlay)
            count = process_pair(
                detector, read_image(ref_path), dist_path, out_path, overlay
            )
            click.echo(f"✅ {count} blocking pixels")
            display_path_info("Wrote", out_path, "💾")
        elif ref_path.is_dir() and dist_path.is_dir():
            display_common_header("DistortLab blocking mask (directory mode)")
            display_path_info("References", ref_path)
            display_path_info("Distorted", dist_path)
            out_path.mkdir(parents=True, exist_ok=True)
            result = run_directory_mode(detector, ref_path, dist_path, out_path, overlay)
            display_results_summary(result)
        else:
            raise click.UsageError(
                "REF_PATH and DIST_PATH must both be files or both be directories"
            )
    except click.UsageError:
        raise
    except KeyboardInterrupt:
        handle_keyboard_interrupt("Blocking mask")
    except Exception as e:
        handle_generic_error("Blocking mask", e)
