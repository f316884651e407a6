"""Pairing of distorted images with their reference images.

Distorted files are matched to a reference when their lowercase filename stem
starts with the reference's lowercase stem, e.g. ``I01.bmp`` owns
``i01_10_3.jpg``. A distorted file can match more than one reference.
"""

from pathlib import Path

IMAGE_EXTENSIONS = frozenset(
    {
        ".bmp",
        ".dib",
        ".jpg",
        ".jpeg",
        ".jpe",
        ".png",
        ".tif",
        ".tiff",
        ".pbm",
        ".pgm",
        ".ppm",
        ".pnm",
        ".webp",
        ".jp2",
        ".j2k",
        ".j2c",
        ".gif",
    }
)


def is_image_file(path: Path) -> bool:
    """True for files whose extension OpenCV can usually decode."""
    return path.suffix.lower() in IMAGE_EXTENSIONS


def _sort_key(path: Path) -> str:
    return path.name.lower()


def collect_image_files(directory: Path) -> list[Path]:
    """Image files directly inside *directory*, sorted case-insensitively.

    A missing directory yields an empty list.
    """
    if not directory.is_dir():
        return []
    files = [p for p in directory.iterdir() if p.is_file() and is_image_file(p)]
    return sorted(files, key=_sort_key)


def group_distorted_by_reference(
    ref_files: list[Path], dist_files: list[Path]
) -> dict[str, list[Path]]:
    """Map each reference's lowercase stem to its distorted files.

    Every reference gets an entry, possibly empty.
    """
    dist_stems = [(p.stem.lower(), p) for p in dist_files]
    groups: dict[str, list[Path]] = {}

    for ref in ref_files:
        key = ref.stem.lower()
        if not key or key in groups:
            continue
        matches = [p for stem, p in dist_stems if stem.startswith(key)]
        groups[key] = sorted(matches, key=_sort_key)

    return groups
