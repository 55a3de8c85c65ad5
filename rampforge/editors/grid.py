"""Splits a contact-sheet image into its individual frames."""

import logging
from pathlib import Path

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

CROP_METHODS = ("variance", "simple")

# Grayscale variance (0-255 scale) below which a row/column counts as gutter
GUTTER_MAX_VARIANCE = 25.0
# Search window around each arithmetic split, as a fraction of the cell size
GUTTER_SEARCH = 0.15

Box = tuple[int, int, int, int]


class GutterDetectionError(ValueError):
    """No clean low-variance gutter was found between grid cells."""
    pass


def _variance_profile(gray: np.ndarray, axis: int) -> np.ndarray:
    """Variance of each column (axis=0) or row (axis=1)."""
    return gray.var(axis=axis)


def _trim_margin(profile: np.ndarray, limit: int, threshold: float) -> tuple[int, int]:
    """Skip uniform borders at either end, never more than ``limit`` pixels."""
    start = 0
    while start < limit and profile[start] <= threshold:
        start += 1
    end = len(profile)
    while len(profile) - end < limit and profile[end - 1] <= threshold:
        end -= 1
    return start, end


def find_gutters(
    profile: np.ndarray,
    parts: int,
    threshold: float = GUTTER_MAX_VARIANCE,
    search: float = GUTTER_SEARCH,
) -> list[tuple[int, int]]:
    """Return cell spans ``[(start, end), ...]`` along one axis.

    For each interior split the lowest-variance line within the search window
    is taken as the gutter center and grown outward while it stays below
    ``threshold``.
    """
    size = len(profile)
    cell = size / parts
    window = max(int(cell * search), 1)

    margin_start, margin_end = _trim_margin(profile, int(cell * search), threshold)

    edges: list[int] = [margin_start]
    for k in range(1, parts):
        expected = int(round(k * cell))
        lo = max(expected - window, 1)
        hi = min(expected + window, size - 1)
        if hi <= lo:
            raise GutterDetectionError(f"Image too small to search for a gutter near {expected}")
        center = lo + int(np.argmin(profile[lo:hi]))
        if profile[center] > threshold:
            raise GutterDetectionError(
                f"No gutter near position {expected} (min variance {profile[center]:.1f})"
            )
        start, end = center, center + 1
        while start > lo and profile[start - 1] <= threshold:
            start -= 1
        while end < hi and profile[end] <= threshold:
            end += 1
        edges.extend([start, end])
    edges.append(margin_end)

    spans = [(edges[i], edges[i + 1]) for i in range(0, len(edges), 2)]
    for start, end in spans:
        if end - start < cell / 2:
            raise GutterDetectionError(
                f"Detected cell {start}-{end} is too narrow for a {parts}-way split"
            )
    return spans


def variance_boxes(image: Image.Image, rows: int, cols: int) -> list[Box]:
    """Cell boxes found by detecting low-variance gutters."""
    gray = np.asarray(image.convert("L"), dtype=np.float32)
    col_spans = find_gutters(_variance_profile(gray, axis=0), cols)
    row_spans = find_gutters(_variance_profile(gray, axis=1), rows)
    return [
        (left, top, right, bottom)
        for top, bottom in row_spans
        for left, right in col_spans
    ]


def simple_boxes(
    width: int, height: int, rows: int, cols: int, padding: int = 0
) -> list[Box]:
    """Cell boxes by plain arithmetic division, trimmed by ``padding`` on each edge."""
    cell_w = width / cols
    cell_h = height / rows
    if padding * 2 >= min(cell_w, cell_h):
        raise ValueError(f"Padding {padding}px leaves nothing of a {cell_w:.0f}x{cell_h:.0f} cell")
    boxes: list[Box] = []
    for r in range(rows):
        for c in range(cols):
            boxes.append((
                int(round(c * cell_w)) + padding,
                int(round(r * cell_h)) + padding,
                int(round((c + 1) * cell_w)) - padding,
                int(round((r + 1) * cell_h)) - padding,
            ))
    return boxes


def crop_grid(
    image_path: Path,
    output_dir: Path,
    rows: int = 2,
    cols: int = 3,
    method: str = "variance",
    padding: int = 0,
    fallback: bool = True,
) -> list[Path]:
    """Crop a rows x cols contact sheet into ``frame-1.png`` ... in row-major order.

    With ``fallback`` a failed gutter detection drops back to arithmetic
    division instead of raising.
    """
    if method not in CROP_METHODS:
        raise ValueError(f"Unknown crop method: {method!r}")
    if rows < 1 or cols < 1:
        raise ValueError(f"Grid must be at least 1x1, got {rows}x{cols}")

    output_dir.mkdir(parents=True, exist_ok=True)
    with Image.open(image_path) as img:
        image = img.convert("RGB")

    if method == "variance":
        try:
            boxes = variance_boxes(image, rows, cols)
        except GutterDetectionError as e:
            if not fallback:
                raise
            logger.warning("Gutter detection failed (%s); using simple grid division", e)
            boxes = simple_boxes(image.width, image.height, rows, cols, padding)
    else:
        boxes = simple_boxes(image.width, image.height, rows, cols, padding)

    paths: list[Path] = []
    for i, box in enumerate(boxes, 1):
        out = output_dir / f"frame-{i}.png"
        image.crop(box).save(out)
        paths.append(out)
    logger.info("Cropped %d frames from %s", len(paths), image_path)
    return paths
