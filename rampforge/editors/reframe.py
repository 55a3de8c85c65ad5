"""Center-crops still frames to a target aspect ratio."""

import logging
from pathlib import Path

from PIL import Image

logger = logging.getLogger(__name__)

ASPECT_RATIOS = {
    "16:9": "Landscape / YouTube",
    "9:16": "Portrait / TikTok / Reels",
    "1:1": "Square / Instagram",
    "4:3": "Classic",
    "3:4": "Portrait classic",
    "3:2": "Standard",
    "2:3": "Portrait standard",
}


def parse_aspect_ratio(value: str) -> tuple[int, int]:
    """Parse "W:H" into a pair of positive ints."""
    parts = value.split(":")
    if len(parts) != 2:
        raise ValueError(f"Aspect ratio must look like W:H, got {value!r}")
    try:
        w, h = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"Aspect ratio must look like W:H, got {value!r}") from None
    if w <= 0 or h <= 0:
        raise ValueError(f"Aspect ratio terms must be positive, got {value!r}")
    return w, h


def crop_box(width: int, height: int, ratio: tuple[int, int]) -> tuple[int, int, int, int]:
    """Largest centered box of the given ratio that fits inside width x height."""
    rw, rh = ratio
    if width * rh > height * rw:
        # Too wide: keep full height
        new_w = height * rw // rh
        left = (width - new_w) // 2
        return (left, 0, left + new_w, height)
    new_h = width * rh // rw
    top = (height - new_h) // 2
    return (0, top, width, top + new_h)


def reframe_images(
    paths: list[Path],
    aspect_ratio: str,
    output_dir: Path | None = None,
) -> list[Path]:
    """Center-crop each image to ``aspect_ratio``; overwrite in place without ``output_dir``."""
    ratio = parse_aspect_ratio(aspect_ratio)
    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    results: list[Path] = []
    for path in paths:
        with Image.open(path) as img:
            box = crop_box(img.width, img.height, ratio)
            cropped = img.crop(box)
        out = (output_dir / path.name) if output_dir is not None else path
        cropped.save(out)
        logger.debug("Reframed %s -> %dx%d", path, cropped.width, cropped.height)
        results.append(out)
    return results
