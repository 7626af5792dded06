"""Preprocessing stage preparing the working image for the enhancement engine.

This stage adds the white border around the decoded image and, when enabled,
shrinks it with the adaptive downsampler.
"""

import logging

import numpy as np

from fingerprint_enhancement.config import (
    BORDER_COLOR,
    BORDER_MARGIN,
    DEFAULT_MIN_COLS,
    DEFAULT_MIN_ROWS,
    DOWNSAMPLE_FACTOR,
)
from fingerprint_enhancement.images.processing import (
    downsample_image,
    get_image_size,
    iter_downsample_sizes,
    pad_image,
)

logger = logging.getLogger(__name__)


def run_preprocess_stage(
    image: np.ndarray,
    margin: int = BORDER_MARGIN,
    border_color: tuple[int, int, int] = BORDER_COLOR,
    downsize: bool = False,
    min_rows: int = DEFAULT_MIN_ROWS,
    min_cols: int = DEFAULT_MIN_COLS,
    factor: float = DOWNSAMPLE_FACTOR,
    verbose: bool = False,
) -> dict:
    """Run preprocessing stage.

    Args:
        image: Decoded input image (H, W, 3), uint8
        margin: Border width in pixels (default: 20)
        border_color: Border color (default: white)
        downsize: Whether to run the adaptive downsampler
        min_rows: Downsampler row bound
        min_cols: Downsampler column bound
        factor: Downsampler scale factor per step
        verbose: Log every downsizing step at INFO

    Returns:
        Stage dict with structure:
        {
            "stage_id": "preprocessing",
            "stage_name": "Preprocessing",
            "description": "Pad and optionally downsample the input image",
            "config": {...},
            "metrics": {
                "original_size": {"rows": int, "cols": int},
                "padded_size": {"rows": int, "cols": int},
                "working_size": {"rows": int, "cols": int},
                "downsample_steps": int
            },
            "data": {
                "padded_image": np.ndarray,
                "working_image": np.ndarray
            }
        }

    Raises:
        InvalidImageError: If the image carries no pixel data
    """
    padded = pad_image(image, margin=margin, color=border_color)
    original_rows, original_cols = get_image_size(image)
    padded_rows, padded_cols = get_image_size(padded)

    logger.info(
        f"Padded from {original_rows}x{original_cols} to "
        f"{padded_rows}x{padded_cols} (margin={margin}px)"
    )

    steps = 0
    working = padded
    if downsize:
        sizes = list(
            iter_downsample_sizes(
                get_image_size(padded), min_rows=min_rows, min_cols=min_cols, factor=factor
            )
        )
        steps = len(sizes)
        working = downsample_image(padded, verbose=verbose, sizes=sizes)

    working_rows, working_cols = get_image_size(working)
    if downsize:
        logger.info(
            f"Downsampled to {working_rows}x{working_cols} in {steps} step(s) "
            f"(bound {min_rows}x{min_cols})"
        )

    # Return standardized stage dict
    return {
        "stage_id": "preprocessing",
        "stage_name": "Preprocessing",
        "description": "Pad and optionally downsample the input image",
        "config": {
            "margin": margin,
            "border_color": list(border_color),
            "downsize": downsize,
            "min_rows": min_rows,
            "min_cols": min_cols,
            "factor": factor,
        },
        "metrics": {
            "original_size": {"rows": original_rows, "cols": original_cols},
            "padded_size": {"rows": padded_rows, "cols": padded_cols},
            "working_size": {"rows": working_rows, "cols": working_cols},
            "downsample_steps": steps,
        },
        "data": {
            "padded_image": padded,
            "working_image": working,
        },
    }
