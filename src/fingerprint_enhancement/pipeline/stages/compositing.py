"""Compositing stage producing the end result."""

import logging

import numpy as np

from fingerprint_enhancement.config import BORDER_MARGIN
from fingerprint_enhancement.images.processing import get_image_size
from fingerprint_enhancement.masks.processing import composite

logger = logging.getLogger(__name__)


def run_compositing_stage(
    enhanced: np.ndarray,
    mask: np.ndarray | None,
    margin: int = BORDER_MARGIN,
    postprocess: bool = True,
    padded_size: tuple[int, int] | None = None,
) -> dict:
    """Run compositing stage.

    Args:
        enhanced: Enhanced image from the engine
        mask: Validity mask from the engine (None when postprocess is False)
        margin: Border width to remove (default: 20)
        postprocess: Fuse with the mask instead of passing the image through
        padded_size: (rows, cols) of the padded input, to undo downsampling

    Returns:
        Stage dict with structure:
        {
            "stage_id": "compositing",
            "stage_name": "Compositing",
            "description": "Fuse enhanced image with mask and remove the border",
            "config": {"margin": int, "postprocess": bool, "restore_geometry": bool},
            "metrics": {
                "mode": "mask_fusion" | "pass_through",
                "result_size": {"rows": int, "cols": int}
            },
            "data": {"result": np.ndarray}
        }

    Raises:
        DimensionMismatchError: If enhanced image and mask sizes differ
        GeometryError: If the border can't be removed
    """
    mode = "mask_fusion" if postprocess else "pass_through"
    logger.info(f"Compositing end result ({mode})")

    result = composite(
        enhanced,
        mask,
        margin=margin,
        postprocess=postprocess,
        padded_size=padded_size,
    )
    rows, cols = get_image_size(result)
    logger.info(f"End result size: {rows}x{cols}")

    # Return standardized stage dict
    return {
        "stage_id": "compositing",
        "stage_name": "Compositing",
        "description": "Fuse enhanced image with mask and remove the border",
        "config": {
            "margin": margin,
            "postprocess": postprocess,
            "restore_geometry": padded_size is not None,
        },
        "metrics": {
            "mode": mode,
            "result_size": {"rows": rows, "cols": cols},
        },
        "data": {
            "result": result,
        },
    }
