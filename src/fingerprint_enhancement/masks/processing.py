"""Mask-driven compositing of enhancement results.

This module fuses the enhancement engine's intensity output with its validity
mask and restores the geometry of the original input image.
"""

import logging

import numpy as np

from fingerprint_enhancement.config import BORDER_MARGIN
from fingerprint_enhancement.errors import DimensionMismatchError
from fingerprint_enhancement.images.processing import (
    restore_geometry,
    to_uint8,
    unpad_image,
)

logger = logging.getLogger(__name__)


def _check_mask(enhanced: np.ndarray, mask: np.ndarray | None) -> None:
    if mask is None:
        raise DimensionMismatchError("A validity mask is required for compositing")
    if mask.ndim != 2:
        raise DimensionMismatchError(
            f"Validity mask must be single-channel, got shape {mask.shape}"
        )
    if enhanced.shape[:2] != mask.shape[:2]:
        raise DimensionMismatchError(
            f"Enhanced image {enhanced.shape[:2]} and mask {mask.shape[:2]} "
            "have different dimensions"
        )


def fuse_with_mask(enhanced: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Keep enhanced pixels inside the mask and force everything else to white.

    The enhanced image is copied onto a black canvas wherever the mask is set,
    converted to 8 bits, then OR-ed with the inverted mask. For a binary
    {0, 255} mask, foreground pixels carry the enhanced value and background
    pixels become 255.

    Args:
        enhanced: Enhanced image (H, W) or (H, W, C), any numeric dtype
        mask: Validity mask (H, W), uint8, 255=valid, 0=background

    Returns:
        Fused uint8 image with the shape of `enhanced`

    Raises:
        DimensionMismatchError: If the mask is missing, multi-channel or its
            size differs from the enhanced image
    """
    _check_mask(enhanced, mask)

    mask = mask.astype(np.uint8, copy=False)
    selector = mask > 0
    inverted = 255 - mask

    # Expand mask to the channels of the enhanced image
    if enhanced.ndim == 3:
        selector = np.repeat(selector[:, :, np.newaxis], enhanced.shape[2], axis=2)
        inverted = np.repeat(inverted[:, :, np.newaxis], enhanced.shape[2], axis=2)

    canvas = np.where(selector, enhanced, np.zeros_like(enhanced))
    canvas = to_uint8(canvas)

    return np.bitwise_or(canvas, inverted)


def composite(
    enhanced: np.ndarray,
    mask: np.ndarray | None,
    margin: int = BORDER_MARGIN,
    postprocess: bool = True,
    padded_size: tuple[int, int] | None = None,
) -> np.ndarray:
    """Build the end result from the engine outputs.

    Args:
        enhanced: Enhanced image from the engine, padded working geometry
        mask: Validity mask from the engine (ignored when postprocess is False)
        margin: Border width to remove (default: 20)
        postprocess: Apply mask-driven fusion; otherwise pass `enhanced` through
        padded_size: (rows, cols) to rescale to before unpadding, used to undo
            downsampling. None keeps the working geometry.

    Returns:
        End result image with the border removed

    Raises:
        DimensionMismatchError: If postprocess is enabled and the mask doesn't
            match the enhanced image
        GeometryError: If the image is too small to remove the margin
    """
    if postprocess:
        result = fuse_with_mask(enhanced, mask)
    else:
        result = enhanced

    if padded_size is not None:
        result = restore_geometry(result, padded_size)

    return unpad_image(result, margin)
