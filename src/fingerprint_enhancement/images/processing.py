"""Image geometry utilities for the fingerprint enhancement pipeline.

This module provides the border management (pad/unpad), the adaptive
downsampler and the small conversion helpers the pipeline stages share.
"""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

import cv2
import numpy as np

from fingerprint_enhancement.config import (
    BORDER_COLOR,
    BORDER_MARGIN,
    DEFAULT_MIN_COLS,
    DEFAULT_MIN_ROWS,
    DOWNSAMPLE_FACTOR,
)
from fingerprint_enhancement.errors import (
    ConfigurationError,
    GeometryError,
    InvalidImageError,
)

logger = logging.getLogger(__name__)


def load_image(image_path: Path | str) -> np.ndarray:
    """Decode an image file as a 3-channel 8-bit BGR array.

    Args:
        image_path: Path to the source image

    Returns:
        Image array of shape (H, W, 3), dtype uint8

    Raises:
        InvalidImageError: If the file doesn't exist or can't be decoded
    """
    image_path = Path(image_path)

    if not image_path.exists():
        raise InvalidImageError(f"Image not found: {image_path}")

    image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if image is None or image.size == 0:
        raise InvalidImageError(
            f"The provided input image is invalid. Please check it again: {image_path}"
        )

    logger.debug(f"Loaded {image_path} with shape {image.shape}")
    return image


def get_image_size(image: np.ndarray) -> tuple[int, int]:
    """Return the (rows, cols) of an image."""
    return int(image.shape[0]), int(image.shape[1])


def pad_image(
    image: np.ndarray,
    margin: int = BORDER_MARGIN,
    color: tuple[int, int, int] = BORDER_COLOR,
) -> np.ndarray:
    """Add a constant border of `margin` pixels on every side.

    Args:
        image: Input image (grayscale or BGR)
        margin: Border width in pixels (default: 20)
        color: Border color (default: white)

    Returns:
        New image of shape (H + 2*margin, W + 2*margin[, C])

    Raises:
        InvalidImageError: If the image carries no pixel data
        GeometryError: If margin is negative
    """
    if image is None or not isinstance(image, np.ndarray) or image.size == 0:
        raise InvalidImageError("Cannot pad an image without pixel data")
    if margin < 0:
        raise GeometryError(f"Border margin must be non-negative, got {margin}")

    return cv2.copyMakeBorder(
        image,
        margin,
        margin,
        margin,
        margin,
        cv2.BORDER_CONSTANT,
        value=tuple(int(c) for c in color),
    )


def unpad_image(image: np.ndarray, margin: int = BORDER_MARGIN) -> np.ndarray:
    """Remove `margin` pixels from every side of an image.

    Selects the interior region [margin, H - margin) x [margin, W - margin).

    Args:
        image: Padded image
        margin: Border width in pixels (default: 20)

    Returns:
        Copy of the interior region

    Raises:
        GeometryError: If the crop would be empty or inverted
    """
    if margin < 0:
        raise GeometryError(f"Border margin must be non-negative, got {margin}")

    rows, cols = get_image_size(image)
    if rows <= 2 * margin or cols <= 2 * margin:
        raise GeometryError(
            f"Cannot remove a {margin}px border from a {rows}x{cols} image"
        )

    return image[margin : rows - margin, margin : cols - margin].copy()


def _next_size(size: tuple[int, int], factor: float) -> tuple[int, int]:
    rows, cols = size
    return max(1, int(round(rows * factor))), max(1, int(round(cols * factor)))


def iter_downsample_sizes(
    size: tuple[int, int],
    min_rows: int = DEFAULT_MIN_ROWS,
    min_cols: int = DEFAULT_MIN_COLS,
    factor: float = DOWNSAMPLE_FACTOR,
) -> Iterator[tuple[tuple[int, int], tuple[int, int]]]:
    """Yield the successive (before, after) sizes of the adaptive downsampler.

    Both dimensions are scaled by `factor` while rows > min_rows or
    cols > min_cols. Iteration stops early once a step leaves both dimensions
    unchanged, since integer rounding makes small sizes a fixed point.

    Args:
        size: Starting (rows, cols)
        min_rows: Row bound
        min_cols: Column bound
        factor: Scale factor per step, in (0, 1)

    Yields:
        Tuples of ((rows, cols), (new_rows, new_cols)), one per resize step

    Raises:
        ConfigurationError: If factor is not in (0, 1)
    """
    if not (0.0 < factor < 1.0):
        raise ConfigurationError(f"Downsample factor must be in (0, 1), got {factor}")

    current = (int(size[0]), int(size[1]))
    while current[0] > min_rows or current[1] > min_cols:
        following = _next_size(current, factor)
        if following == current:
            logger.debug(f"Downsizing reached a fixed point at {current}")
            return
        yield current, following
        current = following


def downsample_image(
    image: np.ndarray,
    min_rows: int = DEFAULT_MIN_ROWS,
    min_cols: int = DEFAULT_MIN_COLS,
    factor: float = DOWNSAMPLE_FACTOR,
    interpolation: int = cv2.INTER_CUBIC,
    verbose: bool = False,
    sizes: Iterable[tuple[tuple[int, int], tuple[int, int]]] | None = None,
) -> np.ndarray:
    """Iteratively shrink an image until it fits the (min_rows, min_cols) bound.

    Args:
        image: Input image
        min_rows: Row bound (default: 1000)
        min_cols: Column bound (default: 1000)
        factor: Scale factor applied per step (default: 0.9)
        interpolation: OpenCV interpolation flag (default: cubic)
        verbose: Log every step at INFO instead of DEBUG
        sizes: Steps already computed by iter_downsample_sizes for this image

    Returns:
        Downsampled image, or the input itself if no step was needed
    """
    log = logger.info if verbose else logger.debug
    if sizes is None:
        sizes = iter_downsample_sizes(get_image_size(image), min_rows, min_cols, factor)

    for (rows, cols), (new_rows, new_cols) in sizes:
        log(f"Downsizing from ({rows}, {cols}) to ({new_rows}, {new_cols})")
        image = cv2.resize(image, (new_cols, new_rows), interpolation=interpolation)

    return image


def restore_geometry(
    image: np.ndarray,
    size: tuple[int, int],
    interpolation: int = cv2.INTER_NEAREST,
) -> np.ndarray:
    """Resize an image back to the given (rows, cols).

    Args:
        image: Image to resize
        size: Target (rows, cols)
        interpolation: OpenCV interpolation flag (default: nearest, keeps
            binary images binary)

    Returns:
        Resized image (or the original if already at that size)
    """
    rows, cols = size
    if get_image_size(image) == (rows, cols):
        return image

    logger.debug(f"Restoring geometry from {get_image_size(image)} to {size}")
    return cv2.resize(image, (cols, rows), interpolation=interpolation)


def to_uint8(image: np.ndarray) -> np.ndarray:
    """Convert an image to 8-bit depth with rounding and saturation."""
    if image.dtype == np.uint8:
        return image
    if np.issubdtype(image.dtype, np.floating):
        image = np.rint(image)
    return np.clip(image, 0, 255).astype(np.uint8)
