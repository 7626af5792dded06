"""Utility functions for fingerprint enhancement.

This module provides common utilities used across the project.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)

_DEPTH_NAMES = {
    np.dtype(np.uint8): "8U",
    np.dtype(np.int8): "8S",
    np.dtype(np.uint16): "16U",
    np.dtype(np.int16): "16S",
    np.dtype(np.int32): "32S",
    np.dtype(np.float32): "32F",
    np.dtype(np.float64): "64F",
}


def get_image_type(image: np.ndarray) -> str:
    """Describe an image array with OpenCV's type naming.

    Args:
        image: Image array (H, W) or (H, W, C)

    Returns:
        Type string such as 'CV_8UC3'. Depths OpenCV doesn't know keep the
        numpy dtype name (e.g. 'CV_boolC1').

    Examples:
        >>> get_image_type(np.zeros((4, 4, 3), dtype=np.uint8))
        'CV_8UC3'
        >>> get_image_type(np.zeros((4, 4), dtype=np.float32))
        'CV_32FC1'
    """
    depth = _DEPTH_NAMES.get(image.dtype, image.dtype.name)
    channels = image.shape[2] if image.ndim == 3 else 1
    return f"CV_{depth}C{channels}"


def describe_image(image: np.ndarray) -> dict:
    """Summarize an image for stage metrics and artifact metadata."""
    return {
        "height": int(image.shape[0]),
        "width": int(image.shape[1]),
        "type": get_image_type(image),
    }
