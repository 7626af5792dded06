"""Image geometry utilities for the fingerprint enhancement pipeline."""

from fingerprint_enhancement.images.processing import (
    downsample_image,
    get_image_size,
    iter_downsample_sizes,
    load_image,
    pad_image,
    restore_geometry,
    to_uint8,
    unpad_image,
)

__all__ = [
    "load_image",
    "get_image_size",
    "pad_image",
    "unpad_image",
    "iter_downsample_sizes",
    "downsample_image",
    "restore_geometry",
    "to_uint8",
]
