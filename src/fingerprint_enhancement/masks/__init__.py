"""Mask compositing utilities for fingerprint enhancement."""

from fingerprint_enhancement.masks.processing import composite, fuse_with_mask

__all__ = [
    "fuse_with_mask",
    "composite",
]
