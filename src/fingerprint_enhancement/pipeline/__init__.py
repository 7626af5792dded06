"""Pipeline module for fingerprint enhancement.

This module provides the end-to-end pipeline turning a fingerprint photograph
into a binarized ridge image with the geometry of the input.
"""

from .driver import run, run_pipeline, save_result
from .stages import (
    run_compositing_stage,
    run_enhancement_stage,
    run_preprocess_stage,
)

__all__ = [
    "run",
    "run_pipeline",
    "save_result",
    "run_preprocess_stage",
    "run_enhancement_stage",
    "run_compositing_stage",
]
