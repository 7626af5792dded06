"""Pipeline stages for fingerprint enhancement.

This module contains the stages that take a decoded image through padding,
downsampling, enhancement and compositing.
"""

from .compositing import run_compositing_stage
from .enhancement import run_enhancement_stage
from .preprocess import run_preprocess_stage

__all__ = [
    "run_preprocess_stage",
    "run_enhancement_stage",
    "run_compositing_stage",
]
