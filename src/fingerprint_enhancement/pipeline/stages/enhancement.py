"""Enhancement stage delegating to the configured enhancement engine."""

import logging

import numpy as np

from fingerprint_enhancement.engine.base import EnhancementEngine
from fingerprint_enhancement.errors import DimensionMismatchError
from fingerprint_enhancement.utils import get_image_type

logger = logging.getLogger(__name__)


def run_enhancement_stage(
    image: np.ndarray,
    engine: EnhancementEngine,
    compute_mask: bool = True,
    verbose: bool = False,
) -> dict:
    """Run enhancement stage.

    The validity mask is only requested from the engine when it will be used
    for compositing.

    Args:
        image: Working image (padded, possibly downsampled)
        engine: Enhancement engine implementation
        compute_mask: Whether to compute the validity mask
        verbose: Log the engine output types at INFO

    Returns:
        Stage dict with structure:
        {
            "stage_id": "enhancement",
            "stage_name": "Enhancement",
            "description": "Enhance ridges and compute the validity mask",
            "config": {"engine": str, "compute_mask": bool},
            "metrics": {
                "enhanced_type": str,
                "mask_type": str | None,
                "foreground_ratio": float | None
            },
            "data": {
                "enhanced_image": np.ndarray,
                "mask": np.ndarray | None
            }
        }

    Raises:
        DimensionMismatchError: If the engine output doesn't have the
            geometry of the working image
    """
    engine_name = type(engine).__name__
    logger.info(f"Enhancing {image.shape[0]}x{image.shape[1]} image with {engine_name}")

    enhanced = engine.extract_fingerprints(image)
    if enhanced.shape[:2] != image.shape[:2]:
        raise DimensionMismatchError(
            f"{engine_name} returned an enhanced image of size {enhanced.shape[:2]} "
            f"for an input of size {image.shape[:2]}"
        )

    mask = None
    foreground_ratio = None
    if compute_mask:
        mask = engine.compute_validity_mask(image)
        foreground_ratio = float(np.count_nonzero(mask)) / float(mask.size)
        logger.info(f"Validity mask covers {foreground_ratio:.1%} of the image")

    log = logger.info if verbose else logger.debug
    log(f"Type of the image  : {get_image_type(enhanced)}")
    if mask is not None:
        log(f"Type of the filter : {get_image_type(mask)}")

    # Return standardized stage dict
    return {
        "stage_id": "enhancement",
        "stage_name": "Enhancement",
        "description": "Enhance ridges and compute the validity mask",
        "config": {
            "engine": engine_name,
            "compute_mask": compute_mask,
        },
        "metrics": {
            "enhanced_type": get_image_type(enhanced),
            "mask_type": get_image_type(mask) if mask is not None else None,
            "foreground_ratio": foreground_ratio,
        },
        "data": {
            "enhanced_image": enhanced,
            "mask": mask,
        },
    }
