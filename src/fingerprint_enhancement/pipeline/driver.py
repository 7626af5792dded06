"""Pipeline driver sequencing the enhancement stages.

Data flow for one image:
1. Decode the input image
2. Pad with a white border (always) and optionally downsample
3. Run the enhancement engine
4. Fuse the enhanced image with the validity mask (or pass it through)
5. Restore the original geometry and remove the border
6. Optionally display, persist and export intermediate artifacts

Nothing is written to disk unless every stage succeeded.
"""

import logging
from pathlib import Path

import cv2
import numpy as np

from fingerprint_enhancement.config import PipelineConfig
from fingerprint_enhancement.engine import EnhancementEngine, GaborEnhancementEngine
from fingerprint_enhancement.errors import OutputWriteError
from fingerprint_enhancement.images.processing import (
    get_image_size,
    load_image,
    to_uint8,
)
from fingerprint_enhancement.pipeline.artifacts import export_pipeline_artifacts
from fingerprint_enhancement.pipeline.stages import (
    run_compositing_stage,
    run_enhancement_stage,
    run_preprocess_stage,
)
from fingerprint_enhancement.visualization import show_image

logger = logging.getLogger(__name__)


def _log_stage_banner(title: str) -> None:
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def run_pipeline(
    image: np.ndarray,
    config: PipelineConfig,
    engine: EnhancementEngine,
) -> dict:
    """Run the enhancement stages on a decoded image.

    Args:
        image: Decoded input image (H, W, 3), uint8
        config: Pipeline configuration
        engine: Enhancement engine implementation

    Returns:
        Dictionary with keys:
            - result: End result image
            - stages: List of stage dicts in pipeline order

    Raises:
        InvalidImageError: If the image carries no pixel data
        DimensionMismatchError: If the engine outputs disagree in size
        GeometryError: If the border can't be removed from the result
    """
    _log_stage_banner("STAGE 1: Preprocessing")
    stage1 = run_preprocess_stage(
        image=image,
        margin=config.margin,
        border_color=config.border_color,
        downsize=config.downsize,
        min_rows=config.min_rows,
        min_cols=config.min_cols,
        factor=config.downsample_factor,
        verbose=config.verbose,
    )

    _log_stage_banner("STAGE 2: Enhancement")
    stage2 = run_enhancement_stage(
        image=stage1["data"]["working_image"],
        engine=engine,
        compute_mask=config.postprocess,
        verbose=config.verbose,
    )

    _log_stage_banner("STAGE 3: Compositing")
    padded_size = None
    if config.downsize and config.restore_geometry:
        padded_size = get_image_size(stage1["data"]["padded_image"])
    stage3 = run_compositing_stage(
        enhanced=stage2["data"]["enhanced_image"],
        mask=stage2["data"]["mask"],
        margin=config.margin,
        postprocess=config.postprocess,
        padded_size=padded_size,
    )

    return {
        "result": stage3["data"]["result"],
        "stages": [stage1, stage2, stage3],
    }


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove partial file {path}: {e}")


def save_result(image: np.ndarray, output_path: Path) -> None:
    """Encode the end result to `output_path`.

    The image is written to a temporary sibling file first and renamed into
    place, so a failed write never leaves a partial file at `output_path`.

    Raises:
        OutputWriteError: If the image can't be encoded or written
    """
    output_path = Path(output_path)
    partial_path = output_path.with_name(
        f".{output_path.stem}.partial{output_path.suffix}"
    )

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        written = cv2.imwrite(str(partial_path), to_uint8(image))
        if not written:
            raise OutputWriteError(f"Failed to write end result to {output_path}")
        partial_path.replace(output_path)
    except cv2.error as e:
        _discard(partial_path)
        raise OutputWriteError(f"Failed to encode end result to {output_path}: {e}")
    except OSError as e:
        _discard(partial_path)
        raise OutputWriteError(f"Failed to write end result to {output_path}: {e}")
    except OutputWriteError:
        _discard(partial_path)
        raise

    logger.info(f"End result saved to {output_path}")


def run(config: PipelineConfig, engine: EnhancementEngine | None = None) -> np.ndarray:
    """Run the full pipeline for one input image.

    Args:
        config: Pipeline configuration
        engine: Enhancement engine (default: GaborEnhancementEngine)

    Returns:
        End result image

    Raises:
        FingerprintEnhancementError: On any fatal condition; the end result
            is not persisted in that case
    """
    if engine is None:
        engine = GaborEnhancementEngine(verbose=config.verbose)

    logger.info(f"Processing {config.input_image}")
    image = load_image(config.input_image)

    output = run_pipeline(image=image, config=config, engine=engine)
    result = output["result"]

    if config.show:
        show_image(result)

    if config.export_artifacts_dir is not None:
        manifest_path = export_pipeline_artifacts(
            output_dir=config.export_artifacts_dir,
            stages=output["stages"],
            input_image=str(config.input_image),
            config=config.to_dict(),
        )
        logger.info(f"Pipeline manifest saved to {manifest_path}")

    if config.save:
        save_result(result, config.output_image)

    _log_stage_banner("PIPELINE COMPLETE")
    return result
