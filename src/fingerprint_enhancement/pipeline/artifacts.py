"""Export of intermediate pipeline artifacts for inspection and debugging.

Each stage gets a numbered directory under ``pipeline/stages/`` holding its
images as PNG and its config and metrics as JSON. A YAML manifest links all of
them together.
"""

import json
import logging
from pathlib import Path

import cv2
import numpy as np
import yaml
from PIL import Image

from fingerprint_enhancement.errors import ArtifactExportError
from fingerprint_enhancement.images.processing import to_uint8
from fingerprint_enhancement.utils import describe_image

logger = logging.getLogger(__name__)

# Image artifacts written for each stage: artifact key -> (data key, file name)
STAGE_IMAGE_ARTIFACTS = {
    "preprocessing": {
        "padded_image": ("padded_image", "padded.png"),
        "working_image": ("working_image", "working.png"),
    },
    "enhancement": {
        "enhanced_image": ("enhanced_image", "enhanced.png"),
        "mask": ("mask", "filter.png"),
    },
    "compositing": {
        "result": ("result", "result.png"),
    },
}


def _save_png(image: np.ndarray, output_path: Path) -> None:
    """Save a BGR or grayscale array as PNG."""
    image = to_uint8(image)
    if image.ndim == 3 and image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    Image.fromarray(image).save(output_path)


def get_stage_dir(output_dir: Path, stage: dict, stage_number: int) -> Path:
    """Return pipeline/stages/{number:02d}_{stage_id}/ under output_dir."""
    return output_dir / "pipeline" / "stages" / f"{stage_number:02d}_{stage['stage_id']}"


def save_stage_artifacts(output_dir: Path, stage: dict, stage_number: int) -> dict:
    """Save artifacts for a pipeline stage.

    Args:
        output_dir: Root output directory
        stage: Stage dict returned by a run_*_stage function
        stage_number: 1-based position of the stage in the pipeline

    Returns:
        Mapping of artifact key to file path relative to output_dir
    """
    stage_dir = get_stage_dir(output_dir, stage, stage_number)
    stage_dir.mkdir(parents=True, exist_ok=True)

    artifacts = {}
    images = {}
    for artifact_key, (data_key, file_name) in STAGE_IMAGE_ARTIFACTS.get(
        stage["stage_id"], {}
    ).items():
        image = stage["data"].get(data_key)
        if image is None:
            continue
        _save_png(image, stage_dir / file_name)
        artifacts[artifact_key] = str((stage_dir / file_name).relative_to(output_dir))
        images[artifact_key] = describe_image(image)

    metadata = {
        "stage_id": stage["stage_id"],
        "stage_name": stage["stage_name"],
        "description": stage["description"],
        "config": stage["config"],
        "metrics": stage["metrics"],
        "images": images,
    }
    with open(stage_dir / "metadata.json", "w") as f:
        json.dump(metadata, f, indent=2)
    artifacts["metadata"] = str((stage_dir / "metadata.json").relative_to(output_dir))

    logger.info(f"Saved artifacts to {stage_dir}")
    return artifacts


def create_pipeline_manifest(
    output_dir: Path,
    input_image: str,
    config: dict,
    stages: list[dict],
    stage_artifacts: list[dict],
) -> Path:
    """Create pipeline manifest YAML with links to all artifacts.

    Args:
        output_dir: Root output directory
        input_image: Path of the processed image
        config: Pipeline configuration as a plain dict
        stages: Stage dicts in pipeline order
        stage_artifacts: Artifact mappings returned by save_stage_artifacts

    Returns:
        Path to the manifest file
    """
    manifest = {
        "format_version": "1.0",
        "input_image": input_image,
        "config": config,
        "pipeline": {
            "stages": [],
        },
    }

    for stage_number, (stage, artifacts) in enumerate(
        zip(stages, stage_artifacts), start=1
    ):
        manifest["pipeline"]["stages"].append(
            {
                "id": stage["stage_id"],
                "name": stage["stage_name"],
                "directory": str(
                    get_stage_dir(output_dir, stage, stage_number).relative_to(output_dir)
                ),
                "artifacts": artifacts,
            }
        )

    manifest_path = output_dir / "pipeline" / "manifest.yaml"
    manifest_path.parent.mkdir(parents=True, exist_ok=True)

    with open(manifest_path, "w") as f:
        yaml.dump(manifest, f, default_flow_style=False, sort_keys=False)

    return manifest_path


def export_pipeline_artifacts(
    output_dir: Path,
    stages: list[dict],
    input_image: str,
    config: dict,
) -> Path:
    """Save every stage's artifacts and the manifest.

    Returns:
        Path to the manifest file

    Raises:
        ArtifactExportError: If a directory or file can't be written
    """
    output_dir = Path(output_dir)

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        stage_artifacts = [
            save_stage_artifacts(output_dir=output_dir, stage=stage, stage_number=number)
            for number, stage in enumerate(stages, start=1)
        ]
        return create_pipeline_manifest(
            output_dir=output_dir,
            input_image=input_image,
            config=config,
            stages=stages,
            stage_artifacts=stage_artifacts,
        )
    except OSError as e:
        raise ArtifactExportError(f"Failed to export artifacts to {output_dir}: {e}")
