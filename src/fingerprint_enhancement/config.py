"""Configuration for the fingerprint enhancement pipeline.

The pipeline options are gathered in a single immutable ``PipelineConfig`` that
is built once per run and passed explicitly to every stage. Tuning constants of
the reference Gabor engine are plain module-level constants.
"""

import dataclasses
from dataclasses import dataclass
from pathlib import Path

import yaml

from fingerprint_enhancement.errors import ConfigurationError

# ============================================================================
# BORDER PROTOCOL
# ============================================================================

# Margin shared by padding and unpadding so that cropping undoes padding
BORDER_MARGIN: int = 20
BORDER_COLOR: tuple[int, int, int] = (255, 255, 255)  # White, BGR

# ============================================================================
# ADAPTIVE DOWNSAMPLING
# ============================================================================

DOWNSAMPLE_FACTOR: float = 0.9
DEFAULT_MIN_ROWS: int = 1000
DEFAULT_MIN_COLS: int = 1000

# ============================================================================
# GABOR ENGINE
# ============================================================================

ENGINE_BLOCK_SIZE: int = 16  # Block size for segmentation and orientation
SEGMENTATION_STD_THRESHOLD: float = 0.1  # Block std on the normalized image
GRADIENT_SIGMA: float = 1.0  # Smoothing before gradient computation
ORIENTATION_BLOCK_SIGMA: float = 7.0  # Window of the gradient covariance
ORIENTATION_SMOOTH_SIGMA: float = 7.0  # Smoothing of the doubled-angle field
FREQUENCY_WINDOW: int = 32  # Window used for the block ridge frequency

# Ridge frequency (cycles per pixel) accepted from the block estimate
RIDGE_FREQUENCY_MIN: float = 1.0 / 15.0
RIDGE_FREQUENCY_MAX: float = 1.0 / 3.0
RIDGE_FREQUENCY_DEFAULT: float = 0.11

GABOR_ORIENTATIONS: int = 16  # Number of quantized filter orientations
GABOR_SIGMA_FACTOR: float = 0.65  # Gaussian envelope sigma relative to wavelength
GABOR_ASPECT_RATIO: float = 1.0

# ============================================================================
# OUTPUT
# ============================================================================

DEFAULT_OUTPUT_IMAGE = Path("out.png")

_FLAG_OPTIONS = (
    "show",
    "downsize",
    "save",
    "postprocess",
    "verbose",
    "restore_geometry",
)
_INTEGER_OPTIONS = ("min_rows", "min_cols", "margin")


def _is_integer(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class PipelineConfig:
    """Options of a single enhancement run."""

    input_image: Path
    output_image: Path = DEFAULT_OUTPUT_IMAGE
    show: bool = False
    downsize: bool = False
    save: bool = True
    postprocess: bool = True
    min_rows: int = DEFAULT_MIN_ROWS
    min_cols: int = DEFAULT_MIN_COLS
    verbose: bool = False
    restore_geometry: bool = True  # Inverse-scale downsampled results
    margin: int = BORDER_MARGIN
    border_color: tuple[int, int, int] = BORDER_COLOR
    downsample_factor: float = DOWNSAMPLE_FACTOR
    export_artifacts_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.input_image is None or str(self.input_image) == "":
            raise ConfigurationError("The input image has to be specified")
        if not isinstance(self.input_image, (str, Path)):
            raise ConfigurationError(
                f"input_image must be a path, got {self.input_image!r}"
            )
        for name in _FLAG_OPTIONS:
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(
                    f"{name} must be true or false, got {getattr(self, name)!r}"
                )
        for name in _INTEGER_OPTIONS:
            if not _is_integer(getattr(self, name)):
                raise ConfigurationError(
                    f"{name} must be an integer, got {getattr(self, name)!r}"
                )
        if isinstance(self.downsample_factor, bool) or not isinstance(
            self.downsample_factor, (int, float)
        ):
            raise ConfigurationError(
                f"downsample_factor must be a number, got {self.downsample_factor!r}"
            )
        if self.margin < 0:
            raise ConfigurationError(f"margin must be non-negative, got {self.margin}")
        if not (0.0 < self.downsample_factor < 1.0):
            raise ConfigurationError(
                f"downsample_factor must be in (0, 1), got {self.downsample_factor}"
            )
        if (
            isinstance(self.border_color, str)
            or not hasattr(self.border_color, "__len__")
            or len(self.border_color) != 3
            or not all(_is_integer(c) for c in self.border_color)
        ):
            raise ConfigurationError(
                f"border_color must hold 3 integer channels, got {self.border_color!r}"
            )

        # Normalize path-like values so callers can pass plain strings
        object.__setattr__(self, "input_image", Path(self.input_image))
        object.__setattr__(self, "output_image", Path(self.output_image))
        if self.export_artifacts_dir is not None:
            object.__setattr__(
                self, "export_artifacts_dir", Path(self.export_artifacts_dir)
            )
        object.__setattr__(
            self, "border_color", tuple(int(c) for c in self.border_color)
        )

    @classmethod
    def from_mapping(cls, mapping: dict) -> "PipelineConfig":
        """Build a config from a flat mapping of option names to values.

        Raises:
            ConfigurationError: If the mapping contains unknown options or
                the required input image is missing
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration options: {unknown}")

        if mapping.get("input_image") is None:
            raise ConfigurationError("The input image has to be specified")

        try:
            return cls(**mapping)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    def to_dict(self) -> dict:
        """Return a JSON/YAML friendly view of the options."""
        return {
            "input_image": str(self.input_image),
            "output_image": str(self.output_image),
            "show": self.show,
            "downsize": self.downsize,
            "save": self.save,
            "postprocess": self.postprocess,
            "min_rows": self.min_rows,
            "min_cols": self.min_cols,
            "verbose": self.verbose,
            "restore_geometry": self.restore_geometry,
            "margin": self.margin,
            "border_color": list(self.border_color),
            "downsample_factor": self.downsample_factor,
            "export_artifacts_dir": str(self.export_artifacts_dir)
            if self.export_artifacts_dir
            else None,
        }


def load_config_file(config_path: Path) -> dict:
    """Load option defaults from a YAML file.

    Args:
        config_path: Path to a YAML file holding a flat mapping of options

    Returns:
        Dictionary of option names to values

    Raises:
        ConfigurationError: If the file doesn't exist, can't be parsed or
            doesn't hold a mapping
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse config file: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file must contain a mapping, got {type(data).__name__}"
        )

    return data
