"""Exceptions raised by the fingerprint enhancement pipeline.

Every error is fatal to the current run. Library code raises them and the
command line entry point turns them into an error report and exit status 1.
"""


class FingerprintEnhancementError(Exception):
    """Base class for all pipeline errors."""


class InvalidImageError(FingerprintEnhancementError):
    """Source image is missing, unreadable or carries no pixel data."""


class GeometryError(FingerprintEnhancementError):
    """A crop or border operation would exceed the image bounds."""


class DimensionMismatchError(FingerprintEnhancementError):
    """Enhanced image and validity mask do not share the same geometry."""


class ConfigurationError(FingerprintEnhancementError):
    """A required option is absent or an option value is invalid."""


class OutputWriteError(FingerprintEnhancementError):
    """The end result could not be encoded to the output path."""


class ArtifactExportError(FingerprintEnhancementError):
    """Intermediate pipeline artifacts could not be written."""
