"""Contract of the enhancement engines consumed by the pipeline."""

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class EnhancementEngine(Protocol):
    """Capability that turns a prepared fingerprint image into ridge outputs.

    Both operations receive the padded (and possibly downsampled) working
    image and must return arrays with the same number of rows and columns.
    """

    def extract_fingerprints(self, image: np.ndarray) -> np.ndarray:
        """Return the ridge-enhanced intensity image, deterministic for a given input."""
        ...

    def compute_validity_mask(self, image: np.ndarray) -> np.ndarray:
        """Return a single-channel uint8 mask, 255 on valid ridge regions, 0 elsewhere."""
        ...
