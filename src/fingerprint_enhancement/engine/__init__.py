"""Enhancement engines for the fingerprint pipeline.

Any object implementing ``EnhancementEngine`` can be passed to the pipeline;
``GaborEnhancementEngine`` is the default.
"""

from .base import EnhancementEngine
from .gabor import GaborEnhancementEngine

__all__ = [
    "EnhancementEngine",
    "GaborEnhancementEngine",
]
