"""Fingerprint Enhancement Package."""

from fingerprint_enhancement.config import PipelineConfig
from fingerprint_enhancement.engine import EnhancementEngine, GaborEnhancementEngine
from fingerprint_enhancement.pipeline import run, run_pipeline

__all__ = [
    "PipelineConfig",
    "EnhancementEngine",
    "GaborEnhancementEngine",
    "run",
    "run_pipeline",
]
