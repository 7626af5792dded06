"""
Pytest configuration and fixtures for fingerprint enhancement tests.
"""

import math

import cv2
import numpy as np
import pytest


def make_ridge_image(rows: int = 160, cols: int = 120, period: float = 9.0) -> np.ndarray:
    """Synthetic fingerprint: oriented sinusoidal ridges in an ellipse on white."""
    y, x = np.mgrid[0:rows, 0:cols].astype(np.float32)
    angle = 0.5
    ridges = 127.5 + 127.5 * np.cos(
        2.0 * math.pi * (x * math.cos(angle) + y * math.sin(angle)) / period
    )

    cy, cx = rows / 2.0, cols / 2.0
    inside = ((x - cx) / (cols * 0.4)) ** 2 + ((y - cy) / (rows * 0.4)) ** 2 <= 1.0

    gray = np.where(inside, ridges, 255.0).astype(np.uint8)
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)


class FakeEngine:
    """Deterministic engine: grayscale as enhancement, non-white pixels as mask."""

    def __init__(self):
        self.calls = []

    def extract_fingerprints(self, image):
        self.calls.append("extract_fingerprints")
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    def compute_validity_mask(self, image):
        self.calls.append("compute_validity_mask")
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        return np.where(gray < 250, 255, 0).astype(np.uint8)


@pytest.fixture
def ridge_image():
    """Synthetic 160x120 BGR fingerprint image"""
    return make_ridge_image()


@pytest.fixture
def fake_engine():
    """Fake enhancement engine recording its calls"""
    return FakeEngine()


@pytest.fixture
def input_path(tmp_path, ridge_image):
    """Synthetic fingerprint written to a PNG file"""
    path = tmp_path / "finger.png"
    cv2.imwrite(str(path), ridge_image)
    return path
