"""Reference enhancement engine based on oriented Gabor filtering.

The engine follows the classic approach of Hong, Wan and Jain (1998):

1. Normalize the grayscale image to zero mean and unit variance
2. Segment the ridge region from the local standard deviation
3. Estimate the ridge orientation field from smoothed gradient covariances
4. Estimate the ridge frequency from projected gray-level signatures
5. Filter with a bank of oriented Gabor kernels and binarize the response

The output has black ridges (0) on a white background (255).
"""

import logging
import math

import cv2
import numpy as np

from fingerprint_enhancement.config import (
    ENGINE_BLOCK_SIZE,
    FREQUENCY_WINDOW,
    GABOR_ASPECT_RATIO,
    GABOR_ORIENTATIONS,
    GABOR_SIGMA_FACTOR,
    GRADIENT_SIGMA,
    ORIENTATION_BLOCK_SIGMA,
    ORIENTATION_SMOOTH_SIGMA,
    RIDGE_FREQUENCY_DEFAULT,
    RIDGE_FREQUENCY_MAX,
    RIDGE_FREQUENCY_MIN,
    SEGMENTATION_STD_THRESHOLD,
)
from fingerprint_enhancement.errors import InvalidImageError

logger = logging.getLogger(__name__)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert a BGR or grayscale image to a float32 grayscale array."""
    if image is None or image.size == 0:
        raise InvalidImageError("Cannot enhance an image without pixel data")

    if image.ndim == 3 and image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    elif image.ndim == 3 and image.shape[2] == 1:
        image = image[:, :, 0]

    return image.astype(np.float32)


def normalize_image(image: np.ndarray) -> np.ndarray:
    """Normalize to zero mean and unit standard deviation."""
    std = float(image.std())
    if std < 1e-6:
        return np.zeros_like(image, dtype=np.float32)
    return ((image - float(image.mean())) / std).astype(np.float32)


def segment_ridge_region(
    normalized: np.ndarray,
    block_size: int = ENGINE_BLOCK_SIZE,
    threshold: float = SEGMENTATION_STD_THRESHOLD,
) -> np.ndarray:
    """Separate the ridge region from the background using local deviation.

    Args:
        normalized: Zero-mean, unit-variance grayscale image
        block_size: Size of the local neighborhood
        threshold: Minimum local standard deviation of a ridge region

    Returns:
        Boolean mask, True on the ridge region

    Note:
        Applies morphological opening then closing to drop isolated blocks
        and fill small holes.
    """
    kernel = (block_size, block_size)
    local_mean = cv2.boxFilter(normalized, -1, kernel, normalize=True)
    local_sq_mean = cv2.boxFilter(normalized * normalized, -1, kernel, normalize=True)
    local_std = np.sqrt(np.maximum(local_sq_mean - local_mean**2, 0.0))

    mask = (local_std > threshold).astype(np.uint8)

    structuring = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, kernel)
    mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, structuring)
    mask = cv2.morphologyEx(mask, cv2.MORPH_CLOSE, structuring)

    return mask.astype(bool)


def estimate_orientation(
    normalized: np.ndarray,
    gradient_sigma: float = GRADIENT_SIGMA,
    block_sigma: float = ORIENTATION_BLOCK_SIGMA,
    smooth_sigma: float = ORIENTATION_SMOOTH_SIGMA,
) -> np.ndarray:
    """Estimate the dominant gradient direction at every pixel.

    Ridges run perpendicular to the returned angle, which is the direction
    Gabor stripes vary along.

    Returns:
        Angle map in radians, range [0, pi)
    """
    blurred = cv2.GaussianBlur(normalized, (0, 0), gradient_sigma)
    gx = cv2.Sobel(blurred, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(blurred, cv2.CV_32F, 0, 1, ksize=3)

    gxx = cv2.GaussianBlur(gx * gx, (0, 0), block_sigma)
    gyy = cv2.GaussianBlur(gy * gy, (0, 0), block_sigma)
    gxy = cv2.GaussianBlur(gx * gy, (0, 0), block_sigma)

    # Doubled-angle representation so opposite gradients reinforce each other
    denom = np.sqrt(gxy**2 + (gxx - gyy) ** 2) + np.finfo(np.float32).eps
    sin2 = cv2.GaussianBlur(2.0 * gxy / denom, (0, 0), smooth_sigma)
    cos2 = cv2.GaussianBlur((gxx - gyy) / denom, (0, 0), smooth_sigma)

    return np.mod(0.5 * np.arctan2(sin2, cos2), math.pi).astype(np.float32)


def estimate_block_frequency(block: np.ndarray, theta: float) -> float:
    """Estimate the ridge frequency of a block from its 1D signature.

    Pixels are projected on the gradient direction `theta` and averaged per
    integer offset; the dominant FFT peak of that signature gives the number
    of ridge cycles.

    Returns:
        Frequency in cycles per pixel, or 0.0 if no periodic signal was found
    """
    h, w = block.shape
    ys, xs = np.mgrid[0:h, 0:w].astype(np.float32)
    projection = (xs - w // 2) * math.cos(theta) + (ys - h // 2) * math.sin(theta)
    bins = np.round(projection).astype(int).ravel()
    bins -= bins.min()

    counts = np.bincount(bins)
    length = len(counts)
    if length < 8:
        return 0.0

    profile = np.bincount(bins, weights=block.ravel()) / np.maximum(counts, 1)
    profile -= profile.mean()
    if np.allclose(profile.var(), 0.0):
        return 0.0

    magnitudes = np.abs(np.fft.rfft(profile))
    magnitudes[0] = 0.0
    peak_index = int(np.argmax(magnitudes))
    if peak_index == 0:
        return 0.0

    return peak_index / float(length)


def estimate_frequency(
    normalized: np.ndarray,
    orientation: np.ndarray,
    mask: np.ndarray,
    block_size: int = ENGINE_BLOCK_SIZE,
    window: int = FREQUENCY_WINDOW,
) -> float:
    """Estimate a single ridge frequency for the whole foreground.

    Returns:
        Median of the valid block frequencies, or the configured default when
        no block produced a usable estimate
    """
    h, w = normalized.shape
    half = window // 2
    frequencies = []

    for y0 in range(0, h - block_size + 1, block_size):
        for x0 in range(0, w - block_size + 1, block_size):
            if not mask[y0 : y0 + block_size, x0 : x0 + block_size].all():
                continue

            cy = y0 + block_size // 2
            cx = x0 + block_size // 2
            if cy - half < 0 or cx - half < 0 or cy + half > h or cx + half > w:
                continue

            block = normalized[cy - half : cy + half, cx - half : cx + half]
            freq = estimate_block_frequency(block, float(orientation[cy, cx]))
            if RIDGE_FREQUENCY_MIN <= freq <= RIDGE_FREQUENCY_MAX:
                frequencies.append(freq)

    if not frequencies:
        logger.debug("No valid block frequency, using the default ridge frequency")
        return RIDGE_FREQUENCY_DEFAULT

    return float(np.median(frequencies))


def gabor_filter(
    normalized: np.ndarray,
    orientation: np.ndarray,
    frequency: float,
    num_orientations: int = GABOR_ORIENTATIONS,
) -> np.ndarray:
    """Filter each pixel with the Gabor kernel closest to its orientation.

    Returns:
        Filter response (float32), negative on ridges
    """
    wavelength = 1.0 / frequency
    sigma = GABOR_SIGMA_FACTOR * wavelength
    ksize = 2 * int(round(3 * sigma)) + 1

    step = math.pi / num_orientations
    bins = np.round(orientation / step).astype(int) % num_orientations

    response = np.zeros_like(normalized, dtype=np.float32)
    for index in np.unique(bins):
        kernel = cv2.getGaborKernel(
            (ksize, ksize),
            sigma,
            index * step,
            wavelength,
            GABOR_ASPECT_RATIO,
            0,
            ktype=cv2.CV_32F,
        )
        kernel -= kernel.mean()
        filtered = cv2.filter2D(normalized, cv2.CV_32F, kernel)
        selected = bins == index
        response[selected] = filtered[selected]

    return response


class GaborEnhancementEngine:
    """Oriented Gabor filtering engine.

    Args:
        block_size: Neighborhood size for segmentation and frequency estimation
        segmentation_threshold: Minimum local deviation of the ridge region
        num_orientations: Number of orientations in the Gabor filter bank
        verbose: Log the estimated ridge parameters at INFO
    """

    def __init__(
        self,
        block_size: int = ENGINE_BLOCK_SIZE,
        segmentation_threshold: float = SEGMENTATION_STD_THRESHOLD,
        num_orientations: int = GABOR_ORIENTATIONS,
        verbose: bool = False,
    ) -> None:
        self.block_size = block_size
        self.segmentation_threshold = segmentation_threshold
        self.num_orientations = num_orientations
        self.verbose = verbose

    def _segment(self, normalized: np.ndarray) -> np.ndarray:
        return segment_ridge_region(
            normalized,
            block_size=self.block_size,
            threshold=self.segmentation_threshold,
        )

    def extract_fingerprints(self, image: np.ndarray) -> np.ndarray:
        """Return the binarized ridge image (ridges 0, valleys 255), uint8."""
        normalized = normalize_image(to_grayscale(image))
        mask = self._segment(normalized)
        orientation = estimate_orientation(normalized)
        frequency = estimate_frequency(
            normalized, orientation, mask, block_size=self.block_size
        )

        log = logger.info if self.verbose else logger.debug
        log(
            f"Ridge frequency {frequency:.4f} cycles/px "
            f"(wavelength {1.0 / frequency:.2f}px)"
        )

        response = gabor_filter(
            normalized, orientation, frequency, num_orientations=self.num_orientations
        )
        return np.where(response < 0, 0, 255).astype(np.uint8)

    def compute_validity_mask(self, image: np.ndarray) -> np.ndarray:
        """Return the ridge-region mask, 255 on the foreground, uint8."""
        normalized = normalize_image(to_grayscale(image))
        return self._segment(normalized).astype(np.uint8) * 255
