"""Interactive display of enhancement results."""

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def show_image(image: np.ndarray, window_name: str = "End result") -> None:
    """Display an image and block until a key is pressed."""
    cv2.imshow(window_name, image)
    logger.info("Press any key to continue... ")
    cv2.waitKey()
    cv2.destroyWindow(window_name)
