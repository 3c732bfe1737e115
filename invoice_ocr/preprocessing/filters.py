"""OpenCV filters that prepare invoice photos for local recognition.

Invoice photos are usually shot at an angle on a desk, with uneven light
and faint dot-matrix print, so each filter works on a grayscale copy.
"""

import cv2
import numpy as np

from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Return a single-channel copy of an RGB, RGBA or grayscale image."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def upscale(image: np.ndarray, min_width: int) -> np.ndarray:
    """Enlarge narrow scans so CJK strokes span enough pixels.

    Args:
        image: Grayscale image.
        min_width: Target width; wider images are returned unchanged.

    Returns:
        The image, scaled with cubic interpolation when it was too narrow.
    """
    height, width = image.shape[:2]
    if width == 0 or width >= min_width:
        return image
    factor = min_width / width
    logger.debug("Upscaling %dx%d by %.2f", width, height, factor)
    return cv2.resize(
        image,
        (min_width, max(1, round(height * factor))),
        interpolation=cv2.INTER_CUBIC,
    )


def denoise(image: np.ndarray, method: str = "bilateral") -> np.ndarray:
    """Smooth sensor noise while keeping glyph edges.

    Args:
        image: Grayscale image.
        method: ``"bilateral"`` or ``"gaussian"``.

    Returns:
        Filtered image.

    Raises:
        ValueError: If the method is unknown.
    """
    if method == "bilateral":
        return cv2.bilateralFilter(image, 9, 75, 75)
    if method == "gaussian":
        return cv2.GaussianBlur(image, (3, 3), 0)
    raise ValueError(f"Unsupported denoise method: {method}")


def estimate_skew(image: np.ndarray) -> float:
    """Estimate page rotation in degrees from the table ruling lines.

    Returns:
        Median angle of long near-horizontal lines, or 0.0 if none.
    """
    edges = cv2.Canny(image, 50, 150, apertureSize=3)
    lines = cv2.HoughLinesP(edges, 1, np.pi / 180, 100, minLineLength=100, maxLineGap=10)
    if lines is None:
        return 0.0

    angles = [
        float(np.degrees(np.arctan2(y2 - y1, x2 - x1)))
        for x1, y1, x2, y2 in lines[:, 0]
    ]
    # Vertical rules of the item table say nothing about page rotation
    horizontal = [a for a in angles if abs(a) < 45]
    if not horizontal:
        return 0.0
    return float(np.median(horizontal))


def deskew(image: np.ndarray, angle_threshold: float = 0.5) -> np.ndarray:
    """Rotate the page level when its skew exceeds the threshold."""
    angle = estimate_skew(image)
    if abs(angle) < angle_threshold:
        return image

    height, width = image.shape[:2]
    matrix = cv2.getRotationMatrix2D((width // 2, height // 2), angle, 1.0)
    logger.info("Correcting skew of %.2f degrees", angle)
    return cv2.warpAffine(
        image,
        matrix,
        (width, height),
        flags=cv2.INTER_CUBIC,
        borderMode=cv2.BORDER_REPLICATE,
    )


def binarize(image: np.ndarray, method: str = "otsu") -> np.ndarray:
    """Threshold a grayscale image to black text on white.

    Args:
        image: Grayscale image.
        method: ``"otsu"`` for evenly lit scans, ``"adaptive"`` for
            photos with shadows.

    Returns:
        Binary image with values 0 and 255.

    Raises:
        ValueError: If the method is unknown.
    """
    if method == "otsu":
        _, binary = cv2.threshold(image, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return binary
    if method == "adaptive":
        return cv2.adaptiveThreshold(
            image, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 31, 10
        )
    raise ValueError(f"Unsupported binarize method: {method}")
