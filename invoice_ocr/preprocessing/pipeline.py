"""Preprocessing pipeline run before Tesseract recognition."""

from dataclasses import dataclass

import cv2
import numpy as np

from invoice_ocr.utils.config import PreprocessingConfig
from invoice_ocr.utils.logger import get_logger

from .filters import binarize, denoise, deskew, to_gray, upscale

logger = get_logger(__name__)


@dataclass
class QualityMetrics:
    """Sharpness and contrast measured before and after preprocessing."""

    sharpness_before: float
    sharpness_after: float
    contrast_before: float
    contrast_after: float


def sharpness(gray: np.ndarray) -> float:
    """Variance of the Laplacian; low values mean a blurry photo."""
    return float(cv2.Laplacian(gray, cv2.CV_64F).var())


def contrast(gray: np.ndarray) -> float:
    """Standard deviation of pixel intensities."""
    return float(gray.std())


class PreprocessingPipeline:
    """Grayscale, upscale, denoise, deskew and binarize an invoice image.

    Args:
        config: Which steps to run and with which methods.
    """

    def __init__(self, config: PreprocessingConfig) -> None:
        self.config = config

    def process(self, image: np.ndarray) -> tuple[np.ndarray, QualityMetrics]:
        """Run the configured steps.

        Args:
            image: RGB, RGBA or grayscale image array.

        Returns:
            Tuple of (processed grayscale image, quality metrics). When
            preprocessing is disabled the grayscale image is returned as is.
        """
        gray = to_gray(image)
        metrics = QualityMetrics(
            sharpness_before=sharpness(gray),
            sharpness_after=0.0,
            contrast_before=contrast(gray),
            contrast_after=0.0,
        )

        result = gray
        if self.config.enabled:
            result = upscale(result, self.config.upscale_min_width)
            result = denoise(result, method=self.config.denoise_method)
            if self.config.deskew_enabled:
                result = deskew(result)
            result = binarize(result, method=self.config.binarize_method)

        metrics.sharpness_after = sharpness(result)
        metrics.contrast_after = contrast(result)
        logger.info(
            "Preprocessing complete: sharpness %.1f->%.1f, contrast %.1f->%.1f",
            metrics.sharpness_before,
            metrics.sharpness_after,
            metrics.contrast_before,
            metrics.contrast_after,
        )
        return result, metrics
