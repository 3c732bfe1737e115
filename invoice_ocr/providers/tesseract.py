"""Local Tesseract adapter.

Runs entirely on this machine: the image is decoded with Pillow, cleaned
up with OpenCV and recognized by a pooled Tesseract engine.
"""

import asyncio
import io
import shutil

import cv2
import numpy as np
import pytesseract
from PIL import Image, UnidentifiedImageError

from invoice_ocr.errors import ProviderError
from invoice_ocr.models import ImageRef, ProviderResult, ResultKind
from invoice_ocr.ocr.image_source import ImageSource
from invoice_ocr.ocr.tesseract_engine import EnginePool
from invoice_ocr.preprocessing.pipeline import PreprocessingPipeline
from invoice_ocr.utils.config import PreprocessingConfig, TesseractConfig
from invoice_ocr.utils.logger import get_logger

from .base import OCRProvider

logger = get_logger(__name__)


def decode_image(data: bytes) -> np.ndarray:
    """Decode image bytes into an RGB or grayscale array.

    Raises:
        ProviderError: If the bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img = img.convert("L" if img.mode in ("1", "L", "I;16") else "RGB")
            return np.array(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise ProviderError(f"Unreadable image: {exc}", provider="tesseract") from exc


class TesseractProvider(OCRProvider):
    """Plain-text backend backed by a shared engine pool.

    Args:
        config: Engine settings.
        image_source: Resolver for the invoice image.
        preprocessing: Cleanup steps applied before recognition.
        pool: Engine pool; one is created from ``config`` when omitted.
    """

    name = "tesseract"
    kind = ResultKind.TEXT

    def __init__(
        self,
        config: TesseractConfig,
        image_source: ImageSource,
        preprocessing: PreprocessingConfig | None = None,
        pool: EnginePool | None = None,
    ) -> None:
        self.config = config
        self.image_source = image_source
        self.pipeline = PreprocessingPipeline(preprocessing or PreprocessingConfig())
        self.pool = pool or EnginePool(config)

    def is_available(self) -> bool:
        if not self.config.enabled:
            return False
        return bool(self.config.tesseract_cmd or shutil.which("tesseract"))

    def _prepare(self, data: bytes) -> np.ndarray:
        image = decode_image(data)
        try:
            processed, _ = self.pipeline.process(image)
        except cv2.error as exc:
            raise ProviderError(f"Image preprocessing failed: {exc}", provider=self.name) from exc
        return processed

    async def _recognize(self, image_ref: ImageRef) -> ProviderResult:
        image = await self.image_source.resolve(image_ref)
        prepared = await asyncio.to_thread(self._prepare, image.data)

        try:
            result = await self.pool.recognize(prepared)
        except (pytesseract.TesseractError, RuntimeError, OSError) as exc:
            raise ProviderError(f"Tesseract recognition failed: {exc}", provider=self.name) from exc

        logger.info(
            "Tesseract: %d chars, confidence %.2f", len(result.text), result.confidence
        )
        return ProviderResult(
            provider=self.name,
            kind=self.kind,
            payload=result.text,
            native_confidence=result.confidence,
            raw_text=result.text,
        )

    async def aclose(self) -> None:
        await self.pool.aclose()
