"""Tesseract recognition engine and the pool that shares it.

Recognition is CPU bound and blocking, so it runs on worker threads. The
pool hands each call its own engine and takes it back only once the
worker thread has finished, even when the awaiting task was cancelled,
so no engine is ever used by two calls at once.
"""

import asyncio
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from invoice_ocr.utils.config import TesseractConfig
from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class OCRResult:
    """Recognized text of one image."""

    text: str
    confidence: float
    word_count: int
    language: str


class TesseractEngine:
    """Wrapper around a Tesseract invocation with fixed settings.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        lang: Tesseract language pack, ``chi_sim`` for Chinese invoices.
        psm: Page segmentation mode.
        timeout: Seconds before the Tesseract process is killed.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        lang: str = "chi_sim",
        psm: int = 6,
        timeout: float = 30.0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang
        self.psm = psm
        self.timeout = timeout

    def recognize(self, image: np.ndarray) -> OCRResult:
        """Recognize the text of an image.

        Args:
            image: Grayscale or RGB image array.

        Returns:
            Text and mean word confidence rescaled from 0-100 to 0-1.

        Raises:
            pytesseract.TesseractError: If Tesseract fails.
            RuntimeError: If the process exceeds the timeout.
        """
        pil_image = Image.fromarray(image)
        config = f"--psm {self.psm}"

        text = pytesseract.image_to_string(
            pil_image, lang=self.lang, config=config, timeout=self.timeout
        )
        data = pytesseract.image_to_data(
            pil_image,
            lang=self.lang,
            config=config,
            timeout=self.timeout,
            output_type=pytesseract.Output.DICT,
        )

        confidences = [
            float(conf)
            for conf, word in zip(data["conf"], data["text"])
            if float(conf) > 0 and str(word).strip()
        ]
        mean_conf = sum(confidences) / len(confidences) / 100.0 if confidences else 0.0

        logger.info(
            "Tesseract recognized %d words with mean confidence %.2f",
            len(confidences),
            mean_conf,
        )
        return OCRResult(
            text=text,
            confidence=mean_conf,
            word_count=len(confidences),
            language=self.lang,
        )


class EnginePool:
    """Fixed-size pool of engines with one worker thread per engine.

    The pool starts lazily on first use and is torn down by ``aclose``.

    Args:
        config: Engine settings and pool size.
    """

    def __init__(self, config: TesseractConfig) -> None:
        self.config = config
        self.size = max(1, config.pool_size)
        self._idle: asyncio.Queue[TesseractEngine] | None = None
        self._executor: ThreadPoolExecutor | None = None

    @property
    def started(self) -> bool:
        return self._idle is not None

    def _start(self) -> tuple[asyncio.Queue[TesseractEngine], ThreadPoolExecutor]:
        if self._idle is not None and self._executor is not None:
            return self._idle, self._executor

        idle: asyncio.Queue[TesseractEngine] = asyncio.Queue()
        for _ in range(self.size):
            idle.put_nowait(
                TesseractEngine(
                    tesseract_cmd=self.config.tesseract_cmd,
                    lang=self.config.lang,
                    psm=self.config.psm,
                    timeout=self.config.timeout,
                )
            )
        executor = ThreadPoolExecutor(max_workers=self.size, thread_name_prefix="tesseract")
        self._idle, self._executor = idle, executor
        logger.info("Started Tesseract pool with %d engines", self.size)
        return idle, executor

    async def recognize(self, image: np.ndarray) -> OCRResult:
        """Check an engine out, recognize on a worker thread, return it.

        Args:
            image: Preprocessed image array.

        Returns:
            The engine's recognition result.
        """
        idle, executor = self._start()

        engine = await idle.get()
        loop = asyncio.get_running_loop()

        def release(_: Future) -> None:
            if not loop.is_closed():
                loop.call_soon_threadsafe(idle.put_nowait, engine)

        try:
            job = executor.submit(engine.recognize, image)
        except RuntimeError:
            idle.put_nowait(engine)
            raise
        job.add_done_callback(release)
        return await asyncio.wrap_future(job)

    async def aclose(self) -> None:
        """Stop the worker threads; queued recognitions are cancelled."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            logger.info("Stopped Tesseract pool")
        self._executor = None
        self._idle = None
