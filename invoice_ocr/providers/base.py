"""Common interface of the OCR backend adapters.

An adapter performs one recognition call and reports the raw answer as a
``ProviderResult``. Every failure an adapter can anticipate, whether
image download, HTTP transport, a provider status or a malformed body,
becomes a failed result here, so the orchestrator never sees an
adapter exception and can move on to the next provider.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

import httpx

from invoice_ocr.errors import ImageFetchError, ProviderError
from invoice_ocr.extraction.confidence import DEFAULT_KEY_FIELDS
from invoice_ocr.extraction.invoice_parser import parse_result
from invoice_ocr.models import ExtractionOutcome, ImageRef, ProviderResult, ResultKind
from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class OCRProvider(ABC):
    """One OCR backend.

    Subclasses set ``name`` and ``kind``, may narrow ``key_fields``,
    and implement ``_recognize``.
    """

    name: str = ""
    kind: ResultKind = ResultKind.TEXT
    key_fields: Sequence[str] = DEFAULT_KEY_FIELDS
    # Native field name -> canonical field name, for structured results
    field_map: Mapping[str, str] = {}

    def is_available(self) -> bool:
        """Whether the backend is configured well enough to be tried."""
        return True

    @abstractmethod
    async def _recognize(self, image_ref: ImageRef) -> ProviderResult:
        """Call the backend.

        Raises:
            ImageFetchError: If the image cannot be retrieved.
            ProviderError: If the backend reports a failure or answers
                with an unexpected payload.
        """

    def _failure(self, error: str, raw_text: str = "") -> ProviderResult:
        return ProviderResult(provider=self.name, kind=self.kind, error=error, raw_text=raw_text)

    async def recognize(self, image_ref: ImageRef) -> ProviderResult:
        """Call the backend and report failures as a failed result.

        Args:
            image_ref: The invoice image.

        Returns:
            A result whose payload is set on success and ``None`` on failure.
        """
        try:
            return await self._recognize(image_ref)
        except ImageFetchError as exc:
            logger.warning("%s: image fetch failed: %s", self.name, exc)
            return self._failure(exc.message)
        except ProviderError as exc:
            logger.warning("%s: provider error: %s", self.name, exc)
            return self._failure(exc.message, raw_text=exc.details.get("raw_text", ""))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("%s: request failed: %s", self.name, exc)
            return self._failure(f"{self.name} request failed: {exc}")
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("%s: malformed response: %s", self.name, exc)
            return self._failure(f"{self.name} returned a malformed response: {exc}")

    async def extract(self, image_ref: ImageRef) -> ExtractionOutcome:
        """Recognize the image and parse the answer into invoice fields.

        Args:
            image_ref: The invoice image.

        Returns:
            A successful outcome with canonical fields, or a failed one
            carrying the adapter's error message.
        """
        result = await self.recognize(image_ref)
        if not result.ok:
            return ExtractionOutcome(
                success=False,
                error=result.error or f"{self.name} failed",
                raw_text=result.raw_text,
                provider=self.name,
            )

        fields = parse_result(result, self.key_fields, self.field_map)
        return ExtractionOutcome(
            success=True,
            data=fields,
            raw_text=result.raw_text,
            confidence=fields.confidence,
            provider=self.name,
            recognition_confidence=result.native_confidence,
        )

    async def aclose(self) -> None:
        """Release resources owned by the adapter."""
