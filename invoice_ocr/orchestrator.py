"""Provider fallback orchestration.

Providers are tried one at a time in priority order and the first one
that produces an acceptable extraction wins. A provider that fails, times
out or falls below the acceptance threshold hands over to the next one.
"""

import asyncio
import time
from collections.abc import Mapping, Sequence

import httpx

from invoice_ocr.errors import ExtractionError
from invoice_ocr.models import ExtractionOutcome, ImageRef
from invoice_ocr.ocr.image_source import ImageSource
from invoice_ocr.providers.base import OCRProvider
from invoice_ocr.providers.qiniu import QiniuProvider
from invoice_ocr.providers.tesseract import TesseractProvider
from invoice_ocr.providers.zhipu import ZhipuProvider
from invoice_ocr.utils.config import AppConfig, load_config
from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)

AUTO = "auto"
ALL_FAILED = "all providers failed"


class FallbackOrchestrator:
    """Runs providers sequentially until one succeeds.

    Args:
        providers: Provider name to adapter.
        priority: Order in which providers are tried in auto mode.
            Names without an adapter are ignored.
        provider_timeout: Seconds allowed for one provider attempt.
        min_confidence: Outcomes scoring below this are treated as
            failures and the next provider is tried.
        client: HTTP client shared by the adapters; closed by ``aclose``.
    """

    def __init__(
        self,
        providers: Mapping[str, OCRProvider],
        priority: Sequence[str] | None = None,
        provider_timeout: float = 60.0,
        min_confidence: float = 0.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.providers = dict(providers)
        self.priority = [name for name in (priority or self.providers) if name in self.providers]
        self.provider_timeout = provider_timeout
        self.min_confidence = min_confidence
        self.client = client

    def candidates(self, provider_hint: str | None = None) -> list[OCRProvider]:
        """Select the providers to try, in order.

        Args:
            provider_hint: ``None`` or ``"auto"`` for every available
                provider in priority order, or one provider name.

        Returns:
            The providers to attempt. An explicit name is returned even
            when unconfigured so the attempt reports why it failed.

        Raises:
            KeyError: If the name matches no provider.
        """
        if provider_hint in (None, "", AUTO):
            return [
                self.providers[name]
                for name in self.priority
                if self.providers[name].is_available()
            ]
        return [self.providers[provider_hint]]

    def _check_acceptance(self, outcome: ExtractionOutcome) -> ExtractionOutcome:
        if outcome.success and outcome.confidence < self.min_confidence:
            error = ExtractionError(
                f"{outcome.provider} confidence {outcome.confidence:.2f} "
                f"below threshold {self.min_confidence:.2f}",
                details={"provider": outcome.provider},
            )
            logger.warning("%s", error)
            return ExtractionOutcome(
                success=False,
                error=error.message,
                raw_text=outcome.raw_text,
                confidence=outcome.confidence,
                provider=outcome.provider,
            )
        return outcome

    async def _attempt(self, provider: OCRProvider, image_ref: ImageRef) -> ExtractionOutcome:
        start = time.perf_counter()
        try:
            outcome = await asyncio.wait_for(
                provider.extract(image_ref), timeout=self.provider_timeout
            )
        except TimeoutError:
            logger.warning(
                "%s timed out after %.1fs", provider.name, self.provider_timeout
            )
            return ExtractionOutcome(
                success=False,
                error=f"{provider.name} timed out after {self.provider_timeout:.0f}s",
                provider=provider.name,
            )

        outcome = self._check_acceptance(outcome)
        logger.info(
            "%s attempt finished in %.2fs: success=%s",
            provider.name,
            time.perf_counter() - start,
            outcome.success,
        )
        return outcome

    async def extract_invoice(
        self, image_ref: ImageRef, provider_hint: str | None = None
    ) -> ExtractionOutcome:
        """Extract invoice fields from an image.

        Args:
            image_ref: Image URL or inline bytes.
            provider_hint: ``None``/``"auto"`` for fallback across all
                available providers, or the name of a single provider.

        Returns:
            The first accepted outcome, or an "all providers failed"
            outcome carrying the raw text of the last attempt. Individual
            provider errors are logged, not returned.
        """
        try:
            candidates = self.candidates(provider_hint)
        except KeyError:
            logger.warning("Unknown provider requested: %s", provider_hint)
            return ExtractionOutcome(success=False, error=f"unknown provider: {provider_hint}")

        if not candidates:
            logger.warning("No OCR provider is available")
            return ExtractionOutcome(success=False, error=ALL_FAILED)

        logger.info(
            "Extracting %s with %s",
            image_ref.label,
            ", ".join(p.name for p in candidates),
        )
        last: ExtractionOutcome | None = None
        for provider in candidates:
            outcome = await self._attempt(provider, image_ref)
            if outcome.success:
                return outcome
            logger.info("%s failed: %s", provider.name, outcome.error)
            last = outcome

        return ExtractionOutcome(
            success=False,
            error=ALL_FAILED,
            raw_text=last.raw_text if last is not None else "",
        )

    async def aclose(self) -> None:
        """Close every provider and the shared HTTP client."""
        for provider in self.providers.values():
            await provider.aclose()
        if self.client is not None:
            await self.client.aclose()
            self.client = None


def build_orchestrator(config: AppConfig | None = None) -> FallbackOrchestrator:
    """Wire the configured providers around one shared HTTP client.

    Args:
        config: Application configuration; loaded from the default path
            when omitted.

    Returns:
        A ready orchestrator. The caller owns it and must ``aclose`` it.
    """
    config = config or load_config()
    settings = config.orchestrator
    client = httpx.AsyncClient(timeout=settings.http_timeout)
    image_source = ImageSource(client, timeout=settings.http_timeout)

    providers: dict[str, OCRProvider] = {
        "zhipu": ZhipuProvider(config.zhipu, client, image_source, timeout=settings.http_timeout),
        "qiniu": QiniuProvider(config.qiniu, client, image_source, timeout=settings.http_timeout),
        "tesseract": TesseractProvider(config.tesseract, image_source, config.preprocessing),
    }
    return FallbackOrchestrator(
        providers,
        priority=settings.priority,
        provider_timeout=settings.provider_timeout,
        min_confidence=settings.min_confidence,
        client=client,
    )


async def extract_invoice(
    image_ref: ImageRef,
    provider_hint: str | None = None,
    config: AppConfig | None = None,
) -> ExtractionOutcome:
    """One-shot extraction with a throwaway orchestrator.

    Long-running callers should keep an orchestrator from
    ``build_orchestrator`` instead, so connections and Tesseract engines
    are reused.
    """
    orchestrator = build_orchestrator(config)
    try:
        return await orchestrator.extract_invoice(image_ref, provider_hint)
    finally:
        await orchestrator.aclose()
