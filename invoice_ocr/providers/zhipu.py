"""Zhipu GLM-OCR layout parsing adapter.

The endpoint takes the image as a base64 data URI and returns the page
as markdown in ``md_results``, which is then parsed as free text.
"""

import base64

import httpx

from invoice_ocr.errors import ProviderError
from invoice_ocr.models import ImageRef, ProviderResult, ResultKind
from invoice_ocr.ocr.image_source import ImageSource
from invoice_ocr.utils.config import ZhipuConfig
from invoice_ocr.utils.logger import get_logger

from .base import OCRProvider

logger = get_logger(__name__)

ZHIPU_KEY_FIELDS = (
    "invoice_code",
    "invoice_number",
    "invoice_date",
    "seller_name",
    "seller_tax_number",
    "buyer_name",
    "total_amount",
)


class ZhipuProvider(OCRProvider):
    """Markdown-producing backend.

    Args:
        config: Endpoint, model and API key.
        client: Shared async HTTP client.
        image_source: Resolver for the invoice image.
        timeout: Request timeout in seconds.
    """

    name = "zhipu"
    kind = ResultKind.MARKDOWN
    key_fields = ZHIPU_KEY_FIELDS

    def __init__(
        self,
        config: ZhipuConfig,
        client: httpx.AsyncClient,
        image_source: ImageSource,
        timeout: float = 30.0,
    ) -> None:
        self.config = config
        self.client = client
        self.image_source = image_source
        self.timeout = timeout

    def is_available(self) -> bool:
        return self.config.enabled and bool(self.config.api_key)

    async def _recognize(self, image_ref: ImageRef) -> ProviderResult:
        if not self.config.api_key:
            raise ProviderError(
                "Zhipu API key is not configured; set ZHIPU_API_KEY", provider=self.name
            )

        image = await self.image_source.resolve(image_ref)
        encoded = base64.b64encode(image.data).decode("ascii")
        body = {
            "model": self.config.model,
            "file": f"data:{image.mime_type};base64,{encoded}",
        }

        logger.info("Zhipu: sending %d byte image (%s)", len(image.data), image.mime_type)
        response = await self.client.post(
            self.config.api_url,
            json=body,
            headers={"Authorization": self.config.api_key},
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise ProviderError(
                f"Zhipu API error: {response.status_code} - {response.text[:200]}",
                provider=self.name,
                details={"status_code": response.status_code},
            )

        result = response.json()
        markdown = result.get("md_results") if isinstance(result, dict) else None
        if not isinstance(markdown, str) or not markdown:
            raise ProviderError("Zhipu API returned an unexpected payload", provider=self.name)

        logger.info("Zhipu: received %d chars of markdown", len(markdown))
        return ProviderResult(
            provider=self.name,
            kind=self.kind,
            payload=markdown,
            raw_text=markdown,
        )
