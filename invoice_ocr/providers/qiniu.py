"""Qiniu VAT invoice recognition adapter.

Qiniu segments the invoice itself and answers with named fields, so its
result only needs renaming and normalization.
"""

import base64
import hashlib
import hmac
import json
from urllib.parse import urlparse

import httpx

from invoice_ocr.errors import ProviderError
from invoice_ocr.models import ImageRef, ProviderResult, ResultKind
from invoice_ocr.ocr.image_source import ImageSource
from invoice_ocr.utils.config import QiniuConfig
from invoice_ocr.utils.logger import get_logger

from .base import OCRProvider

logger = get_logger(__name__)

QINIU_FIELD_MAP = {
    "InvoiceCode": "invoice_code",
    "InvoiceNum": "invoice_number",
    "InvoiceDate": "invoice_date",
    "SellerName": "seller_name",
    "SellerRegisterNum": "seller_tax_number",
    "BuyerName": "buyer_name",
    "BuyerRegisterNum": "buyer_tax_number",
    "TotalAmount": "total_amount",
    "TotalTax": "tax_amount",
    "CheckCode": "check_code",
}


def sign_request(access_key: str, secret_key: str, url: str, body: str) -> str:
    """Build the ``Authorization`` header value for a Qiniu POST.

    Args:
        access_key: Qiniu access key.
        secret_key: Qiniu secret key.
        url: Full request URL.
        body: The exact JSON body that will be sent.

    Returns:
        ``"Qiniu <access_key>:<signature>"``.
    """
    host = urlparse(url).netloc
    signing_str = f"{url}\nPOST\n{body}\nHost: {host}\nContent-Type:application/json"
    encoded = base64.b64encode(signing_str.encode("utf-8"))
    digest = hmac.new(secret_key.encode("utf-8"), encoded, hashlib.sha1).digest()
    signature = base64.urlsafe_b64encode(digest).decode("ascii")
    return f"Qiniu {access_key}:{signature}"


class QiniuProvider(OCRProvider):
    """Structured-field backend.

    Args:
        config: Endpoint and credentials.
        client: Shared async HTTP client.
        image_source: Resolver used for inline images, which are sent as
            data URIs. URL references are passed to Qiniu as-is.
        timeout: Request timeout in seconds.
    """

    name = "qiniu"
    kind = ResultKind.STRUCTURED
    field_map = QINIU_FIELD_MAP
    key_fields = tuple(QINIU_FIELD_MAP.values())

    def __init__(
        self,
        config: QiniuConfig,
        client: httpx.AsyncClient,
        image_source: ImageSource,
        timeout: float = 30.0,
    ) -> None:
        self.config = config
        self.client = client
        self.image_source = image_source
        self.timeout = timeout

    def is_available(self) -> bool:
        return self.config.enabled and bool(self.config.access_key and self.config.secret_key)

    async def _image_uri(self, image_ref: ImageRef) -> str:
        if image_ref.url is not None:
            return image_ref.url
        image = await self.image_source.resolve(image_ref)
        encoded = base64.b64encode(image.data).decode("ascii")
        return f"data:{image.mime_type};base64,{encoded}"

    async def _recognize(self, image_ref: ImageRef) -> ProviderResult:
        access_key, secret_key = self.config.access_key, self.config.secret_key
        if not access_key or not secret_key:
            raise ProviderError(
                "Qiniu credentials are not configured; "
                "set QINIU_ACCESS_KEY and QINIU_SECRET_KEY",
                provider=self.name,
            )

        uri = await self._image_uri(image_ref)
        body = json.dumps({"data": {"uri": uri}}, separators=(",", ":"), ensure_ascii=False)
        headers = {
            "Content-Type": "application/json",
            "Authorization": sign_request(access_key, secret_key, self.config.api_url, body),
        }

        logger.info("Qiniu: recognizing %s", image_ref.label)
        response = await self.client.post(
            self.config.api_url,
            content=body.encode("utf-8"),
            headers=headers,
            timeout=self.timeout,
        )

        result = response.json()
        if not isinstance(result, dict):
            raise ProviderError("Qiniu API returned an unexpected payload", provider=self.name)
        if result.get("code") != 0 and result.get("status_code") != 0:
            message = result.get("message") or result.get("error") or "recognition failed"
            raise ProviderError(
                f"Qiniu OCR failed: {message}",
                provider=self.name,
                details={"status_code": response.status_code},
            )

        fields = result.get("data")
        if not isinstance(fields, dict):
            raise ProviderError("Qiniu API returned no invoice fields", provider=self.name)

        logger.info("Qiniu: received %d fields", len(fields))
        return ProviderResult(
            provider=self.name,
            kind=self.kind,
            payload=fields,
            raw_text=json.dumps(fields, ensure_ascii=False),
        )
