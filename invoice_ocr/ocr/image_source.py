"""Resolves image references to bytes.

Uploaded images arrive inline; stored images arrive as URLs and are
downloaded through the shared HTTP client.
"""

import io

import httpx
from PIL import Image, UnidentifiedImageError

from invoice_ocr.errors import ImageFetchError
from invoice_ocr.models import ImagePayload, ImageRef
from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"

_PIL_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "TIFF": "image/tiff",
    "BMP": "image/bmp",
    "WEBP": "image/webp",
}


def mime_from_content_type(content_type: str | None) -> str:
    """Pick png or jpeg from a response content type, defaulting to jpeg."""
    content_type = (content_type or "").lower()
    if "png" in content_type:
        return "image/png"
    return DEFAULT_MIME_TYPE


def sniff_mime_type(data: bytes) -> str:
    """Detect the mime type of inline image bytes with Pillow.

    Returns:
        The detected type, or jpeg when Pillow cannot tell.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            return _PIL_MIME_TYPES.get(img.format or "", DEFAULT_MIME_TYPE)
    except (UnidentifiedImageError, OSError):
        return DEFAULT_MIME_TYPE


class ImageSource:
    """Turns an ``ImageRef`` into bytes plus mime type.

    Args:
        client: Shared async HTTP client used for downloads.
        timeout: Per-download timeout in seconds.
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = 30.0) -> None:
        self.client = client
        self.timeout = timeout

    async def resolve(self, ref: ImageRef) -> ImagePayload:
        """Fetch the image bytes behind a reference.

        Args:
            ref: Inline bytes or a URL.

        Returns:
            Image bytes and mime type.

        Raises:
            ImageFetchError: If the download fails or returns no bytes.
        """
        if ref.data is not None:
            return ImagePayload(
                data=ref.data,
                mime_type=ref.mime_type or sniff_mime_type(ref.data),
            )

        url = ref.url or ""
        logger.info("Downloading image from %s", url)
        try:
            response = await self.client.get(url, timeout=self.timeout, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ImageFetchError(f"Failed to download image: {exc}", url=url) from exc

        if response.status_code >= 400:
            raise ImageFetchError(
                f"Failed to download image: {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        if not response.content:
            raise ImageFetchError("Downloaded image is empty", url=url)

        mime_type = ref.mime_type or mime_from_content_type(
            response.headers.get("content-type")
        )
        logger.info("Image downloaded: %d bytes (%s)", len(response.content), mime_type)
        return ImagePayload(data=response.content, mime_type=mime_type)
