"""Exceptions raised inside the invoice OCR pipeline.

Hierarchy:
    InvoiceOCRError (base)
    ├── ImageFetchError    the image bytes could not be retrieved
    ├── ProviderError      a backend was reachable but answered with a
    │                      failure status or an unexpected payload
    └── ExtractionError    a backend answered but no usable fields came out

None of these cross the orchestrator boundary: adapters turn the first
two into failed provider results, and the third is only reported.
"""


class InvoiceOCRError(Exception):
    """Base exception for the invoice OCR service.

    Attributes:
        message: Human-readable error message.
        details: Additional context for logs.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ImageFetchError(InvoiceOCRError):
    """The image source could not produce the image bytes."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None) -> None:
        details = {}
        if url:
            details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class ProviderError(InvoiceOCRError):
    """An OCR backend failed or returned a payload of the wrong shape."""

    def __init__(self, message: str, provider: str, details: dict | None = None) -> None:
        super().__init__(message, details)
        self.provider = provider


class ExtractionError(InvoiceOCRError):
    """Recognition succeeded but parsing produced no usable fields."""
