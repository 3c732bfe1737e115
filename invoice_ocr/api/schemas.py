"""Pydantic request/response schemas for the FastAPI endpoints.

Invoice fields are exchanged with their canonical camelCase names.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProviderName(StrEnum):
    """Provider selection accepted by the extraction endpoints."""

    AUTO = "auto"
    ZHIPU = "zhipu"
    QINIU = "qiniu"
    TESSERACT = "tesseract"


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InvoiceItemResponse(CamelModel):
    """One line item of the invoice table."""

    name: str
    quantity: float | None = None
    unit_price: float | None = None
    amount: float | None = None
    tax_rate: float | None = None
    tax_amount: float | None = None


class InvoiceFieldsResponse(CamelModel):
    """Canonical invoice record."""

    invoice_code: str = ""
    invoice_number: str = ""
    invoice_date: str = ""
    seller_name: str = ""
    seller_tax_number: str = ""
    buyer_name: str = ""
    buyer_tax_number: str = ""
    total_amount: str = ""
    total_sum: str = ""
    tax_amount: str = ""
    check_code: str = ""
    items: list[InvoiceItemResponse] = Field(default_factory=list)
    confidence: float = 0.0


class ExtractionResponse(BaseModel):
    """Response schema for a single extraction request."""

    success: bool
    document_id: str
    filename: str | None = None
    task_id: str | None = None
    data: InvoiceFieldsResponse | None = None
    error: str | None = None
    raw_text: str = ""
    confidence: float = 0.0
    provider: str | None = None
    recognition_confidence: float | None = None
    processing_time_ms: float


class UrlExtractionRequest(CamelModel):
    """Extraction of an image already stored behind a URL."""

    file_url: str
    file_name: str | None = None
    task_id: str | None = None
    provider: ProviderName = ProviderName.AUTO


class BatchItemResponse(BaseModel):
    """Response schema for a single item in a batch extraction."""

    filename: str
    result: ExtractionResponse | None = None
    error: str | None = None


class BatchExtractionResponse(BaseModel):
    """Response schema for batch extraction of multiple images."""

    success: bool
    total_documents: int
    successful: int
    failed: int
    results: list[BatchItemResponse]


class ProviderInfo(BaseModel):
    """Configured provider and whether auto mode will try it."""

    name: str
    kind: str
    available: bool
    priority: int | None = None


class ProvidersResponse(BaseModel):
    """Response schema listing the configured providers."""

    providers: list[ProviderInfo]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    providers: list[str]
