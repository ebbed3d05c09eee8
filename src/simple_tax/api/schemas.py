"""Pydantic v2 schemas for API request/response models."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Schema for health check response."""

    status: str
    version: str


class TaxCodeSchema(BaseModel):
    """A tax code, designated by its unique name."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)


class TaxCodesUpdate(BaseModel):
    """Tax codes to record on an invoice item named in the path."""

    tax_codes: list[TaxCodeSchema] = Field(default_factory=list)


class TaxCodesCreate(TaxCodesUpdate):
    """Tax codes to record on one item of an invoice named in the path."""

    invoice_item_id: UUID


class TaxCodesResponse(BaseModel):
    """Tax codes recorded on an invoice item, in recorded order."""

    model_config = ConfigDict(from_attributes=True)

    invoice_item_id: UUID
    invoice_id: UUID
    tax_codes: list[TaxCodeSchema]
