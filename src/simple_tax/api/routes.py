"""API routes for reading and editing tax codes of invoice items."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from simple_tax import __version__
from simple_tax.api.schemas import (
    HealthResponse,
    TaxCodeSchema,
    TaxCodesCreate,
    TaxCodesResponse,
    TaxCodesUpdate,
)
from simple_tax.container import get_invoice_tax_codes_service
from simple_tax.services.interfaces import InvoiceItemTaxCodes, InvoiceTaxCodesService

PLUGIN_PREFIX = "/plugins/simple-tax"

health_router = APIRouter(tags=["health"])
invoice_router = APIRouter(prefix=f"{PLUGIN_PREFIX}/invoices", tags=["tax codes"])
invoice_item_router = APIRouter(
    prefix=f"{PLUGIN_PREFIX}/invoiceItems", tags=["tax codes"]
)

TaxCodesServiceDep = Annotated[
    InvoiceTaxCodesService, Depends(get_invoice_tax_codes_service)
]


def _to_response(tax_codes: InvoiceItemTaxCodes) -> TaxCodesResponse:
    return TaxCodesResponse(
        invoice_item_id=tax_codes.invoice_item_id,
        invoice_id=tax_codes.invoice_id,
        tax_codes=[TaxCodeSchema(name=name) for name in tax_codes.tax_codes],
    )


@health_router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    return HealthResponse(status="healthy", version=__version__)


@invoice_router.get("/{invoice_id}/taxCodes", response_model=list[TaxCodesResponse])
def list_invoice_tax_codes(
    invoice_id: UUID, service: TaxCodesServiceDep
) -> list[TaxCodesResponse]:
    """List the tax codes of every item of an invoice that has some."""
    return [_to_response(codes) for codes in service.list_invoice_tax_codes(invoice_id)]


@invoice_router.post("/{invoice_id}/taxCodes", status_code=status.HTTP_201_CREATED)
def save_invoice_tax_codes(
    invoice_id: UUID, payload: TaxCodesCreate, service: TaxCodesServiceDep
) -> None:
    saved = service.save_invoice_tax_codes(
        invoice_id,
        payload.invoice_item_id,
        [code.name for code in payload.tax_codes],
    )
    if not saved:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot save tax codes of invoice item {payload.invoice_item_id}",
        )


@invoice_item_router.get("/{invoice_item_id}/taxCodes", response_model=TaxCodesResponse)
def get_tax_codes_of_invoice_item(
    invoice_item_id: UUID, service: TaxCodesServiceDep
) -> TaxCodesResponse:
    tax_codes = service.get_tax_codes_of_invoice_item(invoice_item_id)
    if tax_codes is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No tax codes on invoice item {invoice_item_id}",
        )
    return _to_response(tax_codes)


@invoice_item_router.put("/{invoice_item_id}/taxCodes", status_code=status.HTTP_201_CREATED)
def save_tax_codes_of_invoice_item(
    invoice_item_id: UUID, payload: TaxCodesUpdate, service: TaxCodesServiceDep
) -> None:
    """Replace the tax codes recorded on an invoice item."""
    saved = service.save_tax_codes_of_invoice_item(
        invoice_item_id, [code.name for code in payload.tax_codes]
    )
    if not saved:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot save tax codes of invoice item {invoice_item_id}",
        )
