from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from uuid import UUID

from simple_tax.domain.invoices import Invoice, InvoiceItem


@dataclass
class InvoiceItemTaxCodes:
    """Tax code names recorded on one invoice item, in recorded order."""

    invoice_item_id: UUID
    invoice_id: UUID
    tax_codes: list[str] = field(default_factory=list)


class SimpleTaxService(ABC):
    @abstractmethod
    def get_additional_invoice_items(
        self, new_invoice: Invoice, tenant_id: str | None = None
    ) -> list[InvoiceItem]:
        pass


class InvoiceTaxCodesService(ABC):
    @abstractmethod
    def list_invoice_tax_codes(self, invoice_id: UUID) -> list[InvoiceItemTaxCodes]:
        pass

    @abstractmethod
    def get_tax_codes_of_invoice_item(
        self, invoice_item_id: UUID
    ) -> InvoiceItemTaxCodes | None:
        pass

    @abstractmethod
    def save_invoice_tax_codes(
        self, invoice_id: UUID, invoice_item_id: UUID, tax_codes: Sequence[str]
    ) -> bool:
        pass

    @abstractmethod
    def save_tax_codes_of_invoice_item(
        self, invoice_item_id: UUID, tax_codes: Sequence[str]
    ) -> bool:
        pass
