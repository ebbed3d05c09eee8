"""Manual reading and editing of the tax codes recorded on invoice items.

Unlike tax computations, which never override a recorded tax code, saving
here replaces whatever was recorded. The next tax computation then adjusts
existing tax items to the new codes.
"""

from collections.abc import Sequence
from uuid import UUID

from simple_tax.domain.invoices import Invoice
from simple_tax.domain.tax_codes import TAX_CODES_FIELD_NAME, Tag
from simple_tax.exceptions import InvoiceNotFoundError, TagStoreError
from simple_tax.logging_config import get_logger
from simple_tax.repositories.interfaces import InvoiceRepository, TagRepository
from simple_tax.services.interfaces import InvoiceItemTaxCodes, InvoiceTaxCodesService
from simple_tax.services.tax_codes import join_tax_codes, split_tax_codes

logger = get_logger(__name__)


class InvoiceTaxCodesServiceImpl(InvoiceTaxCodesService):
    def __init__(self, invoice_repo: InvoiceRepository, tag_repo: TagRepository) -> None:
        self._invoice_repo = invoice_repo
        self._tag_repo = tag_repo

    def list_invoice_tax_codes(self, invoice_id: UUID) -> list[InvoiceItemTaxCodes]:
        """Tax codes of every item of an invoice that has some.

        Raises:
            InvoiceNotFoundError: If the invoice does not exist.
        """
        invoice = self._invoice_repo.get(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)

        tax_codes: list[InvoiceItemTaxCodes] = []
        for item in invoice.items:
            item_tax_codes = self._fetch_tax_codes_of_invoice_item(invoice.id, item.id)
            if item_tax_codes is not None:
                tax_codes.append(item_tax_codes)
        return tax_codes

    def get_tax_codes_of_invoice_item(
        self, invoice_item_id: UUID
    ) -> InvoiceItemTaxCodes | None:
        invoice = self._invoice_repo.get_by_item(invoice_item_id)
        if invoice is None:
            logger.debug("invoice_of_item_not_found", item_id=str(invoice_item_id))
            return None
        return self._fetch_tax_codes_of_invoice_item(invoice.id, invoice_item_id)

    def save_invoice_tax_codes(
        self, invoice_id: UUID, invoice_item_id: UUID, tax_codes: Sequence[str]
    ) -> bool:
        invoice = self._invoice_repo.get(invoice_id)
        if invoice is None or invoice.find_item(invoice_item_id) is None:
            logger.warning(
                "invoice_item_not_in_invoice",
                invoice_id=str(invoice_id),
                item_id=str(invoice_item_id),
            )
            return False
        return self._save(invoice, invoice_item_id, tax_codes)

    def save_tax_codes_of_invoice_item(
        self, invoice_item_id: UUID, tax_codes: Sequence[str]
    ) -> bool:
        invoice = self._invoice_repo.get_by_item(invoice_item_id)
        if invoice is None:
            logger.warning("invoice_of_item_not_found", item_id=str(invoice_item_id))
            return False
        return self._save(invoice, invoice_item_id, tax_codes)

    def _save(self, invoice: Invoice, invoice_item_id: UUID, tax_codes: Sequence[str]) -> bool:
        field_value = join_tax_codes(tax_codes)
        if not field_value:
            logger.warning("no_tax_codes_to_save", item_id=str(invoice_item_id))
            return False
        tag = Tag(
            object_id=invoice_item_id,
            field_value=field_value,
            field_name=TAX_CODES_FIELD_NAME,
            account_id=invoice.account_id,
        )
        try:
            self._tag_repo.save(tag)
        except TagStoreError:
            logger.error(
                "tax_codes_save_failed",
                item_id=str(invoice_item_id),
                tax_codes=tag.field_value,
                exc_info=True,
            )
            return False
        logger.info(
            "tax_codes_saved", item_id=str(invoice_item_id), tax_codes=tag.field_value
        )
        return True

    def _fetch_tax_codes_of_invoice_item(
        self, invoice_id: UUID, invoice_item_id: UUID
    ) -> InvoiceItemTaxCodes | None:
        tag = self._tag_repo.get(TAX_CODES_FIELD_NAME, invoice_item_id)
        if tag is None:
            return None
        names = split_tax_codes(tag.field_value)
        if not names:
            return None
        return InvoiceItemTaxCodes(
            invoice_item_id=invoice_item_id, invoice_id=invoice_id, tax_codes=names
        )
