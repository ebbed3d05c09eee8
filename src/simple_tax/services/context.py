"""Pre-computed data shared by every step of one tax computation."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from uuid import UUID

from simple_tax.config import SimpleTaxConfig
from simple_tax.domain.invoices import Account, Invoice, InvoiceItem
from simple_tax.domain.tax_codes import TAX_CODES_FIELD_NAME, Tag
from simple_tax.exceptions import AccountNotFoundError
from simple_tax.repositories.interfaces import (
    AccountRepository,
    CatalogRepository,
    InvoiceRepository,
    TagRepository,
)
from simple_tax.services.amounts import (
    adjustments_grouped_by_adjusted_item,
    amount_with_adjustments,
    largest_item,
    tax_items_grouped_by_taxed_item,
)
from simple_tax.services.tax_codes import TaxCodeDirectory


@dataclass(frozen=True)
class TaxComputationContext:
    """Snapshot of an account taken when an invoice is being created.

    Every decision of a tax computation is made from this snapshot, never
    from a fresh read of the stores.
    """

    config: SimpleTaxConfig
    account: Account
    all_invoices: tuple[Invoice, ...]
    tax_code_directory: TaxCodeDirectory
    adjustments_by_item: Mapping[UUID, tuple[InvoiceItem, ...]] = field(
        default_factory=dict
    )
    tax_items_by_taxed_item: Mapping[UUID, tuple[InvoiceItem, ...]] = field(
        default_factory=dict
    )

    def adjusted_amount(self, item: InvoiceItem) -> Decimal:
        return amount_with_adjustments(item, self.adjustments_by_item)

    def by_adjusted_amount(self, item: InvoiceItem) -> Decimal:
        """Sort key ordering items by their adjusted amount."""
        return self.adjusted_amount(item)

    def largest_by_adjusted_amount(self, items: Sequence[InvoiceItem]) -> InvoiceItem:
        return largest_item(items, self.by_adjusted_amount)

    def tax_items_of(self, taxable_item: InvoiceItem) -> tuple[InvoiceItem, ...]:
        return self.tax_items_by_taxed_item.get(taxable_item.id, ())


def all_invoices_of_account(
    new_invoice: Invoice, persisted: Sequence[Invoice]
) -> tuple[Invoice, ...]:
    """Invoices of the account, including the one being created.

    The new invoice may or may not be persisted already. Either way it
    appears exactly once, and its in-memory version wins.
    """
    invoices = [
        new_invoice if invoice.id == new_invoice.id else invoice for invoice in persisted
    ]
    if not any(invoice.id == new_invoice.id for invoice in persisted):
        invoices.append(new_invoice)
    return tuple(invoices)


def tax_code_tags_by_item(
    tags: Sequence[Tag], invoices: Sequence[Invoice]
) -> dict[UUID, Tag]:
    item_ids = {item.id for invoice in invoices for item in invoice.items}
    return {
        tag.object_id: tag
        for tag in tags
        if tag.field_name == TAX_CODES_FIELD_NAME and tag.object_id in item_ids
    }


def create_tax_computation_context(
    new_invoice: Invoice,
    config: SimpleTaxConfig,
    account_repo: AccountRepository,
    invoice_repo: InvoiceRepository,
    tag_repo: TagRepository,
    catalog_repo: CatalogRepository,
) -> TaxComputationContext:
    """Read everything a tax computation needs for the account of an invoice.

    Raises:
        AccountNotFoundError: If the invoice account does not exist.
    """
    account = account_repo.get(new_invoice.account_id)
    if account is None:
        raise AccountNotFoundError(new_invoice.account_id)

    all_invoices = all_invoices_of_account(
        new_invoice, list(invoice_repo.list_by_account(account.id))
    )
    tags = tax_code_tags_by_item(
        list(tag_repo.list_by_account_items(account.id)), all_invoices
    )
    directory = TaxCodeDirectory(
        catalog_loader=catalog_repo.current_catalog,
        config=config,
        tags_by_item=MappingProxyType(tags),
    )
    return TaxComputationContext(
        config=config,
        account=account,
        all_invoices=all_invoices,
        tax_code_directory=directory,
        adjustments_by_item=MappingProxyType(
            adjustments_grouped_by_adjusted_item(all_invoices)
        ),
        tax_items_by_taxed_item=MappingProxyType(
            tax_items_grouped_by_taxed_item(all_invoices)
        ),
    )
