"""In-memory stores.

Used by the application container and by tests. Each repository owns plain
dictionaries keyed by identifier; nothing survives the process.
"""

from collections.abc import Iterable
from uuid import UUID

from simple_tax.domain.catalog import Catalog
from simple_tax.domain.invoices import Account, Invoice
from simple_tax.domain.tax_codes import Tag
from simple_tax.exceptions import TagStoreError
from simple_tax.repositories.interfaces import (
    AccountRepository,
    CatalogRepository,
    InvoiceRepository,
    TagRepository,
)


class InMemoryAccountRepository(AccountRepository):
    def __init__(self) -> None:
        self._accounts: dict[UUID, Account] = {}

    def add(self, account: Account) -> None:
        self._accounts[account.id] = account

    def get(self, account_id: UUID) -> Account | None:
        return self._accounts.get(account_id)


class InMemoryInvoiceRepository(InvoiceRepository):
    def __init__(self) -> None:
        self._invoices: dict[UUID, Invoice] = {}

    def add(self, invoice: Invoice) -> None:
        self._invoices[invoice.id] = invoice

    def get(self, invoice_id: UUID) -> Invoice | None:
        return self._invoices.get(invoice_id)

    def list_by_account(self, account_id: UUID) -> Iterable[Invoice]:
        return [
            invoice
            for invoice in self._invoices.values()
            if invoice.account_id == account_id
        ]

    def get_by_item(self, item_id: UUID) -> Invoice | None:
        for invoice in self._invoices.values():
            if invoice.find_item(item_id) is not None:
                return invoice
        return None


class InMemoryTagRepository(TagRepository):
    def __init__(self) -> None:
        self._tags: dict[tuple[str, UUID], Tag] = {}

    def add(self, tag: Tag) -> None:
        key = (tag.field_name, tag.object_id)
        if key in self._tags:
            raise TagStoreError(
                tag.field_name, tag.object_id, "object already carries this tag"
            )
        self._tags[key] = tag

    def save(self, tag: Tag) -> None:
        self._tags[(tag.field_name, tag.object_id)] = tag

    def get(self, field_name: str, object_id: UUID) -> Tag | None:
        return self._tags.get((field_name, object_id))

    def list_by_account_items(self, account_id: UUID) -> Iterable[Tag]:
        return [tag for tag in self._tags.values() if tag.account_id == account_id]


class StaticCatalogRepository(CatalogRepository):
    """Serves one fixed catalog and counts how often it was fetched."""

    def __init__(self, catalog: Catalog | None = None) -> None:
        self._catalog = catalog or Catalog()
        self.fetch_count = 0

    def current_catalog(self) -> Catalog:
        self.fetch_count += 1
        return self._catalog
