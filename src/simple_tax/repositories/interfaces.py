from abc import ABC, abstractmethod
from collections.abc import Iterable
from uuid import UUID

from simple_tax.domain.catalog import Catalog
from simple_tax.domain.invoices import Account, Invoice
from simple_tax.domain.tax_codes import Tag


class AccountRepository(ABC):
    @abstractmethod
    def add(self, account: Account) -> None:
        pass

    @abstractmethod
    def get(self, account_id: UUID) -> Account | None:
        pass


class InvoiceRepository(ABC):
    @abstractmethod
    def add(self, invoice: Invoice) -> None:
        pass

    @abstractmethod
    def get(self, invoice_id: UUID) -> Invoice | None:
        pass

    @abstractmethod
    def list_by_account(self, account_id: UUID) -> Iterable[Invoice]:
        pass

    @abstractmethod
    def get_by_item(self, item_id: UUID) -> Invoice | None:
        """Return the invoice that contains the given item, if any."""
        pass


class TagRepository(ABC):
    @abstractmethod
    def add(self, tag: Tag) -> None:
        """Create a tag.

        Raises:
            TagStoreError: If the tag cannot be created, for instance when
                the object already carries a tag of the same name.
        """
        pass

    @abstractmethod
    def save(self, tag: Tag) -> None:
        """Create a tag, or replace the value of an existing one."""
        pass

    @abstractmethod
    def get(self, field_name: str, object_id: UUID) -> Tag | None:
        pass

    @abstractmethod
    def list_by_account_items(self, account_id: UUID) -> Iterable[Tag]:
        """List the tags set on invoice items of an account."""
        pass


class CatalogRepository(ABC):
    @abstractmethod
    def current_catalog(self) -> Catalog:
        pass
