from simple_tax.repositories.interfaces import (
    AccountRepository,
    CatalogRepository,
    InvoiceRepository,
    TagRepository,
)
from simple_tax.repositories.memory import (
    InMemoryAccountRepository,
    InMemoryInvoiceRepository,
    InMemoryTagRepository,
    StaticCatalogRepository,
)

__all__ = [
    "AccountRepository",
    "CatalogRepository",
    "InvoiceRepository",
    "TagRepository",
    "InMemoryAccountRepository",
    "InMemoryInvoiceRepository",
    "InMemoryTagRepository",
    "StaticCatalogRepository",
]
