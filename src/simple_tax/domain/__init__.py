from simple_tax.domain.catalog import Catalog
from simple_tax.domain.invoices import Account, Invoice, InvoiceItem
from simple_tax.domain.tax_codes import (
    TAX_CODES_FIELD_NAME,
    TAX_CODES_JOIN_SEPARATOR,
    Tag,
    TaxCode,
)
from simple_tax.domain.value_objects import InvoiceItemType

__all__ = [
    "Account",
    "Catalog",
    "Invoice",
    "InvoiceItem",
    "InvoiceItemType",
    "TAX_CODES_FIELD_NAME",
    "TAX_CODES_JOIN_SEPARATOR",
    "Tag",
    "TaxCode",
]
