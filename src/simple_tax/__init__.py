from simple_tax.domain.invoices import Account, Invoice, InvoiceItem
from simple_tax.domain.tax_codes import Tag, TaxCode
from simple_tax.domain.value_objects import InvoiceItemType
from simple_tax.services.simple_tax import SimpleTaxServiceImpl

__all__ = [
    "Account",
    "Invoice",
    "InvoiceItem",
    "InvoiceItemType",
    "SimpleTaxServiceImpl",
    "Tag",
    "TaxCode",
]

__version__ = "0.1.0"
