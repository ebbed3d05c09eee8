from enum import Enum


class InvoiceItemType(str, Enum):
    TAXABLE = "taxable"
    TAX = "tax"
    ADJUSTMENT = "adjustment"
    OTHER = "other"


__all__ = [
    "InvoiceItemType",
]
