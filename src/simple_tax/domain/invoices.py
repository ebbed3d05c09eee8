from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from simple_tax.domain.value_objects import InvoiceItemType


@dataclass
class Account:
    name: str
    id: UUID = field(default_factory=uuid4)


@dataclass
class InvoiceItem:
    invoice_id: UUID
    account_id: UUID
    item_type: InvoiceItemType
    amount: Decimal
    id: UUID = field(default_factory=uuid4)
    linked_item_id: UUID | None = None
    description: str = ""
    start_date: date | None = None
    end_date: date | None = None
    plan_name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))

    @property
    def is_taxable(self) -> bool:
        return self.item_type == InvoiceItemType.TAXABLE

    @property
    def is_tax(self) -> bool:
        return self.item_type == InvoiceItemType.TAX

    @property
    def is_adjustment(self) -> bool:
        return self.item_type == InvoiceItemType.ADJUSTMENT


@dataclass
class Invoice:
    account_id: UUID
    invoice_date: date
    items: list[InvoiceItem] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)

    def add_item(self, item: InvoiceItem) -> None:
        self.items.append(item)

    def find_item(self, item_id: UUID) -> InvoiceItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None
