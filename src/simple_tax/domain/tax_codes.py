from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

TAX_CODES_FIELD_NAME = "taxCodes"
# Persisted tag values depend on this separator: never change it.
TAX_CODES_JOIN_SEPARATOR = ","


@dataclass(frozen=True, slots=True)
class TaxCode:
    name: str
    rate: Decimal
    tax_item_description: str
    starting_on: date | None = None
    stopping_after: date | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.rate, Decimal):
            object.__setattr__(self, "rate", Decimal(str(self.rate)))

    def is_applicable_on(self, day: date) -> bool:
        if self.starting_on is not None and day < self.starting_on:
            return False
        if self.stopping_after is not None and day > self.stopping_after:
            return False
        return True


@dataclass
class Tag:
    """A named value attached to an invoice item."""

    object_id: UUID
    field_value: str
    account_id: UUID
    field_name: str = TAX_CODES_FIELD_NAME
    id: UUID = field(default_factory=uuid4)
