"""Invoice item classification and tax arithmetic."""

from collections.abc import Callable, Iterable, Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from simple_tax.domain.invoices import Invoice, InvoiceItem
from simple_tax.domain.tax_codes import TaxCode

ZERO = Decimal("0")


def is_taxable_item(item: InvoiceItem) -> bool:
    return item.is_taxable


def is_tax_item(item: InvoiceItem) -> bool:
    return item.is_tax


def is_adjustment_item(item: InvoiceItem) -> bool:
    return item.is_adjustment


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def group_by_linked_item(
    invoices: Iterable[Invoice], predicate: Callable[[InvoiceItem], bool]
) -> dict[UUID, tuple[InvoiceItem, ...]]:
    """Group the items matching ``predicate`` by the item they are linked to.

    Items keep the order in which they appear, invoice after invoice.
    """
    grouped: dict[UUID, list[InvoiceItem]] = {}
    for invoice in invoices:
        for item in invoice.items:
            if predicate(item) and item.linked_item_id is not None:
                grouped.setdefault(item.linked_item_id, []).append(item)
    return {item_id: tuple(items) for item_id, items in grouped.items()}


def adjustments_grouped_by_adjusted_item(
    invoices: Iterable[Invoice],
) -> dict[UUID, tuple[InvoiceItem, ...]]:
    return group_by_linked_item(invoices, is_adjustment_item)


def tax_items_grouped_by_taxed_item(
    invoices: Iterable[Invoice],
) -> dict[UUID, tuple[InvoiceItem, ...]]:
    return group_by_linked_item(invoices, is_tax_item)


def amount_with_adjustments(
    item: InvoiceItem, adjustments_by_item: Mapping[UUID, tuple[InvoiceItem, ...]]
) -> Decimal:
    """Nominal amount of ``item`` plus every adjustment linked to it."""
    adjustments = adjustments_by_item.get(item.id, ())
    return item.amount + sum_amounts(adj.amount for adj in adjustments)


def compute_tax_amount(
    amount: Decimal, tax_code: TaxCode | None, precision: int
) -> Decimal:
    """Apply the rate of ``tax_code`` to ``amount``, rounding half up.

    The result always carries exactly ``precision`` fractional digits. No tax
    code means no tax.
    """
    if tax_code is None:
        return ZERO
    quantum = Decimal(1).scaleb(-precision)
    return (amount * tax_code.rate).quantize(quantum, rounding=ROUND_HALF_UP)


def largest_item(
    items: Sequence[InvoiceItem], key: Callable[[InvoiceItem], Decimal]
) -> InvoiceItem:
    """Return the item with the largest key.

    Among items with equal keys the first one in ``items`` wins.

    Raises:
        ValueError: If ``items`` is empty.
    """
    if not items:
        raise ValueError("largest_item() arg is an empty sequence")
    best = items[0]
    best_key = key(best)
    for item in items[1:]:
        item_key = key(item)
        if item_key > best_key:
            best, best_key = item, item_key
    return best
