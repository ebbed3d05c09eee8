"""Tax code directory.

Finds the candidate tax codes configured for the products sold by taxable
items, and reads back the tax codes already recorded on items as tags.
"""

from collections.abc import Callable, Iterable, Mapping
from functools import cached_property
from uuid import UUID

from simple_tax.config import SimpleTaxConfig
from simple_tax.domain.catalog import Catalog
from simple_tax.domain.invoices import Invoice
from simple_tax.domain.tax_codes import TAX_CODES_JOIN_SEPARATOR, Tag, TaxCode
from simple_tax.logging_config import get_logger
from simple_tax.services.amounts import is_taxable_item

logger = get_logger(__name__)


def split_tax_codes(value: str | None) -> list[str]:
    """Split a tag value into tax code names.

    Blank tokens are dropped, duplicates keep their first position.
    """
    if not value:
        return []
    names: list[str] = []
    for token in value.split(TAX_CODES_JOIN_SEPARATOR):
        name = token.strip()
        if name and name not in names:
            names.append(name)
    return names


def join_tax_codes(names: Iterable[str]) -> str:
    unique: list[str] = []
    for name in names:
        name = name.strip()
        if name and name not in unique:
            unique.append(name)
    return TAX_CODES_JOIN_SEPARATOR.join(unique)


class TaxCodeDirectory:
    """Tax codes of the invoice items of one account.

    Scoped to a single tax computation: the catalog is fetched at most once,
    on first use, and the tags are the ones read when the computation
    started.
    """

    def __init__(
        self,
        catalog_loader: Callable[[], Catalog],
        config: SimpleTaxConfig,
        tags_by_item: Mapping[UUID, Tag],
    ) -> None:
        self._catalog_loader = catalog_loader
        self._config = config
        self._tags_by_item = tags_by_item

    @cached_property
    def catalog(self) -> Catalog:
        return self._catalog_loader()

    def resolve_tax_codes_from_config(self, invoice: Invoice) -> dict[UUID, list[TaxCode]]:
        """Candidate tax codes of each taxable item, by item identifier.

        Items whose product has no configured tax code are left out.
        """
        resolved: dict[UUID, list[TaxCode]] = {}
        for item in invoice.items:
            if not is_taxable_item(item) or item.plan_name is None:
                continue
            product_name = self.catalog.find_product_name(item.plan_name)
            if product_name is None:
                continue
            tax_codes = self._configured_tax_codes(product_name)
            if tax_codes:
                resolved[item.id] = tax_codes
        return resolved

    def _configured_tax_codes(self, product_name: str) -> list[TaxCode]:
        tax_codes: list[TaxCode] = []
        for name in self._config.tax_code_names_for_product(product_name):
            tax_code = self._config.find_tax_code(name)
            if tax_code is None:
                logger.warning(
                    "unknown_tax_code_configured",
                    product=product_name,
                    tax_code=name,
                )
                continue
            if tax_code not in tax_codes:
                tax_codes.append(tax_code)
        return tax_codes

    def find_existing_tax_codes(self, invoice: Invoice) -> dict[UUID, list[TaxCode]]:
        """Tax codes recorded in the tags of the invoice items.

        Names that are no longer configured are ignored.
        """
        existing: dict[UUID, list[TaxCode]] = {}
        for item in invoice.items:
            tag = self._tags_by_item.get(item.id)
            if tag is None:
                continue
            tax_codes = [
                tax_code
                for tax_code in map(self._config.find_tax_code, split_tax_codes(tag.field_value))
                if tax_code is not None
            ]
            if tax_codes:
                existing[item.id] = tax_codes
        return existing

    def find_tag(self, item_id: UUID) -> Tag | None:
        return self._tags_by_item.get(item_id)

    def has_tax_codes_tag(self, item_id: UUID) -> bool:
        """Whether the item records at least one tax code name.

        A tag with a blank value records nothing.
        """
        tag = self._tags_by_item.get(item_id)
        return tag is not None and bool(split_tax_codes(tag.field_value))
