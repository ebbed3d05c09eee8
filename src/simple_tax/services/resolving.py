"""Tax resolvers: pick the one tax code that applies to a taxable item.

Which tax code applies is a matter of jurisdiction, so resolvers are
pluggable. Each one is registered under a key; the tenant configuration
names the key to use. A resolver is built for every tax computation, from
its context, so it can look at the account, its invoices and the
configuration.

Registering a custom resolver:

    @register_tax_resolver("fr_vat")
    class FrenchVatResolver(TaxResolver):
        def applicable_code_for_item(self, tax_codes, item):
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from datetime import date
from typing import TYPE_CHECKING

from simple_tax.config import DEFAULT_TAX_RESOLVER
from simple_tax.domain.invoices import InvoiceItem
from simple_tax.domain.tax_codes import TaxCode
from simple_tax.exceptions import (
    TaxResolverError,
    TaxResolverInstantiationError,
    UnknownTaxResolverError,
)
from simple_tax.logging_config import get_logger

if TYPE_CHECKING:
    from simple_tax.services.context import TaxComputationContext

logger = get_logger(__name__)


class TaxResolver(ABC):
    def __init__(self, ctx: TaxComputationContext) -> None:
        self.ctx = ctx

    @abstractmethod
    def applicable_code_for_item(
        self, tax_codes: Sequence[TaxCode], item: InvoiceItem
    ) -> TaxCode | None:
        pass


class NullTaxResolver(TaxResolver):
    """Never finds any applicable tax code."""

    def applicable_code_for_item(
        self, tax_codes: Sequence[TaxCode], item: InvoiceItem
    ) -> TaxCode | None:
        return None


class InvoiceItemEndDateBasedResolver(TaxResolver):
    """Picks the tax code in force when the service of an item ended.

    Items without an end date use their start date, then the invoice date.
    When none or several candidates are in force, nothing is picked.
    """

    def applicable_code_for_item(
        self, tax_codes: Sequence[TaxCode], item: InvoiceItem
    ) -> TaxCode | None:
        day = item.end_date or item.start_date or self._invoice_date(item)
        if day is None:
            return None
        applicable = [code for code in tax_codes if code.is_applicable_on(day)]
        if len(applicable) != 1:
            logger.debug(
                "no_single_tax_code_in_force",
                item_id=str(item.id),
                day=day.isoformat(),
                candidates=[code.name for code in applicable],
            )
            return None
        return applicable[0]

    def _invoice_date(self, item: InvoiceItem) -> date | None:
        for invoice in self.ctx.all_invoices:
            if invoice.id == item.invoice_id:
                return invoice.invoice_date
        return None


TaxResolverFactory = Callable[["TaxComputationContext"], TaxResolver]


class TaxResolverRegistry:
    """Maps configuration keys to tax resolver factories."""

    def __init__(self) -> None:
        self._factories: dict[str, TaxResolverFactory] = {}

    def register(self, key: str, factory: TaxResolverFactory) -> None:
        self._factories[key] = factory

    def unregister(self, key: str) -> None:
        self._factories.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, key: object) -> bool:
        return key in self._factories

    def create(self, key: str, ctx: TaxComputationContext) -> TaxResolver:
        """Build the resolver registered under ``key``.

        Raises:
            UnknownTaxResolverError: If nothing is registered under ``key``.
            TaxResolverInstantiationError: If the factory fails or does not
                produce a TaxResolver.
        """
        factory = self._factories.get(key)
        if factory is None:
            raise UnknownTaxResolverError(key)
        try:
            resolver = factory(ctx)
        except Exception as exc:
            raise TaxResolverInstantiationError(key, str(exc) or type(exc).__name__) from exc
        if not isinstance(resolver, TaxResolver):
            raise TaxResolverInstantiationError(
                key, f"factory returned {type(resolver).__name__}, not a TaxResolver"
            )
        return resolver


default_registry = TaxResolverRegistry()
default_registry.register(DEFAULT_TAX_RESOLVER, NullTaxResolver)
default_registry.register("item_end_date", InvoiceItemEndDateBasedResolver)


def register_tax_resolver(
    key: str, registry: TaxResolverRegistry | None = None
) -> Callable[[type[TaxResolver]], type[TaxResolver]]:
    """Class decorator registering a TaxResolver subclass under ``key``."""

    def decorator(cls: type[TaxResolver]) -> type[TaxResolver]:
        (registry if registry is not None else default_registry).register(key, cls)
        return cls

    return decorator


def instantiate_tax_resolver(
    ctx: TaxComputationContext, registry: TaxResolverRegistry | None = None
) -> TaxResolver:
    """Build the resolver configured for the tenant.

    Falls back to a NullTaxResolver when the configured one cannot be built,
    so the invoice gets no tax rather than no invoice at all.
    """
    key = ctx.config.tax_resolver
    try:
        return (registry if registry is not None else default_registry).create(key, ctx)
    except TaxResolverError as exc:
        logger.error(
            "tax_resolver_instantiation_failed",
            tax_resolver=key,
            error_code=exc.error_code,
            fallback=NullTaxResolver.__name__,
            exc_info=True,
        )
        return NullTaxResolver(ctx)
