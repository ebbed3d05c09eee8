"""Dependency injection container for Simple Tax.

Wires the stores, the tenant configuration handler and the services.
Everything is created lazily on first access and cached for reuse.

Usage:
    from simple_tax.container import get_container

    container = get_container()
    items = container.simple_tax_service.get_additional_invoice_items(invoice)
"""

from functools import cached_property, lru_cache
from typing import TYPE_CHECKING

from simple_tax.config import Settings, TenantConfigHandler, get_settings
from simple_tax.logging_config import get_logger
from simple_tax.repositories.interfaces import (
    AccountRepository,
    CatalogRepository,
    InvoiceRepository,
    TagRepository,
)

if TYPE_CHECKING:
    from simple_tax.services.interfaces import InvoiceTaxCodesService, SimpleTaxService
    from simple_tax.services.resolving import TaxResolverRegistry

logger = get_logger(__name__)


class Container:
    """Dependency injection container.

    Tests may pass their own stores, or replace cached properties after
    construction:

        container = Container(settings=Settings(), invoice_repo=my_repo)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        account_repo: AccountRepository | None = None,
        invoice_repo: InvoiceRepository | None = None,
        tag_repo: TagRepository | None = None,
        catalog_repo: CatalogRepository | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._account_repo = account_repo
        self._invoice_repo = invoice_repo
        self._tag_repo = tag_repo
        self._catalog_repo = catalog_repo
        logger.debug(
            "container_created",
            environment=self._settings.environment.value,
            tax_resolver=self._settings.tax.tax_resolver,
        )

    @cached_property
    def account_repository(self) -> AccountRepository:
        from simple_tax.repositories.memory import InMemoryAccountRepository

        return self._account_repo or InMemoryAccountRepository()

    @cached_property
    def invoice_repository(self) -> InvoiceRepository:
        from simple_tax.repositories.memory import InMemoryInvoiceRepository

        return self._invoice_repo or InMemoryInvoiceRepository()

    @cached_property
    def tag_repository(self) -> TagRepository:
        from simple_tax.repositories.memory import InMemoryTagRepository

        return self._tag_repo or InMemoryTagRepository()

    @cached_property
    def catalog_repository(self) -> CatalogRepository:
        from simple_tax.repositories.memory import StaticCatalogRepository

        return self._catalog_repo or StaticCatalogRepository()

    @cached_property
    def config_handler(self) -> TenantConfigHandler:
        return TenantConfigHandler(self._settings)

    @cached_property
    def tax_resolver_registry(self) -> "TaxResolverRegistry":
        from simple_tax.services.resolving import default_registry

        return default_registry

    @cached_property
    def simple_tax_service(self) -> "SimpleTaxService":
        """Get the service computing tax items on invoice creation."""
        from simple_tax.services.simple_tax import SimpleTaxServiceImpl

        return SimpleTaxServiceImpl(
            account_repo=self.account_repository,
            invoice_repo=self.invoice_repository,
            tag_repo=self.tag_repository,
            catalog_repo=self.catalog_repository,
            config_handler=self.config_handler,
            resolver_registry=self.tax_resolver_registry,
        )

    @cached_property
    def invoice_tax_codes_service(self) -> "InvoiceTaxCodesService":
        """Get the service reading and editing tax codes of invoice items."""
        from simple_tax.services.invoice_tax_codes import InvoiceTaxCodesServiceImpl

        return InvoiceTaxCodesServiceImpl(
            invoice_repo=self.invoice_repository,
            tag_repo=self.tag_repository,
        )


@lru_cache
def get_container() -> Container:
    """Get the global container singleton.

    For testing, create a Container directly instead.
    """
    return Container()


def reset_container() -> None:
    get_container.cache_clear()


# FastAPI dependency function
def get_invoice_tax_codes_service() -> "InvoiceTaxCodesService":
    return get_container().invoice_tax_codes_service
