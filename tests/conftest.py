from datetime import date
from decimal import Decimal

import pytest

from simple_tax.config import (
    Settings,
    SimpleTaxConfig,
    TaxCodeDefinition,
    TenantConfigHandler,
)
from simple_tax.domain.catalog import Catalog
from simple_tax.domain.invoices import Account, Invoice
from simple_tax.repositories.memory import (
    InMemoryAccountRepository,
    InMemoryInvoiceRepository,
    InMemoryTagRepository,
    StaticCatalogRepository,
)
from simple_tax.services.simple_tax import SimpleTaxServiceImpl


@pytest.fixture
def tax_config() -> SimpleTaxConfig:
    return SimpleTaxConfig(
        tax_amount_precision=2,
        default_tax_item_description="tax",
        tax_resolver="item_end_date",
        tax_codes={
            "VAT_10": TaxCodeDefinition(rate=Decimal("0.10"), tax_item_description="VAT 10%"),
            "VAT_20": TaxCodeDefinition(rate=Decimal("0.20"), tax_item_description="VAT 20%"),
            "SALES_8_75": TaxCodeDefinition(rate=Decimal("0.0875")),
        },
        products={
            "Widget": ["VAT_10"],
            "Gadget": ["VAT_20"],
            "Service": ["SALES_8_75"],
        },
    )


@pytest.fixture
def settings(tax_config: SimpleTaxConfig) -> Settings:
    return Settings(tax=tax_config)


@pytest.fixture
def config_handler(settings: Settings) -> TenantConfigHandler:
    return TenantConfigHandler(settings)


@pytest.fixture
def catalog() -> Catalog:
    return Catalog(
        products_by_plan={
            "widget-monthly": "Widget",
            "gadget-monthly": "Gadget",
            "service-hourly": "Service",
        }
    )


@pytest.fixture
def account() -> Account:
    return Account(name="ACME Corp")


@pytest.fixture
def account_repo(account: Account) -> InMemoryAccountRepository:
    repo = InMemoryAccountRepository()
    repo.add(account)
    return repo


@pytest.fixture
def invoice_repo() -> InMemoryInvoiceRepository:
    return InMemoryInvoiceRepository()


@pytest.fixture
def tag_repo() -> InMemoryTagRepository:
    return InMemoryTagRepository()


@pytest.fixture
def catalog_repo(catalog: Catalog) -> StaticCatalogRepository:
    return StaticCatalogRepository(catalog)


@pytest.fixture
def service(
    account_repo: InMemoryAccountRepository,
    invoice_repo: InMemoryInvoiceRepository,
    tag_repo: InMemoryTagRepository,
    catalog_repo: StaticCatalogRepository,
    config_handler: TenantConfigHandler,
) -> SimpleTaxServiceImpl:
    return SimpleTaxServiceImpl(
        account_repo=account_repo,
        invoice_repo=invoice_repo,
        tag_repo=tag_repo,
        catalog_repo=catalog_repo,
        config_handler=config_handler,
    )


@pytest.fixture
def historical_invoice(account: Account) -> Invoice:
    return Invoice(account_id=account.id, invoice_date=date(2025, 1, 1))


@pytest.fixture
def new_invoice(account: Account) -> Invoice:
    return Invoice(account_id=account.id, invoice_date=date(2025, 2, 1))
