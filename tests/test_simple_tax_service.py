"""Tests for SimpleTaxServiceImpl: tax items and tax adjustments on invoice creation."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from simple_tax.config import SimpleTaxConfig, TaxCodeDefinition, TenantConfigHandler
from simple_tax.domain.invoices import Account, Invoice, InvoiceItem
from simple_tax.domain.tax_codes import TAX_CODES_FIELD_NAME, Tag
from simple_tax.domain.value_objects import InvoiceItemType
from simple_tax.exceptions import (
    AccountNotFoundError,
    InvalidItemTypeError,
    MissingTaxItemError,
    TagStoreError,
)
from simple_tax.repositories.memory import (
    InMemoryAccountRepository,
    InMemoryInvoiceRepository,
    InMemoryTagRepository,
    StaticCatalogRepository,
)
from simple_tax.services.simple_tax import (
    SimpleTaxServiceImpl,
    build_adjustment_for_tax_item,
    build_tax_item,
)


def _add_item(
    invoice: Invoice,
    item_type: InvoiceItemType,
    amount: str,
    linked_item: InvoiceItem | None = None,
    plan_name: str | None = None,
) -> InvoiceItem:
    item = InvoiceItem(
        invoice_id=invoice.id,
        account_id=invoice.account_id,
        item_type=item_type,
        amount=Decimal(amount),
        linked_item_id=linked_item.id if linked_item is not None else None,
        plan_name=plan_name,
        start_date=invoice.invoice_date,
    )
    invoice.add_item(item)
    return item


def _taxable(invoice: Invoice, amount: str, plan_name: str = "widget-monthly") -> InvoiceItem:
    return _add_item(invoice, InvoiceItemType.TAXABLE, amount, plan_name=plan_name)


def _tax(invoice: Invoice, taxable: InvoiceItem, amount: str) -> InvoiceItem:
    return _add_item(invoice, InvoiceItemType.TAX, amount, linked_item=taxable)


def _adjustment(invoice: Invoice, adjusted: InvoiceItem, amount: str) -> InvoiceItem:
    return _add_item(invoice, InvoiceItemType.ADJUSTMENT, amount, linked_item=adjusted)


def _tag(
    tag_repo: InMemoryTagRepository, account: Account, item: InvoiceItem, value: str
) -> None:
    tag_repo.add(Tag(object_id=item.id, field_value=value, account_id=account.id))


def _apply(items: list[InvoiceItem], *invoices: Invoice) -> None:
    """Append proposed items to their invoices, as the invoicing caller does."""
    by_id = {invoice.id: invoice for invoice in invoices}
    for item in items:
        by_id[item.invoice_id].add_item(item)


def _linked_tax_total(invoices: list[Invoice], taxable: InvoiceItem) -> Decimal:
    all_items = [item for invoice in invoices for item in invoice.items]
    tax_items = [i for i in all_items if i.is_tax and i.linked_item_id == taxable.id]
    total = Decimal("0")
    for tax_item in tax_items:
        total += tax_item.amount
        total += sum(
            (i.amount for i in all_items if i.is_adjustment and i.linked_item_id == tax_item.id),
            Decimal("0"),
        )
    return total


class TestFirstTaxation:
    def test_assigns_tax_code_and_proposes_tax_item(
        self,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(new_invoice, "100.00")

        items = service.get_additional_invoice_items(new_invoice)

        assert len(items) == 1
        tax_item = items[0]
        assert tax_item.item_type == InvoiceItemType.TAX
        assert tax_item.amount == Decimal("10.00")
        assert tax_item.invoice_id == new_invoice.id
        assert tax_item.linked_item_id == taxable.id
        assert tax_item.start_date == new_invoice.invoice_date
        assert tax_item.description == "VAT 10%"

        tag = tag_repo.get(TAX_CODES_FIELD_NAME, taxable.id)
        assert tag is not None
        assert tag.field_value == "VAT_10"

    def test_non_taxable_items_are_ignored(
        self, service: SimpleTaxServiceImpl, new_invoice: Invoice
    ) -> None:
        _add_item(new_invoice, InvoiceItemType.OTHER, "100.00", plan_name="widget-monthly")

        assert service.get_additional_invoice_items(new_invoice) == []

    def test_item_without_configured_tax_code_is_not_taxed(
        self,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(new_invoice, "100.00", plan_name="unknown-plan")

        assert service.get_additional_invoice_items(new_invoice) == []
        assert tag_repo.get(TAX_CODES_FIELD_NAME, taxable.id) is None

    def test_rounds_half_up_to_configured_precision(
        self, service: SimpleTaxServiceImpl, new_invoice: Invoice
    ) -> None:
        _taxable(new_invoice, "10.00", plan_name="service-hourly")

        items = service.get_additional_invoice_items(new_invoice)

        assert [str(item.amount) for item in items] == ["0.88"]

    def test_default_description_when_tax_code_has_none(
        self,
        account: Account,
        account_repo: InMemoryAccountRepository,
        invoice_repo: InMemoryInvoiceRepository,
        tag_repo: InMemoryTagRepository,
        catalog_repo: StaticCatalogRepository,
        new_invoice: Invoice,
    ) -> None:
        handler = TenantConfigHandler()
        handler.set_config(
            "tenant-a",
            SimpleTaxConfig(
                default_tax_item_description="Sales tax",
                tax_resolver="item_end_date",
                tax_codes={"SALES_8_75": TaxCodeDefinition(rate=Decimal("0.0875"))},
                products={"Service": ["SALES_8_75"]},
            ),
        )
        service = SimpleTaxServiceImpl(
            account_repo, invoice_repo, tag_repo, catalog_repo, handler
        )
        _taxable(new_invoice, "200.00", plan_name="service-hourly")

        items = service.get_additional_invoice_items(new_invoice, tenant_id="tenant-a")

        assert [(item.amount, item.description) for item in items] == [
            (Decimal("17.50"), "Sales tax")
        ]

    def test_unknown_account_fails(
        self, service: SimpleTaxServiceImpl
    ) -> None:
        orphan = Invoice(account_id=uuid4(), invoice_date=date(2025, 3, 1))

        with pytest.raises(AccountNotFoundError):
            service.get_additional_invoice_items(orphan)


class TestIdempotence:
    def test_second_run_proposes_nothing(
        self,
        service: SimpleTaxServiceImpl,
        invoice_repo: InMemoryInvoiceRepository,
        new_invoice: Invoice,
    ) -> None:
        _taxable(new_invoice, "100.00")
        _taxable(new_invoice, "35.50", plan_name="gadget-monthly")
        _taxable(new_invoice, "10.00", plan_name="service-hourly")

        first = service.get_additional_invoice_items(new_invoice)
        _apply(first, new_invoice)
        invoice_repo.add(new_invoice)

        assert len(first) == 3
        assert service.get_additional_invoice_items(new_invoice) == []

    def test_adjustments_are_not_repeated(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        invoice_repo: InMemoryInvoiceRepository,
        tag_repo: InMemoryTagRepository,
        historical_invoice: Invoice,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(historical_invoice, "100.00")
        _tax(historical_invoice, taxable, "10.00")
        _tag(tag_repo, account, taxable, "VAT_10")
        invoice_repo.add(historical_invoice)
        _adjustment(new_invoice, taxable, "-40.00")

        first = service.get_additional_invoice_items(new_invoice)
        _apply(first, historical_invoice, new_invoice)
        invoice_repo.add(new_invoice)

        assert [item.amount for item in first] == [Decimal("-4.00")]
        assert service.get_additional_invoice_items(new_invoice) == []
        assert _linked_tax_total([historical_invoice, new_invoice], taxable) == Decimal("6.00")


class TestAdjustments:
    def test_increase_adjusts_existing_tax_item(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(new_invoice, "100.00")
        tax_item = _tax(new_invoice, taxable, "8.00")
        _tag(tag_repo, account, taxable, "VAT_10")

        items = service.get_additional_invoice_items(new_invoice)

        assert len(items) == 1
        adjustment = items[0]
        assert adjustment.item_type == InvoiceItemType.ADJUSTMENT
        assert adjustment.amount == Decimal("2.00")
        assert adjustment.linked_item_id == tax_item.id
        assert adjustment.invoice_id == new_invoice.id
        assert adjustment.start_date == new_invoice.invoice_date

    def test_decrease_adjusts_existing_tax_item(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(new_invoice, "100.00")
        tax_item = _tax(new_invoice, taxable, "12.00")
        _tag(tag_repo, account, taxable, "VAT_10")

        items = service.get_additional_invoice_items(new_invoice)

        assert [(item.amount, item.linked_item_id) for item in items] == [
            (Decimal("-2.00"), tax_item.id)
        ]

    def test_adjusts_largest_of_several_tax_items(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(new_invoice, "100.00")
        _tax(new_invoice, taxable, "5.00")
        largest = _tax(new_invoice, taxable, "7.00")
        _tag(tag_repo, account, taxable, "VAT_10")

        items = service.get_additional_invoice_items(new_invoice)

        assert [(item.amount, item.linked_item_id) for item in items] == [
            (Decimal("-2.00"), largest.id)
        ]

    def test_equal_tax_items_adjust_the_first_one(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(new_invoice, "100.00")
        first = _tax(new_invoice, taxable, "6.00")
        _tax(new_invoice, taxable, "6.00")
        _tag(tag_repo, account, taxable, "VAT_10")

        items = service.get_additional_invoice_items(new_invoice)

        assert [(item.amount, item.linked_item_id) for item in items] == [
            (Decimal("-2.00"), first.id)
        ]

    def test_largest_tax_item_accounts_for_its_adjustments(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(new_invoice, "120.00")
        shrunk = _tax(new_invoice, taxable, "9.00")
        _adjustment(new_invoice, shrunk, "-5.00")
        other = _tax(new_invoice, taxable, "6.00")
        _tag(tag_repo, account, taxable, "VAT_10")

        items = service.get_additional_invoice_items(new_invoice)

        assert [(item.amount, item.linked_item_id) for item in items] == [
            (Decimal("2.00"), other.id)
        ]

    def test_historical_tax_adjusted_after_taxable_adjustment(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        invoice_repo: InMemoryInvoiceRepository,
        tag_repo: InMemoryTagRepository,
        historical_invoice: Invoice,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(historical_invoice, "100.00")
        tax_item = _tax(historical_invoice, taxable, "10.00")
        _tag(tag_repo, account, taxable, "VAT_10")
        invoice_repo.add(historical_invoice)
        _adjustment(new_invoice, taxable, "-50.00")

        items = service.get_additional_invoice_items(new_invoice)

        assert len(items) == 1
        adjustment = items[0]
        assert adjustment.amount == Decimal("-5.00")
        assert adjustment.linked_item_id == tax_item.id
        assert adjustment.invoice_id == historical_invoice.id
        assert adjustment.start_date == historical_invoice.invoice_date

    def test_tax_code_swapped_on_historical_item(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        invoice_repo: InMemoryInvoiceRepository,
        tag_repo: InMemoryTagRepository,
        historical_invoice: Invoice,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(historical_invoice, "100.00")
        tax_item = _tax(historical_invoice, taxable, "10.00")
        _tag(tag_repo, account, taxable, "VAT_20")
        invoice_repo.add(historical_invoice)

        items = service.get_additional_invoice_items(new_invoice)

        assert [(item.amount, item.linked_item_id, item.description) for item in items] == [
            (Decimal("10.00"), tax_item.id, "VAT 20%")
        ]

    def test_unconfigured_tax_code_cancels_historical_tax(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        invoice_repo: InMemoryInvoiceRepository,
        tag_repo: InMemoryTagRepository,
        historical_invoice: Invoice,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(historical_invoice, "100.00")
        _tax(historical_invoice, taxable, "10.00")
        _tag(tag_repo, account, taxable, "RETIRED_CODE")
        invoice_repo.add(historical_invoice)

        items = service.get_additional_invoice_items(new_invoice)

        assert [(item.amount, item.description) for item in items] == [
            (Decimal("-10.00"), "tax")
        ]


class TestNoRetroactiveTaxation:
    def test_never_taxed_historical_item_is_left_alone(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        invoice_repo: InMemoryInvoiceRepository,
        tag_repo: InMemoryTagRepository,
        historical_invoice: Invoice,
        new_invoice: Invoice,
    ) -> None:
        tagged = _taxable(historical_invoice, "100.00")
        _taxable(historical_invoice, "50.00")
        _tag(tag_repo, account, tagged, "VAT_10")
        invoice_repo.add(historical_invoice)

        assert service.get_additional_invoice_items(new_invoice) == []
        assert tag_repo.get(TAX_CODES_FIELD_NAME, historical_invoice.items[1].id) is None

    def test_results_are_ordered_invoice_then_item(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        invoice_repo: InMemoryInvoiceRepository,
        tag_repo: InMemoryTagRepository,
        historical_invoice: Invoice,
        new_invoice: Invoice,
    ) -> None:
        old_taxable = _taxable(historical_invoice, "100.00")
        old_tax = _tax(historical_invoice, old_taxable, "9.00")
        _tag(tag_repo, account, old_taxable, "VAT_10")
        invoice_repo.add(historical_invoice)
        first_new = _taxable(new_invoice, "20.00")
        second_new = _taxable(new_invoice, "30.00", plan_name="gadget-monthly")

        items = service.get_additional_invoice_items(new_invoice)

        assert [item.linked_item_id for item in items] == [
            old_tax.id,
            first_new.id,
            second_new.id,
        ]
        assert [item.amount for item in items] == [
            Decimal("1.00"),
            Decimal("2.00"),
            Decimal("6.00"),
        ]


class TestTaxCodeAssignment:
    def test_existing_tag_is_never_replaced(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(new_invoice, "100.00")
        _tag(tag_repo, account, taxable, "VAT_20")

        items = service.get_additional_invoice_items(new_invoice)

        assert [item.amount for item in items] == [Decimal("20.00")]
        assert tag_repo.get(TAX_CODES_FIELD_NAME, taxable.id).field_value == "VAT_20"

    @pytest.mark.parametrize("blank", ["", " , "])
    def test_blank_tag_is_replaced_by_resolved_code(
        self,
        blank: str,
        account: Account,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(new_invoice, "100.00")
        _tag(tag_repo, account, taxable, blank)

        items = service.get_additional_invoice_items(new_invoice)

        assert [(item.item_type, item.amount, item.linked_item_id) for item in items] == [
            (InvoiceItemType.TAX, Decimal("10.00"), taxable.id)
        ]
        tag = tag_repo.get(TAX_CODES_FIELD_NAME, taxable.id)
        assert tag is not None
        assert tag.field_value == "VAT_10"
        assert tag.account_id == account.id

    def test_first_recorded_tax_code_applies(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        taxable = _taxable(new_invoice, "100.00")
        _tag(tag_repo, account, taxable, "UNKNOWN, VAT_20,VAT_10")

        items = service.get_additional_invoice_items(new_invoice)

        assert [item.amount for item in items] == [Decimal("20.00")]

    def test_tag_creation_failure_leaves_item_untaxed(
        self,
        account_repo: InMemoryAccountRepository,
        invoice_repo: InMemoryInvoiceRepository,
        catalog_repo: StaticCatalogRepository,
        config_handler: TenantConfigHandler,
        new_invoice: Invoice,
        capsys,
        caplog,
    ) -> None:
        class FailingTagRepository(InMemoryTagRepository):
            def add(self, tag: Tag) -> None:
                raise TagStoreError(tag.field_name, tag.object_id, "store unavailable")

        tag_repo = FailingTagRepository()
        service = SimpleTaxServiceImpl(
            account_repo, invoice_repo, tag_repo, catalog_repo, config_handler
        )
        taxable = _taxable(new_invoice, "100.00")

        items = service.get_additional_invoice_items(new_invoice)

        assert items == []
        assert tag_repo.get(TAX_CODES_FIELD_NAME, taxable.id) is None
        all_output = capsys.readouterr().out + caplog.text
        assert "tax_code_tag_creation_failed" in all_output

    def test_resolver_failure_degrades_to_no_tax(
        self,
        account_repo: InMemoryAccountRepository,
        invoice_repo: InMemoryInvoiceRepository,
        tag_repo: InMemoryTagRepository,
        catalog_repo: StaticCatalogRepository,
        tax_config: SimpleTaxConfig,
        new_invoice: Invoice,
        capsys,
        caplog,
    ) -> None:
        handler = TenantConfigHandler()
        handler.set_config(
            "tenant-b", tax_config.model_copy(update={"tax_resolver": "not_registered"})
        )
        service = SimpleTaxServiceImpl(
            account_repo, invoice_repo, tag_repo, catalog_repo, handler
        )
        taxable = _taxable(new_invoice, "100.00")

        items = service.get_additional_invoice_items(new_invoice, tenant_id="tenant-b")

        assert items == []
        assert tag_repo.get(TAX_CODES_FIELD_NAME, taxable.id) is None
        all_output = capsys.readouterr().out + caplog.text
        assert "tax_resolver_instantiation_failed" in all_output

    def test_catalog_fetched_once_per_computation(
        self,
        service: SimpleTaxServiceImpl,
        catalog_repo: StaticCatalogRepository,
        new_invoice: Invoice,
    ) -> None:
        _taxable(new_invoice, "100.00")
        _taxable(new_invoice, "100.00", plan_name="gadget-monthly")

        service.get_additional_invoice_items(new_invoice)

        assert catalog_repo.fetch_count == 1


class TestContractViolations:
    def test_negative_tax_without_tax_item_fails(
        self,
        account: Account,
        service: SimpleTaxServiceImpl,
        tag_repo: InMemoryTagRepository,
        new_invoice: Invoice,
    ) -> None:
        credit = _taxable(new_invoice, "-100.00")
        _tag(tag_repo, account, credit, "VAT_10")

        with pytest.raises(MissingTaxItemError):
            service.get_additional_invoice_items(new_invoice)

    def test_tax_item_requires_taxable_item(self, new_invoice: Invoice) -> None:
        other = _add_item(new_invoice, InvoiceItemType.OTHER, "10.00")

        with pytest.raises(InvalidItemTypeError):
            build_tax_item(other, new_invoice.invoice_date, Decimal("1.00"), "tax")

    def test_adjustment_requires_tax_item(self, new_invoice: Invoice) -> None:
        taxable = _taxable(new_invoice, "10.00")

        with pytest.raises(InvalidItemTypeError):
            build_adjustment_for_tax_item(
                taxable, new_invoice.invoice_date, Decimal("1.00"), "tax"
            )

    def test_zero_or_missing_amounts_build_nothing(self, new_invoice: Invoice) -> None:
        taxable = _taxable(new_invoice, "10.00")
        tax_item = _tax(new_invoice, taxable, "1.00")
        on = new_invoice.invoice_date

        assert build_tax_item(taxable, on, Decimal("0.00"), "tax") is None
        assert build_tax_item(taxable, on, None, "tax") is None
        assert build_adjustment_for_tax_item(tax_item, on, Decimal("0"), "tax") is None
        assert build_adjustment_for_tax_item(tax_item, on, Decimal("NaN"), "tax") is None
