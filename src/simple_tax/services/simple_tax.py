"""Tax items for invoices being created, and tax adjustments for all others.

When an invoice is created, every taxable item of the account is checked:
the tax recorded against it must match the tax expected from its adjusted
amount and its tax code. Missing tax on the new invoice becomes a new tax
item. Any other difference, on the new invoice or on a historical one,
becomes an adjustment of the largest tax item of the taxable item.

Taxable items of historical invoices that were never taxed are left alone:
adding tax to them would change the liability of an invoice that has
already been issued.

Tax codes already recorded on items are never overridden. The computation
is idempotent: running it again on unchanged invoices proposes nothing.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from simple_tax.config import TenantConfigHandler
from simple_tax.domain.invoices import Invoice, InvoiceItem
from simple_tax.domain.tax_codes import TAX_CODES_FIELD_NAME, Tag, TaxCode
from simple_tax.domain.value_objects import InvoiceItemType
from simple_tax.exceptions import InvalidItemTypeError, MissingTaxItemError, TagStoreError
from simple_tax.logging_config import get_logger, log_context
from simple_tax.repositories.interfaces import (
    AccountRepository,
    CatalogRepository,
    InvoiceRepository,
    TagRepository,
)
from simple_tax.services.amounts import (
    ZERO,
    compute_tax_amount,
    is_tax_item,
    is_taxable_item,
    sum_amounts,
)
from simple_tax.services.context import (
    TaxComputationContext,
    create_tax_computation_context,
)
from simple_tax.services.interfaces import SimpleTaxService
from simple_tax.services.resolving import (
    TaxResolver,
    TaxResolverRegistry,
    instantiate_tax_resolver,
)

logger = get_logger(__name__)


def _is_void(amount: Decimal | None) -> bool:
    return amount is None or amount.is_nan() or amount == ZERO


def build_tax_item(
    taxable_item: InvoiceItem, on: date, tax_amount: Decimal | None, description: str
) -> InvoiceItem | None:
    """Tax item for ``taxable_item``, on the same invoice.

    Returns None when there is no tax to charge.

    Raises:
        InvalidItemTypeError: If ``taxable_item`` is not taxable.
    """
    if not is_taxable_item(taxable_item):
        raise InvalidItemTypeError(
            taxable_item.id, InvoiceItemType.TAXABLE.value, taxable_item.item_type.value
        )
    if _is_void(tax_amount):
        return None
    return InvoiceItem(
        invoice_id=taxable_item.invoice_id,
        account_id=taxable_item.account_id,
        item_type=InvoiceItemType.TAX,
        amount=tax_amount,
        linked_item_id=taxable_item.id,
        description=description,
        start_date=on,
    )


def build_adjustment_for_tax_item(
    tax_item: InvoiceItem, on: date, adjustment_amount: Decimal | None, description: str
) -> InvoiceItem | None:
    """Adjustment of ``tax_item``, on the invoice of that tax item.

    ``on`` is the date of the invoice whose processing triggered the
    adjustment. Returns None when there is nothing to adjust.

    Raises:
        InvalidItemTypeError: If ``tax_item`` is not a tax item.
    """
    if not is_tax_item(tax_item):
        raise InvalidItemTypeError(
            tax_item.id, InvoiceItemType.TAX.value, tax_item.item_type.value
        )
    if _is_void(adjustment_amount):
        return None
    return InvoiceItem(
        invoice_id=tax_item.invoice_id,
        account_id=tax_item.account_id,
        item_type=InvoiceItemType.ADJUSTMENT,
        amount=adjustment_amount,
        linked_item_id=tax_item.id,
        description=description,
        start_date=on,
    )


class SimpleTaxServiceImpl(SimpleTaxService):
    """Computes the tax items and tax adjustments to add on invoice creation.

    The caller persists the returned items along with the new invoice. Tags
    recording newly assigned tax codes are written directly, one by one, and
    are not rolled back if the computation fails afterwards.

    Nothing here serializes concurrent computations: invoice creation must
    not run concurrently for the same account.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        invoice_repo: InvoiceRepository,
        tag_repo: TagRepository,
        catalog_repo: CatalogRepository,
        config_handler: TenantConfigHandler,
        resolver_registry: TaxResolverRegistry | None = None,
    ) -> None:
        self._account_repo = account_repo
        self._invoice_repo = invoice_repo
        self._tag_repo = tag_repo
        self._catalog_repo = catalog_repo
        self._config_handler = config_handler
        self._resolver_registry = resolver_registry

    def get_additional_invoice_items(
        self, new_invoice: Invoice, tenant_id: str | None = None
    ) -> list[InvoiceItem]:
        """Tax items and adjustments to add, invoice after invoice.

        Args:
            new_invoice: The invoice being created, persisted or not.
            tenant_id: Tenant whose tax configuration applies.

        Returns:
            New tax items on ``new_invoice``, and adjustment items on tax
            items of any invoice of the account.

        Raises:
            AccountNotFoundError: If the invoice account does not exist.
            TaxContractViolationError: If invoice items break their linking
                contract. Nothing is proposed in that case.
        """
        with log_context(
            account_id=str(new_invoice.account_id), invoice_id=str(new_invoice.id)
        ):
            ctx = self.create_tax_computation_context(new_invoice, tenant_id)
            resolver = instantiate_tax_resolver(ctx, self._resolver_registry)
            new_tax_codes = self._add_missing_tax_codes(new_invoice, resolver, ctx)

            additional_items: list[InvoiceItem] = []
            for invoice in ctx.all_invoices:
                if invoice.id == new_invoice.id:
                    items = self._compute_tax_or_adjustment_items_for_new_invoice(
                        invoice, ctx, new_tax_codes
                    )
                else:
                    items = self._compute_adjustment_items_for_historical_invoice(
                        invoice, ctx
                    )
                additional_items.extend(items)

            logger.info(
                "tax_computation_completed",
                invoices=len(ctx.all_invoices),
                new_tax_codes=len(new_tax_codes),
                proposed_items=len(additional_items),
            )
            return additional_items

    def create_tax_computation_context(
        self, new_invoice: Invoice, tenant_id: str | None = None
    ) -> TaxComputationContext:
        return create_tax_computation_context(
            new_invoice,
            config=self._config_handler.get_config(tenant_id),
            account_repo=self._account_repo,
            invoice_repo=self._invoice_repo,
            tag_repo=self._tag_repo,
            catalog_repo=self._catalog_repo,
        )

    def _add_missing_tax_codes(
        self, new_invoice: Invoice, resolver: TaxResolver, ctx: TaxComputationContext
    ) -> dict[UUID, TaxCode]:
        """Record a tax code on the taxable items of the new invoice that lack one.

        Items whose tag already records a tax code name are never touched.

        Returns:
            The tax codes just recorded, by taxable item identifier.
        """
        directory = ctx.tax_code_directory
        configured = directory.resolve_tax_codes_from_config(new_invoice)

        new_tax_codes: dict[UUID, TaxCode] = {}
        for item in new_invoice.items:
            if not is_taxable_item(item):
                continue
            candidates = configured.get(item.id)
            if not candidates:
                continue
            if directory.has_tax_codes_tag(item.id):
                continue

            tax_code = resolver.applicable_code_for_item(candidates, item)
            if tax_code is None:
                logger.debug(
                    "no_applicable_tax_code",
                    item_id=str(item.id),
                    candidates=[code.name for code in candidates],
                )
                continue

            tag = Tag(
                object_id=item.id,
                field_value=tax_code.name,
                field_name=TAX_CODES_FIELD_NAME,
                account_id=ctx.account.id,
            )
            try:
                if directory.find_tag(item.id) is None:
                    self._tag_repo.add(tag)
                else:
                    # Blank tag: replace it.
                    self._tag_repo.save(tag)
            except TagStoreError:
                logger.error(
                    "tax_code_tag_creation_failed",
                    item_id=str(item.id),
                    tax_code=tax_code.name,
                    exc_info=True,
                )
                continue

            logger.info("tax_code_assigned", item_id=str(item.id), tax_code=tax_code.name)
            new_tax_codes[item.id] = tax_code
        return new_tax_codes

    def _compute_tax_or_adjustment_items_for_new_invoice(
        self,
        new_invoice: Invoice,
        ctx: TaxComputationContext,
        new_tax_codes: dict[UUID, TaxCode],
    ) -> list[InvoiceItem]:
        existing_tax_codes = ctx.tax_code_directory.find_existing_tax_codes(new_invoice)

        new_items: list[InvoiceItem] = []
        for item in new_invoice.items:
            if not is_taxable_item(item):
                continue
            tax_code = new_tax_codes.get(item.id) or _first_or_none(
                existing_tax_codes.get(item.id)
            )
            new_item = self._reconcile_taxable_item(
                item, tax_code, new_invoice.invoice_date, ctx, may_add_tax_item=True
            )
            if new_item is not None:
                new_items.append(new_item)
        return new_items

    def _compute_adjustment_items_for_historical_invoice(
        self, old_invoice: Invoice, ctx: TaxComputationContext
    ) -> list[InvoiceItem]:
        existing_tax_codes = ctx.tax_code_directory.find_existing_tax_codes(old_invoice)

        new_items: list[InvoiceItem] = []
        for item in old_invoice.items:
            if not is_taxable_item(item):
                continue
            if not ctx.tax_items_of(item):
                # Never taxed when issued: not ours to tax afterwards.
                continue
            tax_code = _first_or_none(existing_tax_codes.get(item.id))
            new_item = self._reconcile_taxable_item(
                item, tax_code, old_invoice.invoice_date, ctx, may_add_tax_item=False
            )
            if new_item is not None:
                new_items.append(new_item)
        return new_items

    def _reconcile_taxable_item(
        self,
        item: InvoiceItem,
        tax_code: TaxCode | None,
        on: date,
        ctx: TaxComputationContext,
        may_add_tax_item: bool,
    ) -> InvoiceItem | None:
        expected_tax = compute_tax_amount(
            ctx.adjusted_amount(item), tax_code, ctx.config.tax_amount_precision
        )
        tax_items = ctx.tax_items_of(item)
        current_tax = sum_amounts(ctx.adjusted_amount(tax_item) for tax_item in tax_items)
        if current_tax == expected_tax:
            return None

        missing_tax = expected_tax - current_tax
        description = (
            tax_code.tax_item_description
            if tax_code is not None
            else ctx.config.default_tax_item_description
        )

        if not tax_items:
            if not may_add_tax_item or missing_tax < ZERO:
                raise MissingTaxItemError(item.id, str(missing_tax))
            tax_item = build_tax_item(item, on, missing_tax, description)
            if tax_item is not None:
                logger.info(
                    "tax_item_proposed",
                    taxable_item_id=str(item.id),
                    amount=str(missing_tax),
                    tax_code=tax_code.name if tax_code is not None else None,
                )
            return tax_item

        largest_tax_item = ctx.largest_by_adjusted_amount(tax_items)
        adjustment = build_adjustment_for_tax_item(
            largest_tax_item, on, missing_tax, description
        )
        if adjustment is not None:
            logger.info(
                "tax_adjustment_proposed",
                taxable_item_id=str(item.id),
                tax_item_id=str(largest_tax_item.id),
                amount=str(missing_tax),
                expected_tax=str(expected_tax),
                current_tax=str(current_tax),
            )
        return adjustment


def _first_or_none(tax_codes: list[TaxCode] | None) -> TaxCode | None:
    """First recorded tax code of an item; the others are ignored."""
    if not tax_codes:
        return None
    return tax_codes[0]
