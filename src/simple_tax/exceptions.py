"""Domain exception hierarchy for Simple Tax.

All domain-specific exceptions inherit from SimpleTaxError, which carries an
error code, an HTTP status code and extra context for API responses.
"""

from typing import Any
from uuid import UUID


class SimpleTaxError(Exception):
    """Base exception for all Simple Tax errors."""

    error_code: str = "SIMPLE_TAX_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Tax Resolver Errors
# =============================================================================


class TaxResolverError(SimpleTaxError):
    """Base exception for tax resolver errors."""

    error_code = "TAX_RESOLVER_ERROR"


class UnknownTaxResolverError(TaxResolverError):
    """Raised when no tax resolver is registered under a configured key."""

    error_code = "UNKNOWN_TAX_RESOLVER"

    def __init__(self, key: str) -> None:
        super().__init__(
            f"No tax resolver registered under key: {key}",
            context={"tax_resolver": key},
        )


class TaxResolverInstantiationError(TaxResolverError):
    """Raised when a registered tax resolver factory fails."""

    error_code = "TAX_RESOLVER_INSTANTIATION_FAILED"

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"Cannot instantiate tax resolver {key}: {reason}",
            context={"tax_resolver": key, "reason": reason},
        )


# =============================================================================
# Tag Errors
# =============================================================================


class TagStoreError(SimpleTaxError):
    """Raised when a tag cannot be written to the tag store."""

    error_code = "TAG_STORE_ERROR"

    def __init__(self, field_name: str, object_id: UUID | str, reason: str) -> None:
        super().__init__(
            f"Cannot save tag {field_name} on object {object_id}: {reason}",
            context={
                "field_name": field_name,
                "object_id": str(object_id),
                "reason": reason,
            },
        )


# =============================================================================
# Tax Computation Contract Errors
# =============================================================================


class TaxContractViolationError(SimpleTaxError):
    """Base exception for broken invoice item contracts.

    These abort the whole tax computation: guessing would corrupt the
    financial records of the account.
    """

    error_code = "TAX_CONTRACT_VIOLATION"


class InvalidItemTypeError(TaxContractViolationError):
    """Raised when an invoice item is not of the kind an operation requires."""

    error_code = "INVALID_ITEM_TYPE"

    def __init__(self, item_id: UUID | str, expected: str, actual: str) -> None:
        super().__init__(
            f"Invoice item {item_id} is not of a {expected} type: {actual}",
            context={"item_id": str(item_id), "expected": expected, "actual": actual},
        )


class MissingTaxItemError(TaxContractViolationError):
    """Raised when a tax adjustment is needed but no tax item can carry it."""

    error_code = "MISSING_TAX_ITEM"

    def __init__(self, taxable_item_id: UUID | str, adjustment: str) -> None:
        super().__init__(
            f"Cannot adjust tax of item {taxable_item_id} by {adjustment}: "
            "it has no tax item",
            context={"taxable_item_id": str(taxable_item_id), "adjustment": adjustment},
        )


# =============================================================================
# Lookup Errors
# =============================================================================


class InvoiceNotFoundError(SimpleTaxError):
    """Raised when an invoice cannot be found."""

    error_code = "INVOICE_NOT_FOUND"
    status_code = 404

    def __init__(self, invoice_id: UUID | str) -> None:
        super().__init__(
            f"Invoice not found: {invoice_id}",
            context={"invoice_id": str(invoice_id)},
        )


class AccountNotFoundError(SimpleTaxError):
    """Raised when an account cannot be found."""

    error_code = "ACCOUNT_NOT_FOUND"
    status_code = 404

    def __init__(self, account_id: UUID | str) -> None:
        super().__init__(
            f"Account not found: {account_id}",
            context={"account_id": str(account_id)},
        )
