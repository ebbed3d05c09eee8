from simple_tax.services.context import (
    TaxComputationContext,
    create_tax_computation_context,
)
from simple_tax.services.interfaces import (
    InvoiceItemTaxCodes,
    InvoiceTaxCodesService,
    SimpleTaxService,
)
from simple_tax.services.invoice_tax_codes import InvoiceTaxCodesServiceImpl
from simple_tax.services.resolving import (
    InvoiceItemEndDateBasedResolver,
    NullTaxResolver,
    TaxResolver,
    TaxResolverRegistry,
    default_registry,
    instantiate_tax_resolver,
    register_tax_resolver,
)
from simple_tax.services.simple_tax import SimpleTaxServiceImpl
from simple_tax.services.tax_codes import TaxCodeDirectory

__all__ = [
    "InvoiceItemEndDateBasedResolver",
    "InvoiceItemTaxCodes",
    "InvoiceTaxCodesService",
    "InvoiceTaxCodesServiceImpl",
    "NullTaxResolver",
    "SimpleTaxService",
    "SimpleTaxServiceImpl",
    "TaxCodeDirectory",
    "TaxComputationContext",
    "TaxResolver",
    "TaxResolverRegistry",
    "create_tax_computation_context",
    "default_registry",
    "instantiate_tax_resolver",
    "register_tax_resolver",
]
