"""Centralized configuration management using pydantic-settings.

Configuration is loaded from environment variables with sensible defaults.
All settings can be overridden via environment variables or a .env file.

Tax configuration is per tenant. The process-wide ``Settings.tax`` value is
the default tenant configuration; ``TenantConfigHandler`` layers explicit
per-tenant overrides on top of it. A configuration is read once, when a
``TaxComputationContext`` is built, so ``TenantConfigHandler.reload()`` only
affects reconciliation runs that start afterwards.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from simple_tax.domain.tax_codes import TaxCode

DEFAULT_TAX_ITEM_DESC = "tax"
DEFAULT_TAX_AMOUNT_PRECISION = 2
DEFAULT_TAX_RESOLVER = "null"


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class TaxCodeDefinition(BaseModel):
    """Configured attributes of a single tax code."""

    model_config = ConfigDict(frozen=True)

    rate: Decimal = Field(..., ge=Decimal("0"))
    tax_item_description: str | None = None
    starting_on: date | None = None
    stopping_after: date | None = None


class SimpleTaxConfig(BaseModel):
    """Tax configuration of one tenant.

    Examples (as environment variables for the default tenant):
        SIMPLE_TAX_TAX__TAX_AMOUNT_PRECISION=2
        SIMPLE_TAX_TAX__TAX_RESOLVER=item_end_date
        SIMPLE_TAX_TAX__TAX_CODES='{"VAT_20_0%": {"rate": "0.20"}}'
        SIMPLE_TAX_TAX__PRODUCTS='{"Standard": ["VAT_20_0%"]}'
    """

    model_config = ConfigDict(frozen=True)

    tax_amount_precision: int = Field(default=DEFAULT_TAX_AMOUNT_PRECISION, ge=0)
    default_tax_item_description: str = DEFAULT_TAX_ITEM_DESC
    tax_resolver: str = Field(
        default=DEFAULT_TAX_RESOLVER,
        description="Registry key of the tax resolver to instantiate",
    )
    tax_codes: dict[str, TaxCodeDefinition] = Field(default_factory=dict)
    products: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Product name to candidate tax code names",
    )

    @field_validator("tax_resolver", mode="before")
    @classmethod
    def strip_tax_resolver(cls, v: str | None) -> str:
        """Fall back to the default resolver when left blank."""
        if v is None or not str(v).strip():
            return DEFAULT_TAX_RESOLVER
        return str(v).strip()

    def find_tax_code(self, name: str) -> TaxCode | None:
        definition = self.tax_codes.get(name)
        if definition is None:
            return None
        return TaxCode(
            name=name,
            rate=definition.rate,
            tax_item_description=(
                definition.tax_item_description or self.default_tax_item_description
            ),
            starting_on=definition.starting_on,
            stopping_after=definition.stopping_after,
        )

    def tax_code_names_for_product(self, product_name: str) -> list[str]:
        return list(self.products.get(product_name, []))


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Override via environment variables (prefixed with SIMPLE_TAX_) or .env file.

    Examples:
        SIMPLE_TAX_LOG_LEVEL=DEBUG
        SIMPLE_TAX_LOG_FORMAT=json
        SIMPLE_TAX_TAX__DEFAULT_TAX_ITEM_DESCRIPTION=VAT
    """

    model_config = SettingsConfigDict(
        env_prefix="SIMPLE_TAX_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Simple Tax"
    app_version: str = "0.1.0"
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format: 'json' for production, 'console' for development",
    )
    log_file: Path | None = Field(default=None, description="Optional log file path")

    # Default tenant tax configuration
    tax: SimpleTaxConfig = Field(default_factory=SimpleTaxConfig)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()


class TenantConfigHandler:
    """Hands out the tax configuration of each tenant.

    Tenants without an explicit override share the default configuration
    from ``Settings.tax``.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._explicit_settings = settings
        self._overrides: dict[str, SimpleTaxConfig] = {}

    @property
    def default_config(self) -> SimpleTaxConfig:
        settings = self._explicit_settings or get_settings()
        return settings.tax

    def get_config(self, tenant_id: str | None = None) -> SimpleTaxConfig:
        if tenant_id is not None and tenant_id in self._overrides:
            return self._overrides[tenant_id]
        return self.default_config

    def set_config(self, tenant_id: str, config: SimpleTaxConfig) -> None:
        self._overrides[tenant_id] = config

    def reload(self) -> None:
        """Forget overrides and re-read settings from the environment."""
        self._overrides.clear()
        get_settings.cache_clear()
