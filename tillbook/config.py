"""
Settings — runtime configuration.

    settings = Settings.from_env()          # TILLBOOK_* variables
    settings = (
        Settings()
        .with_tax(TaxRule.flat("38"))
        .with_retry(identity_attempts=5)
        .with_timezone("Asia/Manila")
    )
    configure_logging(settings)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import tzinfo
from decimal import Decimal, InvalidOperation
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tillbook.bills import DiscountRates, Pricing, DiscountInputs, TaxRule
from tillbook.identity import DEFAULT_PREFIX

MIN_ATTEMPTS = 1
MAX_ATTEMPTS = 5

_ENV_PREFIX = "TILLBOOK_"


def _clamp_attempts(value: int) -> int:
    return max(MIN_ATTEMPTS, min(MAX_ATTEMPTS, value))


# ═══════════════════════════════════════════════════════════════════════════════
# Retry
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Retry:
    """
    Bounded local retries.

    identity_attempts: tries to claim a free order number/id
    write_attempts:    tries of read → recompute → conditional write
    """

    identity_attempts: int = 3
    write_attempts: int = 3

    def __post_init__(self) -> None:
        object.__setattr__(self, "identity_attempts", _clamp_attempts(self.identity_attempts))
        object.__setattr__(self, "write_attempts", _clamp_attempts(self.write_attempts))


# ═══════════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Settings:
    """
    Immutable settings. Each with_* returns a new Settings.
    """

    database_url: str = "sqlite+aiosqlite:///tillbook.db"
    timezone: str = "UTC"
    order_prefix: str = DEFAULT_PREFIX
    tax: TaxRule = field(default_factory=TaxRule)
    discount_rates: DiscountRates = field(default_factory=DiscountRates)
    retry: Retry = field(default_factory=Retry)
    log_level: str = "INFO"

    @property
    def tz(self) -> tzinfo:
        return ZoneInfo(self.timezone)

    def pricing(self, discounts: DiscountInputs | None = None) -> Pricing:
        """Pricing for a new order under the current tax and rates."""
        return Pricing(
            discounts=discounts or DiscountInputs(),
            tax=self.tax,
            rates=self.discount_rates,
        )

    def with_database_url(self, url: str) -> Settings:
        return replace(self, database_url=url)

    def with_timezone(self, name: str) -> Settings:
        _zone(name, "timezone")
        return replace(self, timezone=name)

    def with_order_prefix(self, prefix: str) -> Settings:
        if not prefix:
            raise ValueError("order prefix must not be empty")
        return replace(self, order_prefix=prefix)

    def with_tax(self, tax: TaxRule) -> Settings:
        return replace(self, tax=tax)

    def with_discount_rates(self, rates: DiscountRates) -> Settings:
        return replace(self, discount_rates=rates)

    def with_retry(
        self,
        *,
        identity_attempts: int | None = None,
        write_attempts: int | None = None,
    ) -> Settings:
        """
        Example:
            .with_retry(identity_attempts=5)   # clamped to 1..5
        """
        return replace(
            self,
            retry=Retry(
                identity_attempts=(
                    self.retry.identity_attempts if identity_attempts is None else identity_attempts
                ),
                write_attempts=(
                    self.retry.write_attempts if write_attempts is None else write_attempts
                ),
            ),
        )

    def with_log_level(self, level: str) -> Settings:
        return replace(self, log_level=_level(level, "log_level"))

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """
        Load from TILLBOOK_* variables. Unset variables keep their defaults.

        Raises ValueError naming the variable for malformed values.
        """
        source = os.environ if env is None else env

        def get(name: str) -> str | None:
            value = source.get(_ENV_PREFIX + name)
            return value.strip() if value is not None and value.strip() else None

        defaults = cls()
        rates = defaults.discount_rates
        tax = defaults.tax

        if (raw := get("TAX_RATE")) is not None:
            tax = TaxRule.percent(_decimal(raw, "TAX_RATE"))
        elif (raw := get("TAX_AMOUNT")) is not None:
            tax = TaxRule.flat(_decimal(raw, "TAX_AMOUNT"))

        timezone_name = get("TIMEZONE") or defaults.timezone
        _zone(timezone_name, "TIMEZONE")

        return cls(
            database_url=get("DATABASE_URL") or defaults.database_url,
            timezone=timezone_name,
            order_prefix=get("ORDER_PREFIX") or defaults.order_prefix,
            tax=tax,
            discount_rates=DiscountRates(
                pwd_senior=_rate(get("PWD_SENIOR_RATE"), "PWD_SENIOR_RATE", rates.pwd_senior),
                employee=_rate(get("EMPLOYEE_RATE"), "EMPLOYEE_RATE", rates.employee),
                shareholder=_rate(get("SHAREHOLDER_RATE"), "SHAREHOLDER_RATE", rates.shareholder),
            ),
            retry=Retry(
                identity_attempts=_int(get("IDENTITY_ATTEMPTS"), "IDENTITY_ATTEMPTS", 3),
                write_attempts=_int(get("WRITE_ATTEMPTS"), "WRITE_ATTEMPTS", 3),
            ),
            log_level=_level(get("LOG_LEVEL") or defaults.log_level, "LOG_LEVEL"),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════════════════════


def _decimal(raw: str, name: str) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ValueError(f"{_ENV_PREFIX}{name}: not a number: {raw!r}") from None
    if not value.is_finite() or value < 0:
        raise ValueError(f"{_ENV_PREFIX}{name}: must be a non-negative number, got {raw!r}")
    return value


def _rate(raw: str | None, name: str, default: Decimal) -> Decimal:
    if raw is None:
        return default
    value = _decimal(raw, name)
    if value > 1:
        raise ValueError(f"{_ENV_PREFIX}{name}: rate must be within 0..1, got {raw!r}")
    return value


def _int(raw: str | None, name: str, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{_ENV_PREFIX}{name}: not an integer: {raw!r}") from None


def _zone(name: str, var: str) -> None:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"{_ENV_PREFIX}{var}: unknown timezone {name!r}") from None


def _level(raw: str, var: str) -> str:
    level = raw.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"{_ENV_PREFIX}{var}: unknown log level {raw!r}")
    return level


# ═══════════════════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════════════════

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Route tillbook loggers to stderr at settings.log_level."""
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logging.getLogger("tillbook").setLevel(settings.log_level)


__all__ = (
    "Retry",
    "Settings",
    "configure_logging",
    "LOG_FORMAT",
    "MIN_ATTEMPTS",
    "MAX_ATTEMPTS",
)
