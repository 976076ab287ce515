"""
Domain models and value objects.

Contains fundamental domain entities like Sale, Tranche, remainder readings
and base-unit conversions.
"""

from src.core.domain.remainder import (
    FreshRemainder,
    RemainderReading,
    StaleRemainder,
    fresh_value,
)
from src.core.domain.sale import Sale, SaleStatus, Tranche
from src.core.domain.units import (
    BASE_UNIT_DECIMALS,
    effective_remaining_tokens,
    format_base_units,
    parse_base_units,
    remaining_tokens_from_capacity,
    sold_tokens_from_capacity,
)

__all__ = [
    # Catalog models
    "Sale",
    "SaleStatus",
    "Tranche",
    # Remainder readings
    "FreshRemainder",
    "StaleRemainder",
    "RemainderReading",
    "fresh_value",
    # Units module
    "BASE_UNIT_DECIMALS",
    "parse_base_units",
    "format_base_units",
    "remaining_tokens_from_capacity",
    "sold_tokens_from_capacity",
    "effective_remaining_tokens",
]
