"""
Core math modules

Целочисленные примитивы и арифметика атомарных лотов траншей.
"""

# Integer Safeguards
from src.core.math.integer_safeguards import (
    euclid_gcd,
    floor_div_safe,
    is_multiple_of,
    validate_non_negative_int,
)

# Lots (LotReducer, PurchaseSanitizer, EstimateCalculator)
from src.core.math.lots import (
    DEGENERATE_LOT,
    Lot,
    TokenSanitization,
    derive_lot,
    lots_from_spend,
    lots_from_tokens,
    project_spend_for_tokens,
    project_tokens_for_spend,
    reduce_lot,
    sanitize_currency_input,
    sanitize_spend,
    sanitize_token_input,
    sanitize_tokens,
)

__all__ = [
    # Integer Safeguards
    "euclid_gcd",
    "floor_div_safe",
    "is_multiple_of",
    "validate_non_negative_int",
    # Lots — Types
    "DEGENERATE_LOT",
    "Lot",
    "TokenSanitization",
    # Lots — LotReducer
    "derive_lot",
    "reduce_lot",
    # Lots — PurchaseSanitizer
    "lots_from_spend",
    "lots_from_tokens",
    "sanitize_currency_input",
    "sanitize_spend",
    "sanitize_token_input",
    "sanitize_tokens",
    # Lots — EstimateCalculator
    "project_spend_for_tokens",
    "project_tokens_for_spend",
]
