"""Limits — вспомогательные расчёты "MAX" для обоих режимов ввода.

Currency-first: максимум = баланс минус резерв на комиссию, округлённый вниз до P*.
Token-first: максимум = остаток транша в токенах, округлённый вниз до C*.

Резерв на комиссию в token-first по умолчанию не применяется (асимметрия
задана явно через LimitsConfig, см. DESIGN.md).
"""

from dataclasses import dataclass
from typing import Optional

from src.core.domain.remainder import RemainderReading
from src.core.domain.sale import Tranche
from src.core.domain.units import effective_remaining_tokens
from src.core.math.integer_safeguards import validate_non_negative_int
from src.core.math.lots import (
    TokenSanitization,
    derive_lot,
    lots_from_spend,
    sanitize_currency_input,
    sanitize_token_input,
)


@dataclass(frozen=True)
class LimitsConfig:
    """Резервы на комиссию сети (в base currency units)."""

    currency_fee_reserve: int = 0
    token_fee_reserve: int = 0


def max_currency_spend(
    tranche: Tranche, balance: int, config: LimitsConfig | None = None
) -> int:
    """Максимальная санитизированная сумма в валюте для текущего баланса."""
    config = config or LimitsConfig()
    validate_non_negative_int(balance, "balance")

    budget = max(0, balance - config.currency_fee_reserve)
    return sanitize_currency_input(tranche, budget)


def max_token_quantity(
    tranche: Tranche,
    reading: Optional[RemainderReading] = None,
    balance: Optional[int] = None,
    config: LimitsConfig | None = None,
) -> TokenSanitization:
    """Максимальное санитизированное количество токенов.

    Ограничено остатком транша (Fresh приоритетнее индексатора); если передан
    balance — дополнительно тем, что можно оплатить за balance - token_fee_reserve.
    """
    config = config or LimitsConfig()
    tokens = effective_remaining_tokens(tranche, reading)

    if balance is not None:
        validate_non_negative_int(balance, "balance")
        budget = max(0, balance - config.token_fee_reserve)
        lot = derive_lot(tranche)
        tokens = min(tokens, lots_from_spend(lot, budget) * lot.coins)

    return sanitize_token_input(tranche, tokens)
