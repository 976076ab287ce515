"""
Lots — атомарные лоты транша, санитизация покупок и оценки

Транш обменивает total_price (валюта) на total_coins (токены). Поскольку обе
величины целые, без остатка исполняются только суммы, кратные атомарному
лоту (P*, C*):

    g  = gcd(total_price, total_coins)
    P* = total_price / g
    C* = total_coins / g        gcd(P*, C*) == 1

Режимы ввода:
- currency-first: purchase_amount = floor(S / P*) * P*
- token-first:    lots = floor(T / C*); rounded_tokens = lots * C*; required_spend = lots * P*

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Округление только вниз: результат никогда не превышает намерение пользователя
2. Вырожденный лот (0, 0) всегда даёт ноль, деления на ноль нет
3. Санитизация идемпотентна
4. Оценки в точности равны тому, что зачислит успешная покупка
"""

from dataclasses import dataclass
from typing import NamedTuple

from src.core.domain.sale import Tranche
from src.core.math.integer_safeguards import (
    euclid_gcd,
    floor_div_safe,
    validate_non_negative_int,
)


# =============================================================================
# TYPES
# =============================================================================


class Lot(NamedTuple):
    """Атомарный лот транша (P*, C*)."""

    price: int
    coins: int

    @property
    def is_degenerate(self) -> bool:
        return self.price == 0 or self.coins == 0


DEGENERATE_LOT = Lot(0, 0)


@dataclass(frozen=True)
class TokenSanitization:
    """Результат санитизации в режиме token-first."""

    lots: int
    rounded_tokens: int
    required_spend: int


# =============================================================================
# LOT REDUCER
# =============================================================================


def reduce_lot(total_price: int, total_coins: int) -> Lot:
    """
    Сокращение (total_price, total_coins) до несократимой пары.

    Args:
        total_price: Полная цена транша (>= 0)
        total_coins: Полное количество токенов транша (>= 0)

    Returns:
        Lot(P*, C*); Lot(0, 0) если любой из аргументов равен нулю

    Raises:
        ValueError: Если аргумент отрицательный или не целый

    Examples:
        >>> reduce_lot(1_000_000, 300)
        Lot(price=10000, coins=3)
        >>> reduce_lot(0, 300)
        Lot(price=0, coins=0)
    """
    validate_non_negative_int(total_price, "total_price")
    validate_non_negative_int(total_coins, "total_coins")

    if total_price == 0 or total_coins == 0:
        return DEGENERATE_LOT

    g = euclid_gcd(total_price, total_coins)
    return Lot(price=total_price // g, coins=total_coins // g)


def derive_lot(tranche: Tranche) -> Lot:
    """Атомарный лот транша."""
    return reduce_lot(tranche.total_price, tranche.total_coins)


# =============================================================================
# PURCHASE SANITIZER
# =============================================================================


def lots_from_spend(lot: Lot, raw_spend: int) -> int:
    """Целое число лотов, покрываемых суммой raw_spend (floor)."""
    validate_non_negative_int(raw_spend, "raw_spend")
    if lot.is_degenerate:
        return 0
    return floor_div_safe(raw_spend, lot.price)


def lots_from_tokens(lot: Lot, raw_token_qty: int) -> int:
    """Целое число лотов в raw_token_qty токенах (floor)."""
    validate_non_negative_int(raw_token_qty, "raw_token_qty")
    if lot.is_degenerate:
        return 0
    return floor_div_safe(raw_token_qty, lot.coins)


def sanitize_spend(lot: Lot, raw_spend: int) -> int:
    """Currency-first по готовому лоту: floor(S / P*) * P*."""
    return lots_from_spend(lot, raw_spend) * lot.price


def sanitize_tokens(lot: Lot, raw_token_qty: int) -> TokenSanitization:
    """Token-first по готовому лоту."""
    lots = lots_from_tokens(lot, raw_token_qty)
    return TokenSanitization(
        lots=lots,
        rounded_tokens=lots * lot.coins,
        required_spend=lots * lot.price,
    )


def sanitize_currency_input(tranche: Tranche, raw_spend: int) -> int:
    """
    Округление суммы в валюте вниз до кратного P*.

    Сценарий: total_price=1_000_000, total_coins=300 → P*=10_000;
    raw_spend=25_000 → 20_000 (2 лота).
    """
    return sanitize_spend(derive_lot(tranche), raw_spend)


def sanitize_token_input(tranche: Tranche, raw_token_qty: int) -> TokenSanitization:
    """
    Округление количества токенов вниз до кратного C* и расчёт требуемой суммы.

    Сценарий: C*=3, P*=10_000; raw_token_qty=10 → lots=3, rounded_tokens=9,
    required_spend=30_000.
    """
    return sanitize_tokens(derive_lot(tranche), raw_token_qty)


# =============================================================================
# ESTIMATE CALCULATOR
# =============================================================================


def project_tokens_for_spend(tranche: Tranche, purchase_amount: int) -> int:
    """estimated_tokens = floor(purchase_amount / P*) * C*"""
    lot = derive_lot(tranche)
    return lots_from_spend(lot, purchase_amount) * lot.coins


def project_spend_for_tokens(tranche: Tranche, rounded_tokens: int) -> int:
    """estimated_spend = floor(rounded_tokens / C*) * P* (равно required_spend)"""
    lot = derive_lot(tranche)
    return lots_from_tokens(lot, rounded_tokens) * lot.price
