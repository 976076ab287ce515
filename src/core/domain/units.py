"""
Units — Централизованный модуль конверсии единиц

Единственный допустимый способ преобразований между:
- десятичной строкой пользователя ("0.25") и base units (int, 18 знаков)
- остатком ёмкости в валюте (wei) и остатком в токенах

ЗАПРЕЩЕНО использовать float для сумм: все суммы — целые base units.
Округление всегда вниз (как и в санитайзере покупок).
"""

import re
from typing import Final, Optional

from .remainder import FreshRemainder, RemainderReading
from .sale import Tranche


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Количество десятичных знаков base units (валюта и токены продажи)
BASE_UNIT_DECIMALS: Final[int] = 18

_DECIMAL_RE: Final = re.compile(r"^(?P<whole>\d*)(?:\.(?P<frac>\d*))?$")


# =============================================================================
# ПАРСИНГ / ФОРМАТИРОВАНИЕ
# =============================================================================


def parse_base_units(text: str, decimals: int = BASE_UNIT_DECIMALS) -> int:
    """
    Десятичная строка → base units.

    Пустая строка и невалидный ввод дают 0 (покупка будет заблокирована
    как rounds_to_zero). Знаки сверх decimals отбрасываются (округление вниз).

    Args:
        text: Ввод пользователя, например "1.5"
        decimals: Число десятичных знаков base units

    Returns:
        Неотрицательное целое количество base units

    Examples:
        >>> parse_base_units("1.5", decimals=2)
        150
        >>> parse_base_units("0.019", decimals=2)
        1
        >>> parse_base_units("abc")
        0
    """
    if decimals < 0:
        raise ValueError(f"decimals cannot be negative: {decimals}")

    match = _DECIMAL_RE.match(text.strip())
    if match is None:
        return 0

    whole = match.group("whole") or ""
    frac = match.group("frac") or ""
    if not whole and not frac:
        return 0

    frac = frac[:decimals].ljust(decimals, "0")
    return int(whole or "0") * 10**decimals + int(frac or "0")


def format_base_units(value: int, decimals: int = BASE_UNIT_DECIMALS) -> str:
    """
    base units → точная десятичная строка без лишних нулей.

    Examples:
        >>> format_base_units(150, decimals=2)
        '1.5'
        >>> format_base_units(200, decimals=2)
        '2'
    """
    if value < 0:
        raise ValueError(f"Amount cannot be negative: {value}")
    if decimals == 0:
        return str(value)

    whole, frac = divmod(value, 10**decimals)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{frac_text}" if frac_text else str(whole)


# =============================================================================
# ЁМКОСТЬ ТРАНША: ВАЛЮТА → ТОКЕНЫ
# =============================================================================


def remaining_tokens_from_capacity(tranche: Tranche, capacity: int) -> int:
    """
    Остаток ёмкости в валюте → остаток в токенах.

    remaining_tokens = floor(capacity * total_coins / total_price)
    При total_price == 0 используется индексированное значение remaining.
    """
    if capacity < 0:
        raise ValueError(f"Capacity cannot be negative: {capacity}")
    if tranche.total_price == 0:
        return tranche.remaining
    return capacity * tranche.total_coins // tranche.total_price


def sold_tokens_from_capacity(tranche: Tranche, capacity: int) -> int:
    """Продано токенов, выведенное из авторитетного остатка."""
    if tranche.total_price == 0:
        return tranche.sold
    return tranche.total_coins - remaining_tokens_from_capacity(tranche, capacity)


def effective_remaining_tokens(
    tranche: Tranche, reading: Optional[RemainderReading] = None
) -> int:
    """
    Остаток транша в токенах с приоритетом авторитетного чтения.

    FreshRemainder → пересчёт из валюты; иначе — индексированный remaining.
    """
    if isinstance(reading, FreshRemainder):
        return remaining_tokens_from_capacity(tranche, reading.value)
    return tranche.remaining
