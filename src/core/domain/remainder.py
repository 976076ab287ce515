"""
RemainderReading — остаток ёмкости транша (в base currency units)

Две формы одного значения:
- StaleRemainder: вторичные данные (индексатор/кэш), могут отставать от ledger
- FreshRemainder: авторитетное чтение из системы расчётов

Sweep-логика принимает только FreshRemainder — ограничение выражено типом,
а не флагом. Отсутствие чтения (None) эквивалентно Stale: sweep недоступен.
"""

from dataclasses import dataclass
from typing import Optional, Union

from src.core.math.integer_safeguards import validate_non_negative_int


@dataclass(frozen=True)
class StaleRemainder:
    """Вторичное значение остатка (может отставать)."""

    value: int
    refresh_token: int = 0

    def __post_init__(self) -> None:
        validate_non_negative_int(self.value, "Remainder")


@dataclass(frozen=True)
class FreshRemainder:
    """Авторитетное значение остатка, прочитанное после refresh_token."""

    value: int
    refresh_token: int = 0

    def __post_init__(self) -> None:
        validate_non_negative_int(self.value, "Remainder")

    def invalidate(self) -> StaleRemainder:
        """После любой попытки покупки чтение устаревает."""
        return StaleRemainder(value=self.value, refresh_token=self.refresh_token)


RemainderReading = Union[StaleRemainder, FreshRemainder]


def fresh_value(reading: Optional[RemainderReading]) -> Optional[int]:
    """Значение только для FreshRemainder, иначе None."""
    if isinstance(reading, FreshRemainder):
        return reading.value
    return None
