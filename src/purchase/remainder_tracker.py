"""RemainderTracker — допуск sweep-покупки по авторитетному остатку транша.

Sweep допустим тогда и только тогда, когда:
    remainder > 0 AND remainder mod P* == 0
и чтение остатка авторитетное (FreshRemainder). StaleRemainder и отсутствие
чтения всегда дают отказ (fail closed).

Кратный лоту остаток можно выкупить одной покупкой ровно на эту сумму;
некратный остаток sweep не предлагает.

Чтение остатка инвалидируется после каждой попытки покупки (успех или отказ)
и никогда не выводится из результата санитайзера.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.core.domain.remainder import FreshRemainder, RemainderReading, StaleRemainder
from src.core.domain.sale import Tranche
from src.core.math.integer_safeguards import is_multiple_of
from src.core.math.lots import Lot, derive_lot

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class SweepResult:
    """Результат оценки sweep."""

    sweepable: bool
    sweep_amount: int  # 0 если sweep недоступен
    block_reason: str
    details: str


# =============================================================================
# PREDICATES
# =============================================================================


def is_lot_aligned_remainder(lot: Lot, remainder: int) -> bool:
    """remainder > 0 AND remainder mod P* == 0 (вырожденный лот → False)."""
    return remainder > 0 and is_multiple_of(remainder, lot.price)


def is_sweepable(tranche: Tranche, reading: Optional[RemainderReading]) -> bool:
    """Sweep допустим только для FreshRemainder, кратного P*."""
    if not isinstance(reading, FreshRemainder):
        return False
    return is_lot_aligned_remainder(derive_lot(tranche), reading.value)


# =============================================================================
# TRACKER
# =============================================================================


class RemainderTracker:
    """Оценка sweep и инвалидация чтений остатка."""

    def evaluate(
        self, tranche: Tranche, reading: Optional[RemainderReading]
    ) -> SweepResult:
        """Оценка sweep для выбранного транша.

        Args:
            tranche: выбранный транш
            reading: последнее чтение остатка (Fresh/Stale/None)

        Returns:
            SweepResult с суммой sweep (равной остатку) или причиной отказа
        """
        if reading is None:
            return self._blocked("remainder_not_loaded", f"tranche={tranche.index}")

        if isinstance(reading, StaleRemainder):
            return self._blocked(
                "remainder_stale",
                f"tranche={tranche.index}, stale_value={reading.value}",
            )

        lot = derive_lot(tranche)
        if lot.is_degenerate:
            return self._blocked("degenerate_tranche", f"tranche={tranche.index}")

        if reading.value == 0:
            return self._blocked("tranche_exhausted", f"tranche={tranche.index}")

        if not is_lot_aligned_remainder(lot, reading.value):
            return self._blocked(
                "remainder_not_lot_aligned",
                f"remainder={reading.value}, lot_price={lot.price}, "
                f"dust={reading.value % lot.price}",
            )

        logger.debug(
            "Tranche %s sweepable: remainder=%s (%s lots)",
            tranche.index, reading.value, reading.value // lot.price,
        )
        return SweepResult(
            sweepable=True,
            sweep_amount=reading.value,
            block_reason="",
            details=f"remainder={reading.value}, lots={reading.value // lot.price}",
        )

    @staticmethod
    def invalidate(reading: Optional[RemainderReading]) -> Optional[StaleRemainder]:
        """После попытки покупки чтение устаревает (Fresh → Stale)."""
        if isinstance(reading, FreshRemainder):
            return reading.invalidate()
        return reading

    @staticmethod
    def _blocked(reason: str, details: str) -> SweepResult:
        return SweepResult(
            sweepable=False, sweep_amount=0, block_reason=reason, details=details
        )
