"""Lifecycle State Machine — состояния траншей и продажи.

Транш:
- SELECTABLE → SELECTABLE (успешная покупка, ёмкость > 0, дедлайн не наступил)
- SELECTABLE → EXHAUSTED (авторитетный остаток достиг 0, терминальное)
- SELECTABLE → EXPIRED (дедлайн прошёл, терминальное)

Продажа:
- ACTIVE → FINALIZED (терминальное; покупки идут через вторичный рынок)
- ACTIVE → EXPIRED (терминальное)

Никакой переход не восстанавливает терминальное состояние.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.core.domain.remainder import FreshRemainder, RemainderReading
from src.core.domain.sale import SaleStatus, Tranche


class TrancheState(str, Enum):
    """Состояние транша относительно покупок."""
    SELECTABLE = "SELECTABLE"
    EXHAUSTED = "EXHAUSTED"
    EXPIRED = "EXPIRED"


class SaleRoute(str, Enum):
    """Куда направлять пользователя в зависимости от статуса продажи."""
    PRIMARY_TRANCHES = "PRIMARY_TRANCHES"
    SECONDARY_MARKET = "SECONDARY_MARKET"
    CLOSED = "CLOSED"


TERMINAL_TRANCHE_STATES = frozenset({TrancheState.EXHAUSTED, TrancheState.EXPIRED})
TERMINAL_SALE_STATES = frozenset({SaleStatus.FINALIZED, SaleStatus.EXPIRED})


# =============================================================================
# PREDICATES
# =============================================================================


def remaining_capacity(
    tranche: Tranche, reading: Optional[RemainderReading] = None
) -> int:
    """Остаток ёмкости: FreshRemainder приоритетнее индексированного remaining.

    Единицы различаются (валюта vs токены), но для предиката важен только знак.
    """
    if isinstance(reading, FreshRemainder):
        return reading.value
    return tranche.remaining


def is_expired(tranche: Tranche, now_ms: int) -> bool:
    """Дедлайн наступил: deadline <= now."""
    return tranche.deadline_ms <= now_ms


def classify_tranche(
    tranche: Tranche, reading: Optional[RemainderReading], now_ms: int
) -> TrancheState:
    """Наблюдаемое состояние транша. EXPIRED приоритетнее EXHAUSTED."""
    if is_expired(tranche, now_ms):
        return TrancheState.EXPIRED
    if remaining_capacity(tranche, reading) <= 0:
        return TrancheState.EXHAUSTED
    return TrancheState.SELECTABLE


# =============================================================================
# TRANCHE LIFECYCLE
# =============================================================================


@dataclass(frozen=True)
class TrancheTransitionResult:
    """Результат перехода состояния транша."""

    tranche_index: int
    new_state: TrancheState
    previous_state: TrancheState
    transition_occurred: bool
    transition_reason: str
    details: str


class TrancheLifecycle:
    """State machine транша.

    Терминальные состояния (EXHAUSTED, EXPIRED) липкие: устаревшие данные
    индексатора с ёмкостью > 0 не возвращают транш в SELECTABLE.
    """

    def evaluate_transition(
        self,
        current_state: TrancheState,
        tranche: Tranche,
        reading: Optional[RemainderReading],
        now_ms: int,
    ) -> TrancheTransitionResult:
        """Оценка перехода по свежему наблюдению.

        Args:
            current_state: текущее состояние транша
            tranche: транш из последнего каталога
            reading: последнее чтение остатка (Fresh/Stale/None)
            now_ms: текущее время (Unix timestamp ms)
        """
        if current_state in TERMINAL_TRANCHE_STATES:
            return TrancheTransitionResult(
                tranche_index=tranche.index,
                new_state=current_state,
                previous_state=current_state,
                transition_occurred=False,
                transition_reason="terminal_state",
                details=f"Tranche {tranche.index} is {current_state.value}",
            )

        observed = classify_tranche(tranche, reading, now_ms)

        # Исчерпание фиксируется только по авторитетному чтению: нулевой
        # remaining индексатора скрывает транш лишь до следующего refresh
        if observed == TrancheState.EXHAUSTED and not isinstance(reading, FreshRemainder):
            return TrancheTransitionResult(
                tranche_index=tranche.index,
                new_state=current_state,
                previous_state=current_state,
                transition_occurred=False,
                transition_reason="exhaustion_unconfirmed",
                details=f"indexed remaining={tranche.remaining}, no authoritative reading",
            )

        if observed == current_state:
            return TrancheTransitionResult(
                tranche_index=tranche.index,
                new_state=current_state,
                previous_state=current_state,
                transition_occurred=False,
                transition_reason="no_transition",
                details=f"capacity={remaining_capacity(tranche, reading)}",
            )

        return TrancheTransitionResult(
            tranche_index=tranche.index,
            new_state=observed,
            previous_state=current_state,
            transition_occurred=True,
            transition_reason=f"{current_state.value}_to_{observed.value}",
            details=(
                f"Tranche {tranche.index}: {current_state.value} → {observed.value}, "
                f"deadline_ms={tranche.deadline_ms}, now_ms={now_ms}"
            ),
        )


# =============================================================================
# SALE LIFECYCLE
# =============================================================================


@dataclass(frozen=True)
class SaleTransitionResult:
    """Результат перехода статуса продажи."""

    new_status: SaleStatus
    previous_status: SaleStatus
    transition_occurred: bool
    transition_reason: str


class SaleLifecycle:
    """Статус продажи: разрешены только ACTIVE → FINALIZED | EXPIRED."""

    def evaluate_transition(
        self, current_status: SaleStatus, observed_status: SaleStatus
    ) -> SaleTransitionResult:
        if observed_status == current_status:
            return SaleTransitionResult(
                new_status=current_status,
                previous_status=current_status,
                transition_occurred=False,
                transition_reason="no_transition",
            )

        if current_status == SaleStatus.ACTIVE:
            return SaleTransitionResult(
                new_status=observed_status,
                previous_status=current_status,
                transition_occurred=True,
                transition_reason=f"ACTIVE_to_{observed_status.value}",
            )

        # Терминальный статус: наблюдение отклоняется
        return SaleTransitionResult(
            new_status=current_status,
            previous_status=current_status,
            transition_occurred=False,
            transition_reason=f"illegal_transition_{current_status.value}_to_{observed_status.value}",
        )


def sale_route(status: SaleStatus) -> SaleRoute:
    """FINALIZED обходит движок покупок полностью."""
    if status == SaleStatus.ACTIVE:
        return SaleRoute.PRIMARY_TRANCHES
    if status == SaleStatus.FINALIZED:
        return SaleRoute.SECONDARY_MARKET
    return SaleRoute.CLOSED


def status_badge(status: SaleStatus) -> str:
    """Вариант индикатора статуса: success / info / error."""
    if status == SaleStatus.ACTIVE:
        return "success"
    if status == SaleStatus.FINALIZED:
        return "info"
    return "error"
