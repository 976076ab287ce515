"""Purchase Engine — единая точка пересчёта всех производных значений покупки.

Принимает immutable PurchaseSnapshot (каталог, выбранный транш, режим ввода,
сырой ввод, последние чтения остатков, refresh token) и возвращает
PurchaseQuote со всеми производными значениями сразу:
- выбранный транш (после согласования с каталогом и остатками)
- атомарный лот (P*, C*)
- санитизированная сумма / количество токенов
- оценка встречной величины
- допуск sweep

Ничего не патчится инкрементально: любое изменение входа → новый snapshot →
полный пересчёт.

Порядок проверок:
1. Статус продажи (только ACTIVE ведёт в движок покупок)
2. Выбор транша (доступен, иначе транш по умолчанию)
3. Вырожденный лот
4. Санитизация и оценка
5. Округление до нуля
6. Превышение авторитетного остатка (только при FreshRemainder)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from src.core.domain.remainder import FreshRemainder, RemainderReading
from src.core.domain.sale import Sale, Tranche
from src.core.math.integer_safeguards import validate_non_negative_int
from src.core.math.lots import (
    DEGENERATE_LOT,
    Lot,
    derive_lot,
    lots_from_spend,
    sanitize_spend,
    sanitize_tokens,
)
from src.lifecycle.state_machine import SaleRoute, sale_route
from src.purchase.remainder_tracker import RemainderTracker, SweepResult
from src.selector.tranche_selector import SelectorConfig, TrancheSelector

logger = logging.getLogger(__name__)


# =============================================================================
# TYPES
# =============================================================================


class PurchaseMode(str, Enum):
    """Режим ввода."""

    CURRENCY = "CURRENCY"  # пользователь вводит сумму в валюте
    TOKEN = "TOKEN"  # пользователь вводит количество токенов


@dataclass(frozen=True)
class PurchaseSnapshot:
    """Immutable вход пересчёта."""

    sale: Sale
    mode: PurchaseMode
    raw_input: int
    now_ms: int
    selected_index: Optional[int] = None
    remainders: Mapping[int, RemainderReading] = field(default_factory=dict)
    refresh_token: int = 0

    def __post_init__(self) -> None:
        # Копия только для чтения: последующие изменения словаря вызывающего
        # не меняют snapshot
        object.__setattr__(self, "remainders", MappingProxyType(dict(self.remainders)))


@dataclass(frozen=True)
class PurchaseQuote:
    """Результат пересчёта: все производные значения одного snapshot."""

    entry_allowed: bool
    block_reason: str
    refresh_token: int
    route: SaleRoute
    mode: PurchaseMode

    # Выбор транша
    tranche: Optional[Tranche]
    selection_reason: str

    # Лот и санитизация
    lot: Lot
    raw_input: int
    lots: int
    spend_amount: int  # сумма к отправке (кратна P*)
    token_amount: int  # количество токенов, которое будет зачислено (кратно C*)

    # Остаток и sweep
    remainder_is_fresh: bool
    sweep: SweepResult

    details: str

    @property
    def estimated_tokens(self) -> int:
        """Currency-first: floor(purchase_amount / P*) * C*."""
        return self.token_amount

    @property
    def estimated_spend(self) -> int:
        """Token-first: floor(rounded_tokens / C*) * P*."""
        return self.spend_amount

    @property
    def sweepable(self) -> bool:
        return self.sweep.sweepable

    @property
    def retry_hint(self) -> bool:
        """Блокировка, которую может снять повторное чтение данных."""
        return self.block_reason in {"exceeds_remaining_capacity", "no_selectable_tranche"}


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class EngineConfig:
    """Конфигурация пересчёта."""

    selector: SelectorConfig = field(default_factory=SelectorConfig)
    # Блокировать покупку, превышающую авторитетный остаток
    enforce_fresh_capacity: bool = True


# =============================================================================
# ENGINE
# =============================================================================


class PurchaseEngine:
    """Пересчёт PurchaseQuote из PurchaseSnapshot."""

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self.selector = TrancheSelector(self.config.selector)
        self.tracker = RemainderTracker()

    def recompute(self, snapshot: PurchaseSnapshot) -> PurchaseQuote:
        """Полный пересчёт.

        Raises:
            ValueError: Если raw_input отрицательный или не целый
        """
        validate_non_negative_int(snapshot.raw_input, "raw_input")

        # 1. Статус продажи
        route = sale_route(snapshot.sale.status)
        if route != SaleRoute.PRIMARY_TRANCHES:
            return self._blocked_result(
                snapshot,
                route=route,
                reason=f"sale_{snapshot.sale.status.value.lower()}",
            )

        # 2. Выбор транша
        selection = self.selector.reconcile_selection(
            snapshot.sale,
            snapshot.selected_index,
            snapshot.now_ms,
            snapshot.remainders,
        )
        tranche = selection.selected
        if tranche is None:
            return self._blocked_result(
                snapshot, route=route, reason=selection.reason,
                selection_reason=selection.reason,
            )

        reading = snapshot.remainders.get(tranche.index)
        sweep = self.tracker.evaluate(tranche, reading)

        # 3. Вырожденный лот
        lot = derive_lot(tranche)
        if lot.is_degenerate:
            return self._blocked_result(
                snapshot, route=route, reason="degenerate_tranche",
                tranche=tranche, selection_reason=selection.reason, sweep=sweep,
                reading=reading,
            )

        # 4. Санитизация и оценка
        if snapshot.mode == PurchaseMode.CURRENCY:
            spend_amount = sanitize_spend(lot, snapshot.raw_input)
            lots = lots_from_spend(lot, spend_amount)
            token_amount = lots * lot.coins
        else:
            sanitized = sanitize_tokens(lot, snapshot.raw_input)
            lots = sanitized.lots
            spend_amount = sanitized.required_spend
            token_amount = sanitized.rounded_tokens

        block_reason = ""
        # 5. Округление до нуля
        if lots == 0:
            block_reason = "rounds_to_zero"
        # 6. Превышение авторитетного остатка
        elif (
            self.config.enforce_fresh_capacity
            and isinstance(reading, FreshRemainder)
            and spend_amount > reading.value
        ):
            block_reason = "exceeds_remaining_capacity"

        quote = PurchaseQuote(
            entry_allowed=block_reason == "",
            block_reason=block_reason,
            refresh_token=snapshot.refresh_token,
            route=route,
            mode=snapshot.mode,
            tranche=tranche,
            selection_reason=selection.reason,
            lot=lot,
            raw_input=snapshot.raw_input,
            lots=lots,
            spend_amount=spend_amount,
            token_amount=token_amount,
            remainder_is_fresh=isinstance(reading, FreshRemainder),
            sweep=sweep,
            details=(
                f"tranche={tranche.index}, lot=({lot.price}, {lot.coins}), "
                f"raw={snapshot.raw_input}, lots={lots}, spend={spend_amount}, "
                f"tokens={token_amount}"
            ),
        )
        logger.debug("Recomputed quote (token=%s): %s", snapshot.refresh_token, quote.details)
        return quote

    def _blocked_result(
        self,
        snapshot: PurchaseSnapshot,
        route: SaleRoute,
        reason: str,
        tranche: Optional[Tranche] = None,
        selection_reason: str = "",
        sweep: Optional[SweepResult] = None,
        reading: Optional[RemainderReading] = None,
    ) -> PurchaseQuote:
        """Результат с заблокированной покупкой и нулевыми суммами."""
        return PurchaseQuote(
            entry_allowed=False,
            block_reason=reason,
            refresh_token=snapshot.refresh_token,
            route=route,
            mode=snapshot.mode,
            tranche=tranche,
            selection_reason=selection_reason,
            lot=derive_lot(tranche) if tranche is not None else DEGENERATE_LOT,
            raw_input=snapshot.raw_input,
            lots=0,
            spend_amount=0,
            token_amount=0,
            remainder_is_fresh=isinstance(reading, FreshRemainder),
            sweep=sweep or SweepResult(
                sweepable=False, sweep_amount=0, block_reason=reason, details="purchase blocked"
            ),
            details=f"blocked: {reason}",
        )


_DEFAULT_ENGINE = PurchaseEngine()


def recompute(snapshot: PurchaseSnapshot) -> PurchaseQuote:
    """Пересчёт с конфигурацией по умолчанию."""
    return _DEFAULT_ENGINE.recompute(snapshot)
