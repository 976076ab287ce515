"""Purchase Session — потребитель чистого ядра со своим refresh token.

Единственный объект с изменяемым состоянием. Хранит последние чтения
(каталог и авторитетные остатки) и монотонно растущий refresh token:
- refresh(): перечитать каталог и остатки всех траншей
- quote(): собрать PurchaseSnapshot и вызвать PurchaseEngine.recompute
- submit() / sweep(): отправить покупку; после ЛЮБОГО исхода (успех, отказ,
  исключение) token увеличивается, чтения остатков инвалидируются

Гонка (RaceRejection): две покупки могут пройти локальную проверку, но
исполнится только одна. Отказ — ожидаемый восстанавливаемый исход
(retryable=True), не ошибка корректности.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Protocol

from src.core.contracts.validators import parse_remainder_reading, validate_purchase_request
from src.core.domain.remainder import FreshRemainder, RemainderReading
from src.core.domain.sale import Sale, SaleStatus
from src.lifecycle.state_machine import (
    TERMINAL_TRANCHE_STATES,
    SaleLifecycle,
    TrancheLifecycle,
    TrancheState,
)
from src.purchase.engine import PurchaseEngine, PurchaseMode, PurchaseQuote, PurchaseSnapshot
from src.purchase.remainder_tracker import RemainderTracker

logger = logging.getLogger(__name__)


# =============================================================================
# EXTERNAL INTERFACE
# =============================================================================


class OutcomeKind(str, Enum):
    SUCCESS = "SUCCESS"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class PurchaseOutcome:
    """Ответ системы расчётов на покупку."""

    kind: OutcomeKind
    reason: str = ""

    @property
    def succeeded(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS


class SettlementClient(Protocol):
    """Коллаборатор расчётов/индексации (сетевые таймауты — его ответственность)."""

    def read_tranche_catalog(self, sale_id: str) -> Sale: ...

    def read_authoritative_remaining_capacity(
        self, sale_id: str, tranche_index: int
    ) -> int | str: ...

    def submit_purchase(
        self, sale_id: str, tranche_index: int, spend_amount: int
    ) -> PurchaseOutcome: ...


class SubmitGuardError(RuntimeError):
    """Попытка отправить покупку, которую последний quote не допускает."""


@dataclass(frozen=True)
class SubmitResult:
    """Результат отправки покупки."""

    outcome: PurchaseOutcome
    tranche_index: int
    spend_amount: int
    sweep: bool
    refresh_token: int  # token ПОСЛЕ увеличения
    retryable: bool


# =============================================================================
# SESSION
# =============================================================================


def _now_ms() -> int:
    return int(time.time() * 1000)


class PurchaseSession:
    """Сессия покупки для одной продажи."""

    def __init__(
        self,
        client: SettlementClient,
        sale_id: str,
        engine: PurchaseEngine | None = None,
    ):
        self.client = client
        self.sale_id = sale_id
        self.engine = engine or PurchaseEngine()
        self.selected_index: Optional[int] = None

        self._refresh_token = 0
        self._sale: Optional[Sale] = None
        self._sale_status: Optional[SaleStatus] = None
        self._remainders: Dict[int, RemainderReading] = {}
        self._tranche_states: Dict[int, TrancheState] = {}

        self._tranche_lifecycle = TrancheLifecycle()
        self._sale_lifecycle = SaleLifecycle()

    @property
    def refresh_token(self) -> int:
        return self._refresh_token

    @property
    def sale(self) -> Optional[Sale]:
        """Каталог с учётом липких терминальных состояний (None до refresh)."""
        if self._sale is None:
            return None
        visible = [
            t for t in self._sale.tranches
            if self._tranche_states.get(t.index) not in TERMINAL_TRANCHE_STATES
        ]
        return self._sale.model_copy(
            update={"tranches": visible, "status": self._sale_status}
        )

    @property
    def remainders(self) -> Dict[int, RemainderReading]:
        return dict(self._remainders)

    def tranche_state(self, tranche_index: int) -> Optional[TrancheState]:
        return self._tranche_states.get(tranche_index)

    # -------------------------------------------------------------------------
    # Чтения
    # -------------------------------------------------------------------------

    def refresh(self, now_ms: Optional[int] = None) -> None:
        """Перечитать каталог и авторитетные остатки.

        Ошибка чтения каталога пробрасывается. Ошибка чтения остатка одного
        транша или значение, нарушающее контракт remainder_reading,
        логируется: для него используется индексированный remaining, sweep
        недоступен. Нулевой remaining индексатора скрывает транш только до
        следующего refresh.
        """
        now_ms = _now_ms() if now_ms is None else now_ms
        sale = self.client.read_tranche_catalog(self.sale_id)

        if self._sale_status is None:
            self._sale_status = sale.status
        else:
            transition = self._sale_lifecycle.evaluate_transition(self._sale_status, sale.status)
            if transition.transition_reason.startswith("illegal_transition"):
                logger.warning("Sale %s: %s ignored", self.sale_id, transition.transition_reason)
            self._sale_status = transition.new_status
        self._sale = sale

        remainders: Dict[int, RemainderReading] = {}
        for tranche in sale.tranches:
            try:
                raw = self.client.read_authoritative_remaining_capacity(
                    self.sale_id, tranche.index
                )
                value = parse_remainder_reading(self.sale_id, tranche.index, raw)
            except Exception as exc:
                logger.warning(
                    "Failed to read remaining capacity for tranche %s: %s", tranche.index, exc
                )
                continue
            remainders[tranche.index] = FreshRemainder(value=value, refresh_token=self._refresh_token)
        self._remainders = remainders

        for tranche in sale.tranches:
            current = self._tranche_states.get(tranche.index, TrancheState.SELECTABLE)
            result = self._tranche_lifecycle.evaluate_transition(
                current, tranche, remainders.get(tranche.index), now_ms
            )
            if result.transition_occurred:
                logger.info("Sale %s: %s", self.sale_id, result.details)
            self._tranche_states[tranche.index] = result.new_state

    # -------------------------------------------------------------------------
    # Пересчёт
    # -------------------------------------------------------------------------

    def select(self, tranche_index: Optional[int]) -> None:
        self.selected_index = tranche_index

    def quote(
        self, mode: PurchaseMode, raw_input: int, now_ms: Optional[int] = None
    ) -> PurchaseQuote:
        """Пересчёт всех производных значений из текущих чтений."""
        sale = self.sale
        if sale is None:
            raise RuntimeError("Catalog not loaded, call refresh() first")

        quote = self.engine.recompute(
            PurchaseSnapshot(
                sale=sale,
                mode=mode,
                raw_input=raw_input,
                now_ms=_now_ms() if now_ms is None else now_ms,
                selected_index=self.selected_index,
                remainders=self.remainders,
                refresh_token=self._refresh_token,
            )
        )
        if quote.tranche is not None:
            self.selected_index = quote.tranche.index
        return quote

    # -------------------------------------------------------------------------
    # Отправка
    # -------------------------------------------------------------------------

    def submit(self, quote: PurchaseQuote) -> SubmitResult:
        """Отправить санитизированную покупку из quote.

        Raises:
            SubmitGuardError: quote блокирует покупку или устарел
        """
        if not quote.entry_allowed:
            raise SubmitGuardError(f"Purchase blocked: {quote.block_reason}")
        return self._send(quote, quote.spend_amount, sweep=False)

    def sweep(self, quote: PurchaseQuote) -> SubmitResult:
        """Выкупить весь кратный лоту остаток транша одной покупкой.

        Raises:
            SubmitGuardError: sweep недоступен или quote устарел
        """
        if not quote.sweepable:
            raise SubmitGuardError(f"Sweep not available: {quote.sweep.block_reason}")
        return self._send(quote, quote.sweep.sweep_amount, sweep=True)

    def _send(self, quote: PurchaseQuote, spend_amount: int, sweep: bool) -> SubmitResult:
        if quote.refresh_token != self._refresh_token:
            raise SubmitGuardError(
                f"Stale quote: token {quote.refresh_token}, current {self._refresh_token}"
            )
        if quote.tranche is None:
            raise SubmitGuardError("Quote has no selected tranche")

        request = {
            "sale_id": self.sale_id,
            "tranche_index": quote.tranche.index,
            "spend_amount": spend_amount,
            "refresh_token": quote.refresh_token,
            "sweep": sweep,
        }
        validate_purchase_request(request)

        logger.info(
            "Submitting %s: sale=%s tranche=%s spend=%s",
            "sweep" if sweep else "purchase", self.sale_id, quote.tranche.index, spend_amount,
        )
        try:
            outcome = self.client.submit_purchase(self.sale_id, quote.tranche.index, spend_amount)
        finally:
            self._bump()

        if not outcome.succeeded:
            logger.warning(
                "Purchase rejected for tranche %s: %s (retry after refresh)",
                quote.tranche.index, outcome.reason,
            )

        return SubmitResult(
            outcome=outcome,
            tranche_index=quote.tranche.index,
            spend_amount=spend_amount,
            sweep=sweep,
            refresh_token=self._refresh_token,
            retryable=not outcome.succeeded,
        )

    def _bump(self) -> None:
        """Увеличить refresh token и инвалидировать все чтения остатков."""
        self._refresh_token += 1
        self._remainders = {
            index: RemainderTracker.invalidate(reading)
            for index, reading in self._remainders.items()
        }
