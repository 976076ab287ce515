"""Тесты PurchaseSession.

Coverage:
- refresh(): чтение каталога и авторитетных остатков, fail closed при ошибке чтения
- quote(): пересчёт из последних чтений, выбор транша
- submit()/sweep(): увеличение refresh token и инвалидация после любого исхода
- RaceRejection: отказ — retryable, не фатален
- Липкие терминальные состояния траншей и продажи
"""

import logging

import pytest

from src.core.domain.remainder import FreshRemainder, StaleRemainder
from src.core.domain.sale import Sale, SaleStatus, Tranche
from src.lifecycle import TrancheState
from src.purchase import (
    OutcomeKind,
    PurchaseMode,
    PurchaseOutcome,
    PurchaseSession,
    SubmitGuardError,
)

NOW_MS = 1_700_000_000_000
SALE_ID = "42"


class FakeSettlementClient:
    """Детерминированный коллаборатор: каталог, остатки и журнал покупок."""

    def __init__(self, sale: Sale, capacities: dict[int, int | str]):
        self.sale = sale
        self.capacities = dict(capacities)
        self.failing_reads: set[int] = set()
        self.reject_next = False
        self.raise_next = False
        self.submitted: list[tuple[str, int, int]] = []
        self.catalog_reads = 0

    def read_tranche_catalog(self, sale_id: str) -> Sale:
        self.catalog_reads += 1
        return self.sale

    def read_authoritative_remaining_capacity(self, sale_id: str, tranche_index: int) -> int | str:
        if tranche_index in self.failing_reads:
            raise ConnectionError("rpc timeout")
        return self.capacities[tranche_index]

    def submit_purchase(self, sale_id: str, tranche_index: int, spend_amount: int) -> PurchaseOutcome:
        self.submitted.append((sale_id, tranche_index, spend_amount))
        if self.raise_next:
            self.raise_next = False
            raise ConnectionError("broadcast failed")
        if self.reject_next:
            self.reject_next = False
            return PurchaseOutcome(kind=OutcomeKind.REJECTED, reason="insufficient capacity")
        self.capacities[tranche_index] -= spend_amount
        return PurchaseOutcome(kind=OutcomeKind.SUCCESS)


def make_sale(status: SaleStatus = SaleStatus.ACTIVE, remaining: int = 300) -> Sale:
    return Sale(
        total_supply_for_sale=600,
        status=status,
        tranches=[
            Tranche(index=0, total_price=1_000_000, total_coins=300, remaining=remaining, deadline=1_800_000_000),
            Tranche(index=1, total_price=2_000_000, total_coins=300, remaining=300, deadline=1_800_000_000),
        ],
    )


@pytest.fixture
def client():
    return FakeSettlementClient(make_sale(), {0: 40_000, 1: 2_000_000})


@pytest.fixture
def session(client):
    s = PurchaseSession(client, SALE_ID)
    s.refresh(now_ms=NOW_MS)
    return s


class TestRefresh:
    """Тесты refresh()."""

    def test_quote_before_refresh_raises(self, client):
        with pytest.raises(RuntimeError, match="refresh"):
            PurchaseSession(client, SALE_ID).quote(PurchaseMode.CURRENCY, 10_000, now_ms=NOW_MS)

    def test_reads_fresh_remainders(self, session):
        assert session.remainders == {
            0: FreshRemainder(value=40_000, refresh_token=0),
            1: FreshRemainder(value=2_000_000, refresh_token=0),
        }

    def test_failed_read_falls_back_and_logs(self, client, caplog):
        client.failing_reads.add(0)
        session = PurchaseSession(client, SALE_ID)

        with caplog.at_level(logging.WARNING):
            session.refresh(now_ms=NOW_MS)

        assert 0 not in session.remainders
        assert "Failed to read remaining capacity for tranche 0" in caplog.text

        quote = session.quote(PurchaseMode.CURRENCY, 25_000, now_ms=NOW_MS)
        # Индексатор: транш доступен, но sweep без авторитетного чтения недоступен
        assert quote.entry_allowed
        assert quote.tranche.index == 0
        assert not quote.sweepable
        assert quote.sweep.block_reason == "remainder_not_loaded"

    def test_catalog_read_error_propagates(self, client):
        def boom(sale_id):
            raise ConnectionError("indexer down")

        client.read_tranche_catalog = boom
        with pytest.raises(ConnectionError):
            PurchaseSession(client, SALE_ID).refresh(now_ms=NOW_MS)

    def test_indexer_zero_hides_tranche_until_next_read(self, client):
        """Отстающий индексатор (remaining=0) при неудачном чтении не исчерпывает транш навсегда."""
        client.sale = make_sale(remaining=0)
        client.failing_reads.add(0)
        session = PurchaseSession(client, SALE_ID)

        session.refresh(now_ms=NOW_MS)
        assert session.tranche_state(0) == TrancheState.SELECTABLE
        assert session.quote(PurchaseMode.CURRENCY, 25_000, now_ms=NOW_MS).tranche.index == 1

        client.failing_reads.clear()
        session.refresh(now_ms=NOW_MS)
        session.select(None)

        assert session.remainders[0] == FreshRemainder(value=40_000, refresh_token=0)
        quote = session.quote(PurchaseMode.CURRENCY, 25_000, now_ms=NOW_MS)
        assert quote.tranche.index == 0
        assert quote.entry_allowed
        assert quote.sweepable

    def test_decimal_string_reading_parsed(self, client):
        """uint256 строкой из системы расчётов разбирается в int."""
        client.capacities[0] = "40000"
        session = PurchaseSession(client, SALE_ID)

        session.refresh(now_ms=NOW_MS)

        assert session.remainders[0] == FreshRemainder(value=40_000, refresh_token=0)
        assert session.quote(PurchaseMode.CURRENCY, 0, now_ms=NOW_MS).sweepable

    @pytest.mark.parametrize("raw", [-1, "-1", "abc", 40_000.5, None])
    def test_malformed_reading_treated_as_failed_read(self, client, caplog, raw):
        client.capacities[0] = raw
        session = PurchaseSession(client, SALE_ID)

        with caplog.at_level(logging.WARNING):
            session.refresh(now_ms=NOW_MS)

        assert 0 not in session.remainders
        assert session.remainders[1] == FreshRemainder(value=2_000_000, refresh_token=0)
        assert "Failed to read remaining capacity for tranche 0" in caplog.text

        quote = session.quote(PurchaseMode.CURRENCY, 25_000, now_ms=NOW_MS)
        assert quote.entry_allowed
        assert quote.sweep.block_reason == "remainder_not_loaded"


class TestQuoteAndSubmit:
    """Тесты quote()/submit()."""

    def test_quote_selects_default(self, session):
        quote = session.quote(PurchaseMode.CURRENCY, 25_000, now_ms=NOW_MS)
        assert quote.tranche.index == 0
        assert quote.spend_amount == 20_000
        assert session.selected_index == 0

    def test_submit_success_bumps_token_and_invalidates(self, session, client):
        quote = session.quote(PurchaseMode.CURRENCY, 25_000, now_ms=NOW_MS)

        result = session.submit(quote)

        assert result.outcome.succeeded
        assert not result.retryable
        assert result.refresh_token == 1
        assert session.refresh_token == 1
        assert client.submitted == [(SALE_ID, 0, 20_000)]
        assert all(isinstance(r, StaleRemainder) for r in session.remainders.values())

    def test_rejection_is_retryable(self, session, client):
        """RaceRejection: отказ → retryable, token увеличен, повтор после refresh."""
        client.reject_next = True
        quote = session.quote(PurchaseMode.TOKEN, 10, now_ms=NOW_MS)

        result = session.submit(quote)

        assert not result.outcome.succeeded
        assert result.retryable
        assert session.refresh_token == 1

        session.refresh(now_ms=NOW_MS)
        retry = session.quote(PurchaseMode.TOKEN, 10, now_ms=NOW_MS)
        assert retry.refresh_token == 1
        # 30_000 ≤ 40_000: повтор допустим
        assert session.submit(retry).outcome.succeeded

    def test_exception_still_bumps_token(self, session, client):
        client.raise_next = True
        quote = session.quote(PurchaseMode.CURRENCY, 10_000, now_ms=NOW_MS)

        with pytest.raises(ConnectionError):
            session.submit(quote)

        assert session.refresh_token == 1

    def test_stale_quote_refused(self, session):
        quote = session.quote(PurchaseMode.CURRENCY, 10_000, now_ms=NOW_MS)
        session.submit(quote)

        with pytest.raises(SubmitGuardError, match="Stale quote"):
            session.submit(quote)

    def test_blocked_quote_refused(self, session, client):
        quote = session.quote(PurchaseMode.CURRENCY, 9_999, now_ms=NOW_MS)

        with pytest.raises(SubmitGuardError, match="rounds_to_zero"):
            session.submit(quote)
        assert client.submitted == []
        assert session.refresh_token == 0


class TestSweep:
    """Тесты sweep()."""

    def test_sweep_exhausts_tranche(self, session, client):
        quote = session.quote(PurchaseMode.CURRENCY, 0, now_ms=NOW_MS)
        assert quote.sweepable

        result = session.sweep(quote)

        assert result.sweep
        assert result.spend_amount == 40_000
        assert client.capacities[0] == 0

        # После refresh транш исчерпан и заменён следующим
        session.refresh(now_ms=NOW_MS)
        assert session.tranche_state(0) == TrancheState.EXHAUSTED
        quote = session.quote(PurchaseMode.CURRENCY, 25_000, now_ms=NOW_MS)
        assert quote.tranche.index == 1

    def test_sweep_refused_for_misaligned_remainder(self, session, client):
        client.capacities[0] = 45_000
        session.refresh(now_ms=NOW_MS)
        quote = session.quote(PurchaseMode.CURRENCY, 0, now_ms=NOW_MS)

        with pytest.raises(SubmitGuardError, match="remainder_not_lot_aligned"):
            session.sweep(quote)

    def test_sweep_refused_after_invalidation(self, session):
        """После попытки покупки sweep недоступен до нового авторитетного чтения."""
        session.submit(session.quote(PurchaseMode.CURRENCY, 10_000, now_ms=NOW_MS))
        quote = session.quote(PurchaseMode.CURRENCY, 0, now_ms=NOW_MS)
        assert quote.sweep.block_reason == "remainder_stale"


class TestStickyLifecycle:
    """Терминальные состояния не восстанавливаются."""

    def test_exhausted_tranche_not_revived_by_lagging_reads(self, session, client):
        client.capacities[0] = 0
        session.refresh(now_ms=NOW_MS)
        assert session.tranche_state(0) == TrancheState.EXHAUSTED

        # Авторитетное чтение недоступно, индексатор всё ещё показывает 300 токенов
        client.failing_reads.add(0)
        session.refresh(now_ms=NOW_MS)

        assert session.tranche_state(0) == TrancheState.EXHAUSTED
        assert [t.index for t in session.sale.tranches] == [1]

    def test_finalized_sale_not_reactivated(self, session, client, caplog):
        client.sale = make_sale(SaleStatus.FINALIZED)
        session.refresh(now_ms=NOW_MS)
        assert session.sale.status == SaleStatus.FINALIZED

        client.sale = make_sale(SaleStatus.ACTIVE)
        with caplog.at_level(logging.WARNING):
            session.refresh(now_ms=NOW_MS)

        assert session.sale.status == SaleStatus.FINALIZED
        assert "illegal_transition_FINALIZED_to_ACTIVE" in caplog.text
        quote = session.quote(PurchaseMode.CURRENCY, 25_000, now_ms=NOW_MS)
        assert quote.block_reason == "sale_finalized"
