"""
Тесты доменных моделей: Sale, Tranche, RemainderReading, units

Проверяет:
- Приведение строковых bigint индексатора к int
- Immutability (frozen=True)
- Ограничения полей (ge=0, уникальные индексы)
- Парсинг/форматирование десятичных сумм (округление вниз)
- Конверсию остатка ёмкости из валюты в токены
"""

import pytest
from pydantic import ValidationError

from src.core.domain import (
    FreshRemainder,
    Sale,
    SaleStatus,
    StaleRemainder,
    Tranche,
    effective_remaining_tokens,
    format_base_units,
    fresh_value,
    parse_base_units,
    remaining_tokens_from_capacity,
    sold_tokens_from_capacity,
)


@pytest.fixture
def tranche_payload() -> dict:
    return {
        "index": 0,
        "total_price": "1000000",
        "total_coins": "300",
        "sold": "120",
        "remaining": "180",
        "deadline": "2000000000",
    }


@pytest.fixture
def sale_payload(tranche_payload: dict) -> dict:
    second = dict(tranche_payload, index=1, total_price="500000")
    return {
        "total_supply_for_sale": "600",
        "status": "ACTIVE",
        "tranches": [tranche_payload, second],
    }


class TestTranche:
    """Тесты модели Tranche"""

    def test_integer_strings_coerced(self, tranche_payload: dict) -> None:
        tranche = Tranche.model_validate(tranche_payload)
        assert tranche.total_price == 1_000_000
        assert tranche.total_coins == 300
        assert tranche.deadline == 2_000_000_000
        assert tranche.deadline_ms == 2_000_000_000_000

    def test_huge_values_exact(self, tranche_payload: dict) -> None:
        payload = dict(tranche_payload, total_price=str(10**40 + 7))
        assert Tranche.model_validate(payload).total_price == 10**40 + 7

    def test_negative_rejected(self, tranche_payload: dict) -> None:
        with pytest.raises(ValidationError):
            Tranche.model_validate(dict(tranche_payload, total_price="-5"))

    def test_garbage_string_rejected(self, tranche_payload: dict) -> None:
        with pytest.raises(ValidationError):
            Tranche.model_validate(dict(tranche_payload, total_coins="1e18"))

    def test_frozen(self, tranche_payload: dict) -> None:
        tranche = Tranche.model_validate(tranche_payload)
        with pytest.raises(ValidationError):
            tranche.remaining = 0  # type: ignore[misc]

    def test_consistency_and_degenerate_flags(self, tranche_payload: dict) -> None:
        tranche = Tranche.model_validate(tranche_payload)
        assert tranche.is_consistent
        assert not tranche.is_degenerate

        lagging = Tranche.model_validate(dict(tranche_payload, sold="100"))
        assert not lagging.is_consistent

        degenerate = Tranche.model_validate(dict(tranche_payload, total_price="0"))
        assert degenerate.is_degenerate


class TestSale:
    """Тесты модели Sale"""

    def test_parse(self, sale_payload: dict) -> None:
        sale = Sale.model_validate(sale_payload)
        assert sale.status == SaleStatus.ACTIVE
        assert sale.is_active
        assert sale.total_supply_for_sale == 600
        assert [t.index for t in sale.tranches] == [0, 1]

    def test_get_tranche(self, sale_payload: dict) -> None:
        sale = Sale.model_validate(sale_payload)
        assert sale.get_tranche(1).total_price == 500_000
        assert sale.get_tranche(7) is None

    def test_duplicate_indices_rejected(self, sale_payload: dict) -> None:
        sale_payload["tranches"][1]["index"] = 0
        with pytest.raises(ValidationError, match="duplicate tranche index"):
            Sale.model_validate(sale_payload)

    def test_unknown_status_rejected(self, sale_payload: dict) -> None:
        with pytest.raises(ValidationError):
            Sale.model_validate(dict(sale_payload, status="PAUSED"))

    def test_from_indexer_payload(self, sale_payload: dict) -> None:
        sale = Sale.from_indexer_payload(sale_payload)
        assert sale.get_tranche(0).remaining == 180


class TestRemainderReadings:
    """Тесты Stale/Fresh"""

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError):
            FreshRemainder(value=-1)
        with pytest.raises(ValueError):
            StaleRemainder(value=-1)

    @pytest.mark.parametrize("value", ["40000", 40_000.0, True])
    def test_non_integer_rejected(self, value) -> None:
        """Строки и float из внешних чтений не попадают в арифметику лотов"""
        with pytest.raises(ValueError, match="must be an integer"):
            FreshRemainder(value=value)
        with pytest.raises(ValueError, match="must be an integer"):
            StaleRemainder(value=value)

    def test_invalidate(self) -> None:
        fresh = FreshRemainder(value=40_000, refresh_token=3)
        stale = fresh.invalidate()
        assert isinstance(stale, StaleRemainder)
        assert stale.value == 40_000
        assert stale.refresh_token == 3

    def test_fresh_value(self) -> None:
        assert fresh_value(FreshRemainder(value=5)) == 5
        assert fresh_value(StaleRemainder(value=5)) is None
        assert fresh_value(None) is None


class TestUnitsParsing:
    """Тесты parse_base_units / format_base_units"""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1", 10**18),
            ("0.25", 25 * 10**16),
            (" 1.5 ", 15 * 10**17),
            (".5", 5 * 10**17),
            ("2.", 2 * 10**18),
            ("0.000000000000000001", 1),
        ],
    )
    def test_parse(self, text: str, expected: int) -> None:
        assert parse_base_units(text) == expected

    def test_extra_decimals_truncated(self) -> None:
        """Знаки сверх decimals отбрасываются (округление вниз)"""
        assert parse_base_units("0.0000000000000000019") == 1
        assert parse_base_units("0.019", decimals=2) == 1

    @pytest.mark.parametrize("text", ["", "   ", ".", "abc", "-1", "1e18", "1,5", "1.2.3"])
    def test_invalid_input_is_zero(self, text: str) -> None:
        assert parse_base_units(text) == 0

    @pytest.mark.parametrize(
        "value,expected",
        [(0, "0"), (10**18, "1"), (15 * 10**17, "1.5"), (1, "0.000000000000000001")],
    )
    def test_format(self, value: int, expected: str) -> None:
        assert format_base_units(value) == expected

    def test_format_zero_decimals(self) -> None:
        assert format_base_units(42, decimals=0) == "42"

    def test_format_negative_rejected(self) -> None:
        with pytest.raises(ValueError):
            format_base_units(-1)


class TestCapacityConversion:
    """Тесты конверсии остатка ёмкости в токены"""

    @pytest.fixture
    def tranche(self) -> Tranche:
        return Tranche(
            index=0, total_price=1_000_000, total_coins=300,
            sold=120, remaining=180, deadline=2_000_000_000,
        )

    def test_remaining_tokens(self, tranche: Tranche) -> None:
        assert remaining_tokens_from_capacity(tranche, 40_000) == 12
        assert remaining_tokens_from_capacity(tranche, 45_000) == 13  # floor(13.5)

    def test_sold_tokens(self, tranche: Tranche) -> None:
        assert sold_tokens_from_capacity(tranche, 40_000) == 288

    def test_zero_price_falls_back_to_indexer(self) -> None:
        tranche = Tranche(index=0, total_price=0, total_coins=300, sold=5, remaining=295, deadline=1)
        assert remaining_tokens_from_capacity(tranche, 40_000) == 295
        assert sold_tokens_from_capacity(tranche, 40_000) == 5

    def test_effective_remaining_prefers_fresh(self, tranche: Tranche) -> None:
        assert effective_remaining_tokens(tranche, FreshRemainder(value=40_000)) == 12
        assert effective_remaining_tokens(tranche, StaleRemainder(value=40_000)) == 180
        assert effective_remaining_tokens(tranche, None) == 180
