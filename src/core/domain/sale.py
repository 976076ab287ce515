"""
Sale / Tranche — Модели каталога траншевой продажи

Immutable Pydantic модели, представляющие снапшот продажи, полученный от
индексатора: статус продажи, общий объём и упорядоченный список траншей.

Все суммы — целые числа в базовых единицах (wei для валюты, base units для токенов).
Индексатор отдаёт большие числа строками, поэтому строки приводятся к int.
Совместимость с JSON Schema: contracts/schema/tranche_catalog.json.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class SaleStatus(str, Enum):
    """
    Статус продажи.

    ACTIVE → FINALIZED | EXPIRED (оба терминальные для покупок).
    """

    ACTIVE = "ACTIVE"
    FINALIZED = "FINALIZED"
    EXPIRED = "EXPIRED"


# =============================================================================
# TRANCHE
# =============================================================================


def _coerce_int(v: Any) -> Any:
    """Строка с десятичным целым → int (индексатор кодирует bigint строкой)."""
    if isinstance(v, str):
        text = v.strip()
        if not text.lstrip("-").isdigit():
            raise ValueError(f"not an integer string: {v!r}")
        return int(text)
    return v


class Tranche(BaseModel):
    """
    Транш продажи: фиксированная цена total_price за фиксированное количество total_coins.

    Курс total_price / total_coins неизменен за всё время жизни транша.
    remaining/sold — вторичные (индексированные) значения в токенах, могут отставать.
    """

    index: int = Field(..., ge=0, description="Порядковый номер транша")
    total_price: int = Field(..., ge=0, description="Полная цена транша (base currency units)")
    total_coins: int = Field(..., ge=0, description="Полное количество токенов транша")
    sold: int = Field(0, ge=0, description="Продано токенов (по данным индексатора)")
    remaining: int = Field(..., ge=0, description="Осталось токенов (по данным индексатора)")
    deadline: int = Field(..., ge=0, description="Дедлайн (unix timestamp, секунды)")

    model_config = {"frozen": True}

    @field_validator(
        "index", "total_price", "total_coins", "sold", "remaining", "deadline", mode="before"
    )
    @classmethod
    def coerce_integer_strings(cls, v: Any) -> Any:
        return _coerce_int(v)

    @property
    def deadline_ms(self) -> int:
        """Дедлайн в миллисекундах."""
        return self.deadline * 1000

    @property
    def is_degenerate(self) -> bool:
        """Нулевая цена или нулевое количество: транш не покупаем."""
        return self.total_price == 0 or self.total_coins == 0

    @property
    def is_consistent(self) -> bool:
        """sold + remaining == total_coins (данные индексатора догнали ledger)."""
        return self.sold + self.remaining == self.total_coins


# =============================================================================
# SALE
# =============================================================================


class Sale(BaseModel):
    """
    Снапшот продажи (каталог траншей).

    Порядок tranches — порядок каталога; он используется как tie-break
    при выборе транша по умолчанию.
    """

    total_supply_for_sale: int = Field(..., ge=0, description="Общий объём токенов на продажу")
    status: SaleStatus = Field(..., description="Статус продажи")
    tranches: list[Tranche] = Field(default_factory=list, description="Упорядоченный список траншей")

    model_config = {"frozen": True}

    @field_validator("total_supply_for_sale", mode="before")
    @classmethod
    def coerce_supply(cls, v: Any) -> Any:
        return _coerce_int(v)

    @field_validator("tranches")
    @classmethod
    def validate_unique_indices(cls, v: list[Tranche]) -> list[Tranche]:
        """Индексы траншей уникальны в пределах продажи"""
        seen: set[int] = set()
        for tranche in v:
            if tranche.index in seen:
                raise ValueError(f"duplicate tranche index {tranche.index}")
            seen.add(tranche.index)
        return v

    @property
    def is_active(self) -> bool:
        return self.status == SaleStatus.ACTIVE

    def get_tranche(self, index: int) -> Tranche | None:
        """Поиск транша по индексу (None если не найден)."""
        for tranche in self.tranches:
            if tranche.index == index:
                return tranche
        return None

    @classmethod
    def from_indexer_payload(cls, payload: dict[str, Any]) -> "Sale":
        """
        Построение Sale из сырого ответа индексатора.

        Payload сначала проверяется против tranche_catalog JSON Schema,
        затем разбирается Pydantic моделью.

        Raises:
            jsonschema.ValidationError: payload не соответствует контракту
            pydantic.ValidationError: значения нарушают ограничения модели
        """
        # Локальный импорт: contracts зависит от domain только через этот вызов
        from src.core.contracts.validators import validate_tranche_catalog

        validate_tranche_catalog(payload)
        return cls.model_validate(payload)
