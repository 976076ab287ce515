"""TrancheSelector — отбор доступных траншей и выбор транша по умолчанию.

Предикат доступности транша в момент now:
    deadline > now AND remaining_capacity > 0
где remaining_capacity берётся из FreshRemainder, если он есть, иначе из
индексированного remaining (политика "prefer fresh, fall back").

Выбор по умолчанию: минимальный total_price среди доступных, при равенстве —
порядок каталога. Выбор пересчитывается при любом изменении каталога или
остатков: ставший недоступным транш не остаётся выбранным.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from src.core.domain.remainder import FreshRemainder, RemainderReading
from src.core.domain.sale import Sale, Tranche
from src.lifecycle.state_machine import TrancheState, classify_tranche

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class SelectorConfig:
    """Конфигурация селектора.

    require_fresh_remainder: строгая политика — транш доступен только при
    наличии авторитетного чтения остатка (без fallback на индексатор).
    """

    require_fresh_remainder: bool = False


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class SelectionResult:
    """Результат согласования выбранного транша."""

    selected: Optional[Tranche]
    selectable: tuple[Tranche, ...]
    reselected: bool
    reason: str


# =============================================================================
# SELECTOR
# =============================================================================


class TrancheSelector:
    """Отбор доступных траншей и выбор транша по умолчанию."""

    def __init__(self, config: SelectorConfig | None = None):
        self.config = config or SelectorConfig()

    def is_selectable(
        self,
        tranche: Tranche,
        now_ms: int,
        reading: Optional[RemainderReading] = None,
    ) -> bool:
        """deadline > now AND remaining_capacity > 0."""
        if self.config.require_fresh_remainder and not isinstance(reading, FreshRemainder):
            return False
        return classify_tranche(tranche, reading, now_ms) == TrancheState.SELECTABLE

    def selectable_tranches(
        self,
        sale: Sale,
        now_ms: int,
        remainders: Mapping[int, RemainderReading] | None = None,
    ) -> list[Tranche]:
        """Доступные транши в порядке каталога."""
        remainders = remainders or {}
        return [
            t for t in sale.tranches
            if self.is_selectable(t, now_ms, remainders.get(t.index))
        ]

    @staticmethod
    def default_tranche(selectable: Sequence[Tranche]) -> Optional[Tranche]:
        """Самый дешёвый транш; tie-break — порядок каталога (min стабилен)."""
        if not selectable:
            return None
        return min(selectable, key=lambda t: t.total_price)

    def reconcile_selection(
        self,
        sale: Sale,
        selected_index: Optional[int],
        now_ms: int,
        remainders: Mapping[int, RemainderReading] | None = None,
    ) -> SelectionResult:
        """Согласование текущего выбора с актуальными данными.

        Выбор пользователя сохраняется, пока транш доступен; иначе (или если
        выбора нет) подставляется транш по умолчанию.
        """
        selectable = tuple(self.selectable_tranches(sale, now_ms, remainders))

        if selected_index is not None:
            for tranche in selectable:
                if tranche.index == selected_index:
                    return SelectionResult(
                        selected=tranche,
                        selectable=selectable,
                        reselected=False,
                        reason="selection_kept",
                    )
            logger.debug(
                "Tranche %s no longer selectable, falling back to default", selected_index
            )

        default = self.default_tranche(selectable)
        if default is None:
            return SelectionResult(
                selected=None,
                selectable=selectable,
                reselected=selected_index is not None,
                reason="no_selectable_tranche",
            )

        return SelectionResult(
            selected=default,
            selectable=selectable,
            reselected=selected_index != default.index,
            reason="default_selected" if selected_index is None else "selection_replaced",
        )


# =============================================================================
# MODULE-LEVEL API
# =============================================================================

_DEFAULT_SELECTOR = TrancheSelector()


def selectable_tranches(
    sale: Sale,
    now_millis: int,
    remainders: Mapping[int, RemainderReading] | None = None,
) -> list[Tranche]:
    """Доступные транши продажи (политика по умолчанию)."""
    return _DEFAULT_SELECTOR.selectable_tranches(sale, now_millis, remainders)


def default_tranche(selectable: Sequence[Tranche]) -> Optional[Tranche]:
    """Самый дешёвый из доступных траншей или None."""
    return TrancheSelector.default_tranche(selectable)


def display_order(tranches: Sequence[Tranche]) -> list[Tranche]:
    """Порядок отображения: по возрастанию total_price, стабильно."""
    return sorted(tranches, key=lambda t: t.total_price)
