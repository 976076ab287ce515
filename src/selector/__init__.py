"""Selector — отбор доступных траншей и выбор транша по умолчанию (самый дешёвый)."""

from .tranche_selector import (
    SelectionResult,
    SelectorConfig,
    TrancheSelector,
    default_tranche,
    display_order,
    selectable_tranches,
)

__all__ = [
    "SelectionResult",
    "SelectorConfig",
    "TrancheSelector",
    "default_tranche",
    "display_order",
    "selectable_tranches",
]
