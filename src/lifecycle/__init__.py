"""Lifecycle — состояния траншей (SELECTABLE/EXHAUSTED/EXPIRED) и продажи
(ACTIVE/FINALIZED/EXPIRED). Терминальные состояния не восстанавливаются.
"""

from .state_machine import (
    SaleLifecycle,
    SaleRoute,
    SaleTransitionResult,
    TrancheLifecycle,
    TrancheState,
    TrancheTransitionResult,
    classify_tranche,
    is_expired,
    remaining_capacity,
    sale_route,
    status_badge,
)

__all__ = [
    "SaleLifecycle",
    "SaleRoute",
    "SaleTransitionResult",
    "TrancheLifecycle",
    "TrancheState",
    "TrancheTransitionResult",
    "classify_tranche",
    "is_expired",
    "remaining_capacity",
    "sale_route",
    "status_badge",
]
