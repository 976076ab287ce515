"""Purchase — пересчёт покупки, допуск sweep, MAX-хелперы и сессия покупки.

- engine: единая точка пересчёта PurchaseSnapshot → PurchaseQuote
- remainder_tracker: допуск sweep только по авторитетному остатку
- limits: MAX для currency-first и token-first
- session: refresh token, чтения и отправка покупок через SettlementClient
"""

from .engine import (
    EngineConfig,
    PurchaseEngine,
    PurchaseMode,
    PurchaseQuote,
    PurchaseSnapshot,
    recompute,
)
from .limits import LimitsConfig, max_currency_spend, max_token_quantity
from .remainder_tracker import RemainderTracker, SweepResult, is_sweepable
from .session import (
    OutcomeKind,
    PurchaseOutcome,
    PurchaseSession,
    SettlementClient,
    SubmitGuardError,
    SubmitResult,
)

__all__ = [
    # Engine
    "EngineConfig",
    "PurchaseEngine",
    "PurchaseMode",
    "PurchaseQuote",
    "PurchaseSnapshot",
    "recompute",
    # Limits
    "LimitsConfig",
    "max_currency_spend",
    "max_token_quantity",
    # Remainder tracker
    "RemainderTracker",
    "SweepResult",
    "is_sweepable",
    # Session
    "OutcomeKind",
    "PurchaseOutcome",
    "PurchaseSession",
    "SettlementClient",
    "SubmitGuardError",
    "SubmitResult",
]
