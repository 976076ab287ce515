"""
Contract Validation Module

Модуль для валидации JSON контрактов внешних коллабораторов
(каталог продажи, чтение остатка, запрос покупки).
"""

from .validators import (
    ContractValidator,
    PurchaseRequestValidator,
    RemainderReadingValidator,
    SchemaLoader,
    TrancheCatalogValidator,
    get_schema_loader,
    parse_remainder_reading,
    validate_purchase_request,
    validate_remainder_reading,
    validate_tranche_catalog,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "TrancheCatalogValidator",
    "RemainderReadingValidator",
    "PurchaseRequestValidator",
    # Functions
    "get_schema_loader",
    "parse_remainder_reading",
    "validate_tranche_catalog",
    "validate_remainder_reading",
    "validate_purchase_request",
]
