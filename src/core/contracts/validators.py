"""
JSON Schema Contract Validators

Данные от внешних коллабораторов (индексатор, система расчётов) проверяются
по JSON Schema контрактам до того, как попадут в доменные модели:
- tranche_catalog.json: каталог продажи от индексатора
- remainder_reading.json: авторитетный остаток ёмкости транша
- purchase_request.json: санитизированная покупка перед отправкой

Целые суммы в base units могут приходить строками (uint256 из JSON-RPC).
Контракт допускает только неотрицательные десятичные строки, разбор в int
делает parse_remainder_reading.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List

import jsonschema
from jsonschema import Draft202012Validator, ValidationError

SCHEMA_DIR = Path(__file__).parent / "schema"


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """Загрузчик схем с meta-validation и кэшем."""

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or SCHEMA_DIR
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка схемы по имени без расширения.

        Raises:
            FileNotFoundError: Файл схемы отсутствует
            ValueError: Схема не проходит meta-validation Draft 2020-12
        """
        cached = self._schemas.get(schema_name)
        if cached is not None:
            return cached

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e.message}") from e

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER: SchemaLoader | None = None


def get_schema_loader() -> SchemaLoader:
    """Общий загрузчик пакетных схем (создаётся при первом обращении)."""
    global _SCHEMA_LOADER
    if _SCHEMA_LOADER is None:
        _SCHEMA_LOADER = SchemaLoader()
    return _SCHEMA_LOADER


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Проверка payload одного контракта."""

    schema_name: str = ""

    def __init__(self, loader: SchemaLoader | None = None):
        self.schema = (loader or get_schema_loader()).load_schema(self.schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Payload нарушает контракт
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[ValidationError]:
        return self.validator.iter_errors(data)

    def error_messages(self, data: Dict[str, Any]) -> List[str]:
        """Все нарушения в виде 'path: message', упорядочены по пути."""
        errors = sorted(self.iter_errors(data), key=lambda e: list(map(str, e.absolute_path)))
        return [
            f"{'/'.join(map(str, e.absolute_path)) or '<root>'}: {e.message}"
            for e in errors
        ]


class TrancheCatalogValidator(ContractValidator):
    """Каталог продажи (ответ индексатора)."""

    schema_name = "tranche_catalog"


class RemainderReadingValidator(ContractValidator):
    """Авторитетное чтение остатка ёмкости транша."""

    schema_name = "remainder_reading"

    def parse(self, sale_id: str, tranche_index: int, remaining_capacity: Any) -> int:
        """
        Проверка сырого значения остатка и разбор в int.

        Raises:
            ValidationError: Значение не является неотрицательным целым
                или десятичной строкой
        """
        self.validate(
            {
                "sale_id": sale_id,
                "tranche_index": tranche_index,
                "remaining_capacity": remaining_capacity,
            }
        )
        return int(remaining_capacity)


class PurchaseRequestValidator(ContractValidator):
    """Санитизированная покупка перед отправкой."""

    schema_name = "purchase_request"


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_tranche_catalog(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Каталог нарушает контракт
    """
    TrancheCatalogValidator().validate(data)


def validate_remainder_reading(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Чтение остатка нарушает контракт
    """
    RemainderReadingValidator().validate(data)


def parse_remainder_reading(sale_id: str, tranche_index: int, remaining_capacity: Any) -> int:
    """Остаток ёмкости в base units из ответа системы расчётов."""
    return RemainderReadingValidator().parse(sale_id, tranche_index, remaining_capacity)


def validate_purchase_request(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Запрос покупки нарушает контракт
    """
    PurchaseRequestValidator().validate(data)
