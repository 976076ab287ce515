"""
Integer Safeguards — Безопасные целочисленные примитивы

Модуль обеспечивает корректность целочисленной арифметики лотов:
- Валидация неотрицательных целых (bool и float запрещены)
- Безопасное деление нацело: нулевой делитель даёт 0, а не ZeroDivisionError
- Алгоритм Евклида для НОД

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит (возвращается fallback)
2. Float никогда не участвует в расчёте сумм
3. Округление только вниз (floor)
"""


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_non_negative_int(value: int, name: str) -> None:
    """
    Проверка, что значение — неотрицательное целое.

    Args:
        value: Проверяемое значение
        name: Имя параметра для сообщения об ошибке

    Raises:
        ValueError: Если значение не int (или bool) либо отрицательное
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


# =============================================================================
# ДЕЛЕНИЕ И НОД
# =============================================================================


def floor_div_safe(numerator: int, denominator: int, fallback: int = 0) -> int:
    """
    Деление нацело вниз с защитой от нулевого делителя.

    Examples:
        >>> floor_div_safe(25_000, 10_000)
        2
        >>> floor_div_safe(25_000, 0)
        0
    """
    if denominator == 0:
        return fallback
    return numerator // denominator


def euclid_gcd(a: int, b: int) -> int:
    """
    НОД по алгоритму Евклида.

    gcd(a, 0) == a, gcd(0, 0) == 0.
    """
    validate_non_negative_int(a, "a")
    validate_non_negative_int(b, "b")

    while b != 0:
        a, b = b, a % b
    return a


def is_multiple_of(value: int, unit: int) -> bool:
    """
    Кратность value единице unit.

    Нулевая единица никогда не даёт кратности (вырожденный лот).
    """
    if unit == 0:
        return False
    return value % unit == 0
