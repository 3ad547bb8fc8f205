"""
Validation utilities
"""
import re
from decimal import Decimal, InvalidOperation

from ledger.domain.errors import InvalidAmountError

_CURRENCY_RE = re.compile(r"[A-Z]{3}")


def normalize_decimal_input(value: str) -> str:
    """
    Нормализовать ввод суммы: заменить запятую на точку

    Example:
        >>> normalize_decimal_input("100,50")
        "100.50"
    """
    return value.strip().replace(",", ".")


def parse_amount(value) -> Decimal:
    """
    Привести сумму к Decimal без проверки знака

    Принимает Decimal / int / str ("100,50" допускается).
    float переводится через str, чтобы не тянуть двоичный хвост.

    Raises:
        InvalidAmountError: не число, NaN или бесконечность
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(f"Некорректная сумма: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        raw = normalize_decimal_input(value) if isinstance(value, str) else str(value)
        try:
            amount = Decimal(raw)
        except (InvalidOperation, ValueError):
            raise InvalidAmountError(f"Некорректная сумма: {value!r}")

    if not amount.is_finite():
        raise InvalidAmountError(f"Некорректная сумма: {value!r}")
    return amount


def parse_positive_amount(value) -> Decimal:
    """
    Сумма движения: строго больше нуля

    Example:
        >>> parse_positive_amount("100,50")
        Decimal('100.50')
        >>> parse_positive_amount(0)
        InvalidAmountError: Сумма должна быть больше нуля
    """
    amount = parse_amount(value)
    if amount <= 0:
        raise InvalidAmountError("Сумма должна быть больше нуля")
    return amount


def is_valid_currency(code: str) -> bool:
    """Код валюты: строго 3 заглавные латинские буквы"""
    return bool(code) and _CURRENCY_RE.fullmatch(code) is not None
