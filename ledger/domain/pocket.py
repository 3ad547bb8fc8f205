"""
Pocket domain rules
"""
from decimal import Decimal
from typing import Iterable

POCKET_TYPE_NORMAL = "normal"  # свободный баланс, накапливается движениями
POCKET_TYPE_FIXED = "fixed"    # агрегатор обязательств, баланс = сумма sub-pockets

POCKET_TYPES = (POCKET_TYPE_NORMAL, POCKET_TYPE_FIXED)


def fixed_pocket_balance(sub_pocket_balances: Iterable[Decimal]) -> Decimal:
    return sum((Decimal(b) for b in sub_pocket_balances), Decimal("0"))


def same_name(left: str, right: str) -> bool:
    """Имена карманов сравниваются без учёта регистра и крайних пробелов"""
    return left.strip().casefold() == right.strip().casefold()
