"""
SubPocket domain rules - ежемесячный взнос, следующий платёж, прогресс,
группы обязательств
"""
import re
from decimal import Decimal
from typing import Iterable

ZERO = Decimal("0")

# Цвет группы: #RRGGBB
GROUP_COLOR_RE = re.compile(r"#[0-9A-Fa-f]{6}")


def monthly_contribution(target_value: Decimal, periodicity_months: int) -> Decimal:
    """Плановый взнос: target / periodicity (0 при некорректной периодичности)"""
    if periodicity_months <= 0:
        return ZERO
    return Decimal(target_value) / Decimal(periodicity_months)


def next_payment(
    target_value: Decimal,
    periodicity_months: int,
    balance: Decimal,
    enabled: bool = True
) -> Decimal:
    """
    Сколько нужно внести в этом месяце

    - balance < 0: долг + обычный взнос
    - остаток меньше взноса: только остаток (последний частичный платёж)
    - иначе: обычный взнос

    Example:
        >>> next_payment(Decimal("1200"), 12, Decimal("-50"))
        Decimal('150')
        >>> next_payment(Decimal("1200"), 12, Decimal("1150"))
        Decimal('50')
    """
    if not enabled:
        return ZERO
    monthly = monthly_contribution(target_value, periodicity_months)
    remaining = Decimal(target_value) - Decimal(balance)
    if balance < 0:
        return monthly + abs(balance)
    if remaining < monthly:
        return remaining
    return monthly


def progress(balance: Decimal, target_value: Decimal) -> Decimal:
    """balance / target; может быть < 0 (долг) и > 1 (переплата)"""
    if target_value <= 0:
        return ZERO
    return Decimal(balance) / Decimal(target_value)


def total_monthly(sub_pockets: Iterable) -> Decimal:
    """Сумма плановых взносов по включённым sub-pockets"""
    return sum(
        (monthly_contribution(sp.target_value, sp.periodicity_months) for sp in sub_pockets if sp.enabled),
        ZERO,
    )


def is_group_color(color: str) -> bool:
    return bool(color) and GROUP_COLOR_RE.fullmatch(color) is not None


def group_toggle_target(enabled_flags: Iterable[bool]) -> bool:
    """
    Новое состояние для всей группы: если хоть один выключен - включить всех,
    иначе выключить всех (пустая группа - выключить)
    """
    return any(not enabled for enabled in enabled_flags)
