"""
Movement domain rules - типы движений, направление и эффект на балансы
"""
from collections import OrderedDict
from dataclasses import dataclass, fields, replace
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from ledger.domain.errors import IntegrityViolationError

# Movement types
MOVEMENT_INCOME_NORMAL = "IncomeNormal"
MOVEMENT_EXPENSE_NORMAL = "ExpenseNormal"
MOVEMENT_INCOME_FIXED = "IncomeFixed"
MOVEMENT_EXPENSE_FIXED = "ExpenseFixed"
MOVEMENT_INVESTMENT_DEPOSIT = "InvestmentDeposit"
MOVEMENT_INVESTMENT_SHARES = "InvestmentShares"

MOVEMENT_TYPES = (
    MOVEMENT_INCOME_NORMAL,
    MOVEMENT_EXPENSE_NORMAL,
    MOVEMENT_INCOME_FIXED,
    MOVEMENT_EXPENSE_FIXED,
    MOVEMENT_INVESTMENT_DEPOSIT,
    MOVEMENT_INVESTMENT_SHARES,
)

INCREMENT_TYPES = frozenset({
    MOVEMENT_INCOME_NORMAL,
    MOVEMENT_INCOME_FIXED,
    MOVEMENT_INVESTMENT_DEPOSIT,
    MOVEMENT_INVESTMENT_SHARES,
})
FIXED_TYPES = frozenset({MOVEMENT_INCOME_FIXED, MOVEMENT_EXPENSE_FIXED})
INVESTMENT_TYPES = frozenset({MOVEMENT_INVESTMENT_DEPOSIT, MOVEMENT_INVESTMENT_SHARES})

# Orphan reasons
ORPHAN_REASON_ACCOUNT = "account"
ORPHAN_REASON_POCKET = "pocket"

# Effect targets
EFFECT_TARGET_POCKET = "pocket"
EFFECT_TARGET_SUB_POCKET = "sub_pocket"


def validate_movement_type(movement_type: str) -> None:
    if movement_type not in MOVEMENT_TYPES:
        raise IntegrityViolationError(
            f"Неверный тип движения: {movement_type}. Используйте один из: {', '.join(MOVEMENT_TYPES)}"
        )


def signed_amount(movement_type: str, amount: Decimal) -> Decimal:
    """Сумма со знаком: приход +amount, расход -amount"""
    return amount if movement_type in INCREMENT_TYPES else -amount


@dataclass(frozen=True)
class MovementEffect:
    """Куда и на сколько движение меняет баланс"""
    target: str  # pocket, sub_pocket
    target_id: int
    delta: Decimal
    is_investment: bool = False

    def reversed(self) -> "MovementEffect":
        return replace(self, delta=-self.delta)


@dataclass(frozen=True)
class Movement:
    """
    Логическое движение (снимок полей, влияющих на балансы)

    Не персистится - строится из MovementModel или из входных данных
    use case'а. Update строит новый снимок через merged(), чтобы
    валидировать итоговое состояние до того, как что-то изменится.
    """
    movement_type: str
    account_id: int
    pocket_id: int
    amount: Decimal
    sub_pocket_id: Optional[int] = None
    is_pending: bool = False
    is_orphaned: bool = False

    @classmethod
    def of(cls, record) -> "Movement":
        """Снимок из любого объекта с теми же атрибутами (ORM-строка)"""
        return cls(**{f.name: getattr(record, f.name) for f in fields(cls)})

    def merged(self, **changes) -> "Movement":
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in changes.items() if k in known})

    @property
    def is_income(self) -> bool:
        return self.movement_type in INCREMENT_TYPES

    @property
    def is_fixed(self) -> bool:
        return self.movement_type in FIXED_TYPES

    @property
    def is_investment(self) -> bool:
        return self.movement_type in INVESTMENT_TYPES

    @property
    def has_effect(self) -> bool:
        """Эффект отражён в балансах только у проведённых и не осиротевших"""
        return not self.is_pending and not self.is_orphaned

    def effect(self) -> Optional[MovementEffect]:
        """
        Эффект движения на балансы или None (pending / orphaned)

        С sub_pocket_id эффект идёт в sub-pocket, иначе - в карман.
        Инвестиционные движения всегда увеличивают карман, в котором записаны.
        """
        if not self.has_effect:
            return None
        delta = signed_amount(self.movement_type, self.amount)
        if self.sub_pocket_id is not None and not self.is_investment:
            return MovementEffect(EFFECT_TARGET_SUB_POCKET, self.sub_pocket_id, delta)
        return MovementEffect(EFFECT_TARGET_POCKET, self.pocket_id, delta, is_investment=self.is_investment)


def month_key(value: date) -> str:
    """Ключ месяца "YYYY-MM" по displayed_date"""
    return f"{value.year:04d}-{value.month:02d}"


def group_by_month(movements: Iterable) -> Dict[str, List]:
    """
    Сгруппировать движения по месяцу displayed_date

    Порядок внутри группы сохраняется (вызывающий сортирует по created_at).
    """
    grouped: Dict[str, List] = OrderedDict()
    for movement in movements:
        grouped.setdefault(month_key(movement.displayed_date), []).append(movement)
    return grouped
