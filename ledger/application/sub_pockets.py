"""
SubPocket use cases - обязательства внутри fixed-кармана

Модуль работает напрямую с ORM через EntityStore.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from ledger.domain.errors import NotFoundError, IntegrityViolationError, InvalidAmountError
from ledger.domain.pocket import POCKET_TYPE_FIXED, same_name
from ledger.domain import sub_pocket as rules
from ledger.infrastructure.db.models import PocketModel, SubPocketModel, FixedExpenseGroupModel
from ledger.infrastructure.store.repository import EntityStore
from ledger.utils.validation import parse_amount
from ledger.application.balances import recompute


def adjust_sub_pocket_balance(store: EntityStore, sub_pocket_id: int, delta: Decimal) -> Optional[SubPocketModel]:
    """
    Изменить баланс sub-pocket на delta (read-modify-write под FOR UPDATE)

    Returns:
        Обновлённый sub-pocket или None, если его уже нет
    """
    sub_pocket = store.get_by_id(SubPocketModel, sub_pocket_id, for_update=True)
    if sub_pocket is None:
        return None
    return store.update(sub_pocket, balance=sub_pocket.balance + delta)


def _validate_terms(target_value, periodicity_months) -> tuple[Decimal, int]:
    target = parse_amount(target_value)
    if target <= 0:
        raise InvalidAmountError("Целевая сумма должна быть больше нуля")
    if isinstance(periodicity_months, bool) or not isinstance(periodicity_months, int) or periodicity_months <= 0:
        raise InvalidAmountError("Периодичность должна быть целым числом месяцев больше нуля")
    return target, periodicity_months


def _ensure_unique_name(store: EntityStore, pocket_id: int, name: str, exclude_id: int | None = None) -> None:
    for other in store.get_all(SubPocketModel, pocket_id=pocket_id):
        if other.id != exclude_id and same_name(other.name, name):
            raise IntegrityViolationError(f"Sub-pocket «{name}» уже существует в этом кармане")

def ensure_group_exists(store: EntityStore, group_id: int | None) -> None:
    if group_id is not None and store.get_by_id(FixedExpenseGroupModel, group_id) is None:
        raise NotFoundError(f"Группа #{group_id} не найдена")



class CreateSubPocketUseCase:
    """Use case: Создать обязательство в fixed-кармане"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(
        self,
        pocket_id: int,
        name: str,
        target_value,
        periodicity_months: int,
        enabled: bool = True,
        group_id: int | None = None
    ) -> int:
        """
        Создать sub-pocket

        Args:
            pocket_id: ID fixed-кармана
            name: Название (уникально в кармане)
            target_value: Полная сумма обязательства
            periodicity_months: За сколько месяцев копим
            enabled: Учитывать ли в ежемесячном взносе
            group_id: Группа обязательств (None - без группы)

        Returns:
            sub_pocket_id
        """
        pocket = self.store.get_by_id(PocketModel, pocket_id)
        if not pocket:
            raise NotFoundError(f"Карман #{pocket_id} не найден")
        if pocket.pocket_type != POCKET_TYPE_FIXED:
            raise IntegrityViolationError("Sub-pockets можно создавать только в fixed-кармане")

        name = name.strip()
        if not name:
            raise IntegrityViolationError("Название sub-pocket не может быть пустым")
        target, periodicity = _validate_terms(target_value, periodicity_months)
        _ensure_unique_name(self.store, pocket_id, name)
        ensure_group_exists(self.store, group_id)

        siblings = self.store.get_all(SubPocketModel, pocket_id=pocket_id)
        sub_pocket = self.store.insert(SubPocketModel(
            pocket_id=pocket_id,
            name=name,
            target_value=target,
            periodicity_months=periodicity,
            balance=Decimal("0"),
            enabled=enabled,
            group_id=group_id,
            sort_order=len(siblings),
        ))
        recompute(self.store, pocket.account_id)
        self.store.commit()
        return sub_pocket.id


class UpdateSubPocketUseCase:
    """Use case: Изменить название / цель / периодичность"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, sub_pocket_id: int, **changes) -> SubPocketModel:
        sub_pocket = self.store.get_by_id(SubPocketModel, sub_pocket_id)
        if not sub_pocket:
            raise NotFoundError(f"Sub-pocket #{sub_pocket_id} не найден")

        updates = {}
        if "name" in changes:
            name = changes["name"].strip()
            if not name:
                raise IntegrityViolationError("Название sub-pocket не может быть пустым")
            _ensure_unique_name(self.store, sub_pocket.pocket_id, name, exclude_id=sub_pocket.id)
            updates["name"] = name
        if "target_value" in changes or "periodicity_months" in changes:
            target, periodicity = _validate_terms(
                changes.get("target_value", sub_pocket.target_value),
                changes.get("periodicity_months", sub_pocket.periodicity_months),
            )
            updates["target_value"] = target
            updates["periodicity_months"] = periodicity

        self.store.update(sub_pocket, **updates)
        self.store.commit()
        return sub_pocket


class ToggleSubPocketEnabledUseCase:
    """Use case: Включить / выключить учёт в ежемесячном взносе"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, sub_pocket_id: int) -> bool:
        sub_pocket = self.store.get_by_id(SubPocketModel, sub_pocket_id)
        if not sub_pocket:
            raise NotFoundError(f"Sub-pocket #{sub_pocket_id} не найден")
        self.store.update(sub_pocket, enabled=not sub_pocket.enabled)
        self.store.commit()
        return sub_pocket.enabled


class ReorderSubPocketsUseCase:
    """Use case: Задать порядок обязательств внутри fixed-кармана"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, sub_pocket_ids: List[int]) -> None:
        if not sub_pocket_ids:
            raise IntegrityViolationError("Список sub-pockets пуст")
        if len(set(sub_pocket_ids)) != len(sub_pocket_ids):
            raise IntegrityViolationError("Список sub-pockets содержит повторы")

        sub_pockets = []
        for sub_pocket_id in sub_pocket_ids:
            sub_pocket = self.store.get_by_id(SubPocketModel, sub_pocket_id)
            if not sub_pocket:
                raise NotFoundError(f"Sub-pocket #{sub_pocket_id} не найден")
            sub_pockets.append(sub_pocket)
        if len({sp.pocket_id for sp in sub_pockets}) > 1:
            raise IntegrityViolationError("Все sub-pockets должны принадлежать одному карману")

        for position, sub_pocket in enumerate(sub_pockets):
            self.store.update(sub_pocket, sort_order=position)
        self.store.commit()


@dataclass(frozen=True)
class SubPocketStatus:
    sub_pocket_id: int
    name: str
    balance: Decimal
    target_value: Decimal
    monthly: Decimal
    next_payment: Decimal
    progress: Decimal
    enabled: bool
    group_id: Optional[int] = None


@dataclass(frozen=True)
class FixedExpensesSummary:
    pocket_id: int
    total_monthly: Decimal
    total_next_payment: Decimal
    items: List[SubPocketStatus]


def describe_sub_pocket(sub_pocket: SubPocketModel) -> SubPocketStatus:
    return SubPocketStatus(
        sub_pocket_id=sub_pocket.id,
        name=sub_pocket.name,
        balance=sub_pocket.balance,
        target_value=sub_pocket.target_value,
        monthly=rules.monthly_contribution(sub_pocket.target_value, sub_pocket.periodicity_months),
        next_payment=rules.next_payment(
            sub_pocket.target_value, sub_pocket.periodicity_months, sub_pocket.balance, sub_pocket.enabled
        ),
        progress=rules.progress(sub_pocket.balance, sub_pocket.target_value),
        enabled=sub_pocket.enabled,
        group_id=sub_pocket.group_id,
    )


class GetFixedExpensesSummaryUseCase:
    """Query: статус всех обязательств fixed-кармана и итог на месяц"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, pocket_id: int) -> FixedExpensesSummary:
        pocket = self.store.get_by_id(PocketModel, pocket_id)
        if not pocket:
            raise NotFoundError(f"Карман #{pocket_id} не найден")
        sub_pockets = self.store.get_all(
            SubPocketModel, pocket_id=pocket_id, order_by=(SubPocketModel.sort_order, SubPocketModel.id)
        )
        items = [describe_sub_pocket(sp) for sp in sub_pockets]
        return FixedExpensesSummary(
            pocket_id=pocket_id,
            total_monthly=rules.total_monthly(sub_pockets),
            total_next_payment=sum((i.next_payment for i in items), Decimal("0")),
            items=items,
        )
