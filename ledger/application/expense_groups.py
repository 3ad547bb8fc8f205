"""
Fixed expense group use cases - группы обязательств

Группа объединяет sub-pockets для отображения и массового
включения / выключения. На балансы не влияет: включённость
sub-pocket меняет только плановый взнос.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ledger.domain.errors import NotFoundError, IntegrityViolationError
from ledger.domain.pocket import same_name
from ledger.domain import sub_pocket as rules
from ledger.infrastructure.db.models import FixedExpenseGroupModel, SubPocketModel
from ledger.infrastructure.store.repository import EntityStore
from ledger.application.sub_pockets import ensure_group_exists

logger = logging.getLogger(__name__)


def _clean_name(store: EntityStore, name: str, exclude_id: Optional[int] = None) -> str:
    name = (name or "").strip()
    if not name:
        raise IntegrityViolationError("Название группы не может быть пустым")
    for other in store.get_all(FixedExpenseGroupModel):
        if other.id != exclude_id and same_name(other.name, name):
            raise IntegrityViolationError(f"Группа «{name}» уже существует")
    return name


def _clean_color(color: str) -> str:
    color = (color or "").strip()
    if not rules.is_group_color(color):
        raise IntegrityViolationError(f"Неверный цвет группы: {color!r}, ожидается #RRGGBB")
    return color


class _GroupUseCase:
    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def _get(self, group_id: int) -> FixedExpenseGroupModel:
        group = self.store.get_by_id(FixedExpenseGroupModel, group_id)
        if not group:
            raise NotFoundError(f"Группа #{group_id} не найдена")
        return group


class CreateFixedExpenseGroupUseCase(_GroupUseCase):
    """Use case: Создать группу обязательств"""

    def execute(self, name: str, color: str) -> int:
        """
        Args:
            name: Название (уникально без учёта регистра)
            color: Цвет #RRGGBB

        Returns:
            group_id
        """
        name = _clean_name(self.store, name)
        color = _clean_color(color)

        existing = self.store.get_all(FixedExpenseGroupModel)
        group = self.store.insert(FixedExpenseGroupModel(
            name=name,
            color=color,
            sort_order=len(existing),
        ))
        self.store.commit()
        return group.id


class UpdateFixedExpenseGroupUseCase(_GroupUseCase):
    """Use case: Переименовать группу / сменить цвет"""

    def execute(self, group_id: int, name: Optional[str] = None, color: Optional[str] = None) -> FixedExpenseGroupModel:
        group = self._get(group_id)

        updates = {}
        if name is not None:
            updates["name"] = _clean_name(self.store, name, exclude_id=group.id)
        if color is not None:
            updates["color"] = _clean_color(color)

        self.store.update(group, **updates)
        self.store.commit()
        return group


class DeleteFixedExpenseGroupUseCase(_GroupUseCase):
    """Use case: Удалить группу; её sub-pockets остаются без группы"""

    def execute(self, group_id: int) -> int:
        """
        Returns:
            Сколько sub-pockets вышло из группы
        """
        group = self._get(group_id)

        members = self.store.get_all(SubPocketModel, group_id=group.id)
        for sub_pocket in members:
            self.store.update(sub_pocket, group_id=None)
        self.store.delete(group)
        self.store.commit()

        logger.info("Expense group %s deleted, %d sub-pocket(s) ungrouped", group_id, len(members))
        return len(members)


class ReorderFixedExpenseGroupsUseCase(_GroupUseCase):
    """Use case: Задать порядок групп"""

    def execute(self, group_ids: List[int]) -> None:
        if not group_ids:
            raise IntegrityViolationError("Список групп пуст")
        if len(set(group_ids)) != len(group_ids):
            raise IntegrityViolationError("Список групп содержит повторы")

        groups = [self._get(group_id) for group_id in group_ids]
        for position, group in enumerate(groups):
            self.store.update(group, sort_order=position)
        self.store.commit()


class ToggleGroupUseCase(_GroupUseCase):
    """
    Use case: Включить / выключить все обязательства группы разом

    Если хотя бы одно выключено - включаются все, иначе выключаются все.
    """

    def execute(self, group_id: int) -> bool:
        """
        Returns:
            Новое состояние enabled для sub-pockets группы
        """
        group = self._get(group_id)
        members = self.store.get_all(SubPocketModel, group_id=group.id)

        enabled = rules.group_toggle_target(sp.enabled for sp in members)
        for sub_pocket in members:
            self.store.update(sub_pocket, enabled=enabled)
        self.store.commit()
        return enabled


class MoveSubPocketToGroupUseCase(_GroupUseCase):
    """Use case: Перенести sub-pocket в группу (None - убрать из группы)"""

    def execute(self, sub_pocket_id: int, group_id: Optional[int]) -> SubPocketModel:
        sub_pocket = self.store.get_by_id(SubPocketModel, sub_pocket_id)
        if not sub_pocket:
            raise NotFoundError(f"Sub-pocket #{sub_pocket_id} не найден")
        ensure_group_exists(self.store, group_id)

        self.store.update(sub_pocket, group_id=group_id)
        self.store.commit()
        return sub_pocket


class FixedExpenseGroupQueries:
    """Read-side: группы и их обязательства в порядке отображения"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def groups(self) -> List[FixedExpenseGroupModel]:
        return self.store.get_all(
            FixedExpenseGroupModel,
            order_by=(FixedExpenseGroupModel.sort_order, FixedExpenseGroupModel.id),
        )

    def members(self, group_id: Optional[int]) -> List[SubPocketModel]:
        """Sub-pockets группы; group_id=None - обязательства без группы"""
        return self.store.get_all(
            SubPocketModel,
            SubPocketModel.group_id.is_(None) if group_id is None else SubPocketModel.group_id == group_id,
            order_by=(SubPocketModel.sort_order, SubPocketModel.id),
        )
