"""
Pocket use cases - карманы внутри счёта
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from ledger.domain.errors import NotFoundError, IntegrityViolationError
from ledger.domain.account import ACCOUNT_TYPE_INVESTMENT
from ledger.domain.pocket import POCKET_TYPES, POCKET_TYPE_FIXED, same_name
from ledger.infrastructure.db.models import AccountModel, PocketModel, MovementModel
from ledger.infrastructure.store.repository import EntityStore
from ledger.application.balances import recompute

logger = logging.getLogger(__name__)


def adjust_pocket_balance(store: EntityStore, pocket_id: int, delta: Decimal) -> Optional[PocketModel]:
    """
    Изменить накопленный баланс кармана на delta (read-modify-write под FOR UPDATE)

    Returns:
        Обновлённый карман или None, если его уже нет
    """
    pocket = store.get_by_id(PocketModel, pocket_id, for_update=True)
    if pocket is None:
        return None
    return store.update(pocket, balance=pocket.balance + delta)


def get_fixed_pocket(store: EntityStore) -> Optional[PocketModel]:
    """Единственный fixed-карман в системе (или None)"""
    fixed = store.get_all(PocketModel, pocket_type=POCKET_TYPE_FIXED)
    return fixed[0] if fixed else None


def ensure_unique_pocket_name(store: EntityStore, account_id: int, name: str, exclude_id: int | None = None) -> None:
    for other in store.get_all(PocketModel, account_id=account_id):
        if other.id != exclude_id and same_name(other.name, name):
            raise IntegrityViolationError(f"Карман «{name}» уже существует в этом счёте")


def stage_pocket(store: EntityStore, account: AccountModel, name: str, pocket_type: str) -> PocketModel:
    """
    Провалидировать и вставить карман без commit

    Используется CreatePocketUseCase и созданием investment-счёта.
    """
    if pocket_type not in POCKET_TYPES:
        raise IntegrityViolationError(
            f"Неверный тип кармана: {pocket_type}. Используйте normal или fixed"
        )
    name = name.strip()
    if not name:
        raise IntegrityViolationError("Название кармана не может быть пустым")

    if pocket_type == POCKET_TYPE_FIXED:
        if account.account_type == ACCOUNT_TYPE_INVESTMENT:
            raise IntegrityViolationError("Инвестиционный счёт не может иметь fixed-карман")
        if get_fixed_pocket(store) is not None:
            raise IntegrityViolationError("Fixed-карман уже существует, допускается только один")

    ensure_unique_pocket_name(store, account.id, name)

    siblings = store.get_all(PocketModel, account_id=account.id)
    return store.insert(PocketModel(
        account_id=account.id,
        name=name,
        pocket_type=pocket_type,
        currency=account.currency,  # Наследуется от счёта
        balance=Decimal("0"),
        sort_order=len(siblings),
    ))


class CreatePocketUseCase:
    """Use case: Создать карман в счёте"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, account_id: int, name: str, pocket_type: str = "normal") -> int:
        """
        Создать карман

        Args:
            account_id: ID счёта
            name: Название (уникально в пределах счёта)
            pocket_type: normal или fixed (fixed - один на всю систему)

        Returns:
            pocket_id
        """
        account = self.store.get_by_id(AccountModel, account_id)
        if not account:
            raise NotFoundError(f"Счёт #{account_id} не найден")

        pocket = stage_pocket(self.store, account, name, pocket_type)
        recompute(self.store, account_id)
        self.store.commit()
        return pocket.id


class RenamePocketUseCase:
    """Use case: Переименовать карман"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, pocket_id: int, name: str) -> PocketModel:
        pocket = self.store.get_by_id(PocketModel, pocket_id)
        if not pocket:
            raise NotFoundError(f"Карман #{pocket_id} не найден")

        name = name.strip()
        if not name:
            raise IntegrityViolationError("Название кармана не может быть пустым")
        ensure_unique_pocket_name(self.store, pocket.account_id, name, exclude_id=pocket.id)

        self.store.update(pocket, name=name)
        self.store.commit()
        return pocket


class ReorderPocketsUseCase:
    """Use case: Задать порядок карманов внутри одного счёта"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, pocket_ids: List[int]) -> None:
        if not pocket_ids:
            raise IntegrityViolationError("Список карманов пуст")
        if len(set(pocket_ids)) != len(pocket_ids):
            raise IntegrityViolationError("Список карманов содержит повторы")

        pockets = []
        for pocket_id in pocket_ids:
            pocket = self.store.get_by_id(PocketModel, pocket_id)
            if not pocket:
                raise NotFoundError(f"Карман #{pocket_id} не найден")
            pockets.append(pocket)
        if len({p.account_id for p in pockets}) > 1:
            raise IntegrityViolationError("Все карманы должны принадлежать одному счёту")

        for position, pocket in enumerate(pockets):
            self.store.update(pocket, sort_order=position)
        self.store.commit()


class MigrateFixedPocketUseCase:
    """
    Use case: Перенести fixed-карман (вместе с sub-pockets) в другой счёт

    Все движения кармана переезжают в целевой счёт, балансы обоих
    счетов пересчитываются. Целевой счёт - normal, в той же валюте,
    без кармана с таким же именем.
    """

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, pocket_id: int, target_account_id: int) -> PocketModel:
        pocket = self.store.get_by_id(PocketModel, pocket_id)
        if not pocket:
            raise NotFoundError(f"Карман #{pocket_id} не найден")
        if pocket.pocket_type != POCKET_TYPE_FIXED:
            raise IntegrityViolationError("Переносить можно только fixed-карман")

        target = self.store.get_by_id(AccountModel, target_account_id)
        if not target:
            raise NotFoundError(f"Счёт #{target_account_id} не найден")
        if target.account_type == ACCOUNT_TYPE_INVESTMENT:
            raise IntegrityViolationError("Инвестиционный счёт не может иметь fixed-карман")
        source_account_id = pocket.account_id
        if source_account_id == target.id:
            raise IntegrityViolationError("Карман уже находится в этом счёте")
        if pocket.currency != target.currency:
            raise IntegrityViolationError(
                f"Валюта кармана {pocket.currency} не совпадает с валютой счёта {target.currency}"
            )
        ensure_unique_pocket_name(self.store, target.id, pocket.name)

        movements = self.store.get_all(MovementModel, pocket_id=pocket.id)
        for movement in movements:
            self.store.update(movement, account_id=target.id)

        siblings = self.store.get_all(PocketModel, account_id=target.id)
        self.store.update(pocket, account_id=target.id, sort_order=len(siblings))

        recompute(self.store, source_account_id)
        recompute(self.store, target.id)
        self.store.commit()

        logger.info(
            "Fixed pocket %s migrated from account %s to %s (%d movement(s))",
            pocket.id, source_account_id, target.id, len(movements),
        )
        return pocket
