"""
Cascade / orphan use cases - удаление родителей и судьба их движений

По умолчанию движения удалённого счёта / кармана не удаляются, а
помечаются осиротевшими: история сохраняется, в активных выборках
и балансах их нет. Имена родителей запоминаются, чтобы потом
восстановить движения (RestoreOrphanedMovementsUseCase).
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ledger.config import Settings, get_settings
from ledger.domain.errors import NotFoundError, IntegrityViolationError, LedgerError
from ledger.domain.movement import Movement, ORPHAN_REASON_ACCOUNT, ORPHAN_REASON_POCKET
from ledger.domain.pocket import POCKET_TYPE_FIXED
from ledger.infrastructure.db.models import AccountModel, PocketModel, SubPocketModel, MovementModel
from ledger.infrastructure.store.repository import EntityStore
from ledger.application.balances import recompute
from ledger.application.movements import MovementEffects, validate_references
from ledger.application.prices import PriceLookup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CascadeDeleteResult:
    account: str
    pockets: int
    sub_pockets: int
    movements: int


@dataclass(frozen=True)
class RestoreResult:
    restored: int
    failed: int


def orphan_movement(
    store: EntityStore,
    movement: MovementModel,
    reason: str,
    account: Optional[AccountModel],
    pocket: Optional[PocketModel],
    sub_pocket: Optional[SubPocketModel] = None
) -> None:
    """Пометить движение осиротевшим и запомнить имена родителей"""
    if sub_pocket is None and movement.sub_pocket_id is not None:
        sub_pocket = store.get_by_id(SubPocketModel, movement.sub_pocket_id)
    store.update(
        movement,
        is_orphaned=True,
        orphan_reason=reason,
        orphaned_account_name=account.name if account else "Unknown",
        orphaned_account_currency=account.currency if account else None,
        orphaned_pocket_name=pocket.name if pocket else "Unknown",
        orphaned_sub_pocket_name=sub_pocket.name if sub_pocket else None,
    )


class DeleteAccountCascadeUseCase:
    """
    Use case: Удалить счёт со всеми карманами и sub-pockets

    Процесс:
    1. (soft) Пометить осиротевшими все движения счёта - до удаления детей,
       чтобы не откатывать балансы, которые всё равно исчезнут
    2. Для каждого кармана: удалить sub-pockets, удалить карман
    3. (hard) Удалить все движения счёта и его карманов, включая
       осиротевшие раньше
    4. Удалить счёт
    """

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, account_id: int, hard_delete_movements: bool = False) -> CascadeDeleteResult:
        """
        Args:
            account_id: ID счёта
            hard_delete_movements: True - удалить движения, False - осиротить

        Returns:
            CascadeDeleteResult со счётчиками затронутых сущностей
        """
        account = self.store.get_by_id(AccountModel, account_id)
        if not account:
            raise NotFoundError(f"Счёт #{account_id} не найден")

        pockets = self.store.get_all(PocketModel, account_id=account_id)
        pocket_ids = [p.id for p in pockets]
        pockets_by_id = {p.id: p for p in pockets}

        referencing = (MovementModel.account_id == account_id) | MovementModel.pocket_id.in_(pocket_ids)
        if hard_delete_movements:
            # Вместе с ранее осиротевшими: после удаления счёта на него не ссылается ничего
            movements = self.store.get_all(MovementModel, referencing)
        else:
            movements = self.store.get_all(MovementModel, referencing, is_orphaned=False)
        movements_affected = len(movements)

        if not hard_delete_movements:
            for movement in movements:
                orphan_movement(
                    self.store, movement, ORPHAN_REASON_ACCOUNT,
                    account, pockets_by_id.get(movement.pocket_id),
                )

        sub_pockets_deleted = 0
        for pocket in pockets:
            if pocket.pocket_type == POCKET_TYPE_FIXED:
                for sub_pocket in self.store.get_all(SubPocketModel, pocket_id=pocket.id):
                    self.store.delete(sub_pocket)
                    sub_pockets_deleted += 1
            self.store.delete(pocket)

        if hard_delete_movements:
            for movement in movements:
                self.store.delete(movement)

        account_name = account.name
        self.store.delete(account)
        self.store.commit()

        logger.info(
            "Account %s cascade-deleted: %d pocket(s), %d sub-pocket(s), %d movement(s) %s",
            account_id, len(pockets), sub_pockets_deleted, movements_affected,
            "deleted" if hard_delete_movements else "orphaned",
        )
        return CascadeDeleteResult(
            account=account_name,
            pockets=len(pockets),
            sub_pockets=sub_pockets_deleted,
            movements=movements_affected,
        )


class DeletePocketUseCase:
    """
    Use case: Удалить карман

    Fixed-карман с sub-pockets удалить нельзя - сначала удаляются они.
    Движения кармана осиротевают (или удаляются при hard_delete_movements).
    """

    def __init__(self, db: Session, price_lookup: Optional[PriceLookup] = None):
        self.db = db
        self.store = EntityStore(db)
        self.price_lookup = price_lookup

    def execute(self, pocket_id: int, hard_delete_movements: bool = False) -> int:
        """
        Returns:
            Количество затронутых движений
        """
        pocket = self.store.get_by_id(PocketModel, pocket_id)
        if not pocket:
            raise NotFoundError(f"Карман #{pocket_id} не найден")

        if pocket.pocket_type == POCKET_TYPE_FIXED:
            sub_pockets = self.store.get_all(SubPocketModel, pocket_id=pocket_id)
            if sub_pockets:
                raise IntegrityViolationError(
                    f"Нельзя удалить fixed-карман: в нём {len(sub_pockets)} sub-pocket(s). "
                    "Сначала удалите sub-pockets."
                )

        account = self.store.get_by_id(AccountModel, pocket.account_id)
        movements = self.store.get_all(MovementModel, pocket_id=pocket_id, is_orphaned=False)
        for movement in movements:
            if hard_delete_movements:
                self.store.delete(movement)
            else:
                orphan_movement(self.store, movement, ORPHAN_REASON_POCKET, account, pocket)

        account_id = pocket.account_id
        self.store.delete(pocket)
        recompute(self.store, account_id, self.price_lookup)
        self.store.commit()
        return len(movements)


class DeleteSubPocketUseCase:
    """Use case: Удалить sub-pocket; его движения осиротевают"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, sub_pocket_id: int, hard_delete_movements: bool = False) -> int:
        sub_pocket = self.store.get_by_id(SubPocketModel, sub_pocket_id)
        if not sub_pocket:
            raise NotFoundError(f"Sub-pocket #{sub_pocket_id} не найден")

        pocket = self.store.get_by_id(PocketModel, sub_pocket.pocket_id)
        account = self.store.get_by_id(AccountModel, pocket.account_id) if pocket else None

        movements = self.store.get_all(MovementModel, sub_pocket_id=sub_pocket_id, is_orphaned=False)
        for movement in movements:
            if hard_delete_movements:
                self.store.delete(movement)
            else:
                orphan_movement(self.store, movement, ORPHAN_REASON_POCKET, account, pocket, sub_pocket)

        self.store.delete(sub_pocket)
        if pocket is not None:
            recompute(self.store, pocket.account_id)
        self.store.commit()
        return len(movements)


class RestoreOrphanedMovementsUseCase:
    """
    Use case: Вернуть осиротевшие движения к живым родителям

    Сопоставление: счёт по (имя, валюта), карман по имени внутри счёта,
    sub-pocket по имени внутри кармана. Восстановленное непроведённым
    не бывает "наполовину": эффект применяется сразу (если не pending).
    """

    def __init__(
        self,
        db: Session,
        price_lookup: Optional[PriceLookup] = None,
        settings: Optional[Settings] = None
    ):
        self.db = db
        self.store = EntityStore(db)
        self.price_lookup = price_lookup
        self.settings = settings or get_settings()
        self.effects = MovementEffects(self.store, self.settings)

    def execute(self) -> RestoreResult:
        orphans = self.store.get_all(MovementModel, is_orphaned=True, order_by=MovementModel.created_at)
        accounts = self.store.get_all(AccountModel)
        pockets_by_account: Dict[int, List[PocketModel]] = {}
        for pocket in self.store.get_all(PocketModel):
            pockets_by_account.setdefault(pocket.account_id, []).append(pocket)

        restored, failed = 0, 0
        affected_accounts = set()

        for row in orphans:
            links = self._match(row, accounts, pockets_by_account)
            if links is None:
                failed += 1
                continue

            account, pocket, sub_pocket = links
            candidate = Movement.of(row).merged(
                account_id=account.id,
                pocket_id=pocket.id,
                sub_pocket_id=sub_pocket.id if sub_pocket else None,
                is_orphaned=False,
            )
            try:
                validate_references(self.store, candidate)
            except LedgerError as exc:
                logger.info("Orphan %s cannot be restored: %s", row.id, exc)
                failed += 1
                continue

            self.store.update(
                row,
                account_id=account.id,
                pocket_id=pocket.id,
                sub_pocket_id=candidate.sub_pocket_id,
                is_orphaned=False,
                orphan_reason=None,
                orphaned_account_name=None,
                orphaned_account_currency=None,
                orphaned_pocket_name=None,
                orphaned_sub_pocket_name=None,
            )
            self.effects.apply(candidate)
            affected_accounts.add(account.id)
            restored += 1

        for account_id in sorted(affected_accounts):
            recompute(self.store, account_id, self.price_lookup, self.settings)
        self.store.commit()

        logger.info("Orphaned movements restored: %d, failed: %d", restored, failed)
        return RestoreResult(restored=restored, failed=failed)

    def _match(self, row: MovementModel, accounts: List[AccountModel], pockets_by_account):
        account = next(
            (a for a in accounts
             if a.name == row.orphaned_account_name and a.currency == row.orphaned_account_currency),
            None,
        )
        if account is None:
            return None
        pocket = next(
            (p for p in pockets_by_account.get(account.id, []) if p.name == row.orphaned_pocket_name),
            None,
        )
        if pocket is None:
            return None
        sub_pocket = None
        if row.orphaned_sub_pocket_name:
            sub_pocket = next(
                (sp for sp in self.store.get_all(SubPocketModel, pocket_id=pocket.id)
                 if sp.name == row.orphaned_sub_pocket_name),
                None,
            )
            if sub_pocket is None:
                return None
        return account, pocket, sub_pocket
