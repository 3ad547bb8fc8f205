"""
Movement use cases - движок проведения движений

Каждая операция:
1. Валидирует ссылки (счёт / карман / sub-pocket)
2. Откатывает старый эффект (update / delete)
3. Применяет новый эффект к нужному балансу
4. Пересчитывает затронутые счета (balances.recompute)
5. Фиксирует unit of work

Состояния: Pending -> Applied. Обратного перехода нет.
"""
import logging
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ledger.config import Settings, get_settings
from ledger.domain.errors import NotFoundError, IntegrityViolationError, InvalidStateError, LedgerError
from ledger.domain.account import ACCOUNT_TYPE_INVESTMENT
from ledger.domain.pocket import POCKET_TYPE_FIXED
from ledger.domain.movement import (
    Movement, EFFECT_TARGET_SUB_POCKET, validate_movement_type, group_by_month,
)
from ledger.infrastructure.db.models import AccountModel, PocketModel, SubPocketModel, MovementModel
from ledger.infrastructure.store.repository import EntityStore
from ledger.utils.validation import parse_positive_amount
from ledger.application.balances import recompute, sync_investment_fields
from ledger.application.pockets import adjust_pocket_balance
from ledger.application.sub_pockets import adjust_sub_pocket_balance
from ledger.application.prices import PriceLookup

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    "movement_type", "account_id", "pocket_id", "sub_pocket_id", "amount", "notes", "displayed_date",
})
# У осиротевшего движения нет живых родителей: меняются только описательные поля
ORPHAN_UPDATABLE_FIELDS = frozenset({"notes", "displayed_date"})


def validate_references(store: EntityStore, movement: Movement) -> None:
    """
    Проверить, что движение ссылается на существующие и согласованные сущности

    Raises:
        NotFoundError: нет счёта / кармана / sub-pocket, карман не из этого счёта
        IntegrityViolationError: sub-pocket не из этого кармана, неверная цель движения
    """
    validate_movement_type(movement.movement_type)

    account = store.get_by_id(AccountModel, movement.account_id)
    if not account:
        raise NotFoundError(f"Счёт #{movement.account_id} не найден")

    pocket = store.get_by_id(PocketModel, movement.pocket_id)
    if not pocket or pocket.account_id != account.id:
        raise NotFoundError(f"Карман #{movement.pocket_id} не найден в счёте #{account.id}")

    sub_pocket = None
    if movement.sub_pocket_id is not None:
        sub_pocket = store.get_by_id(SubPocketModel, movement.sub_pocket_id)
        if not sub_pocket:
            raise NotFoundError(f"Sub-pocket #{movement.sub_pocket_id} не найден")
        if sub_pocket.pocket_id != pocket.id:
            raise IntegrityViolationError("Sub-pocket не принадлежит указанному карману")

    if movement.is_fixed and sub_pocket is None:
        raise IntegrityViolationError("Движение по fixed-расходам требует sub-pocket")
    if not movement.is_fixed and sub_pocket is not None:
        raise IntegrityViolationError("Sub-pocket можно указать только для fixed-движения")
    if sub_pocket is None and pocket.pocket_type == POCKET_TYPE_FIXED:
        raise IntegrityViolationError(
            "Баланс fixed-кармана складывается из sub-pockets, укажите sub-pocket"
        )
    if movement.is_investment and account.account_type != ACCOUNT_TYPE_INVESTMENT:
        raise IntegrityViolationError("Инвестиционное движение возможно только на инвестиционном счёте")


class MovementEffects:
    """
    Применение / откат эффекта движения на балансы

    Эффект идёт либо в sub-pocket, либо в карман. Для инвестиционных
    движений после кармана синхронизируются поля счёта.
    Если цели уже нет (удалена каскадом), шаг пропускается.
    """

    def __init__(self, store: EntityStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    def apply(self, movement: Movement, sign: int = 1) -> bool:
        effect = movement.effect()
        if effect is None:
            return False
        if sign < 0:
            effect = effect.reversed()

        if effect.target == EFFECT_TARGET_SUB_POCKET:
            target = adjust_sub_pocket_balance(self.store, effect.target_id, effect.delta)
        else:
            target = adjust_pocket_balance(self.store, effect.target_id, effect.delta)

        if target is None:
            logger.info("Effect target %s #%s is gone, skipping", effect.target, effect.target_id)
            return False

        if effect.is_investment:
            account = self.store.get_by_id(AccountModel, movement.account_id, for_update=True)
            if account is not None:
                sync_investment_fields(self.store, account, self.settings)
        return True

    def reverse(self, movement: Movement) -> bool:
        return self.apply(movement, sign=-1)


class _MovementUseCase:
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

    def _get(self, movement_id: int) -> MovementModel:
        row = self.store.get_by_id(MovementModel, movement_id, for_update=True)
        if not row:
            raise NotFoundError(f"Движение #{movement_id} не найдено")
        return row

    def recompute_accounts(self, account_ids: Iterable[int]) -> None:
        for account_id in sorted(set(account_ids)):
            recompute(self.store, account_id, self.price_lookup, self.settings)


class CreateMovementUseCase(_MovementUseCase):
    """Use case: Создать движение (проведённое или pending)"""

    def stage(
        self,
        movement_type: str,
        account_id: int,
        pocket_id: int,
        amount,
        sub_pocket_id: int | None = None,
        is_pending: bool = False,
        notes: str = "",
        displayed_date: date | None = None
    ) -> MovementModel:
        """
        Провалидировать, сохранить и применить движение без commit

        Нужен там, где несколько движений идут одним unit of work (переводы).
        """
        movement = Movement(
            movement_type=movement_type,
            account_id=account_id,
            pocket_id=pocket_id,
            amount=parse_positive_amount(amount),
            sub_pocket_id=sub_pocket_id,
            is_pending=is_pending,
        )
        validate_references(self.store, movement)

        row = self.store.insert(MovementModel(
            movement_type=movement.movement_type,
            account_id=movement.account_id,
            pocket_id=movement.pocket_id,
            sub_pocket_id=movement.sub_pocket_id,
            amount=movement.amount,
            notes=(notes or "").strip(),
            displayed_date=displayed_date or date.today(),
            is_pending=movement.is_pending,
            is_orphaned=False,
            created_at=datetime.now(timezone.utc),
        ))

        # Pending: запись есть, балансы не трогаем
        self.effects.apply(movement)
        return row

    def execute(
        self,
        movement_type: str,
        account_id: int,
        pocket_id: int,
        amount,
        sub_pocket_id: int | None = None,
        is_pending: bool = False,
        notes: str = "",
        displayed_date: date | None = None
    ) -> int:
        """
        Создать движение

        Args:
            movement_type: IncomeNormal, ExpenseNormal, IncomeFixed, ExpenseFixed,
                InvestmentDeposit, InvestmentShares
            account_id: ID счёта
            pocket_id: ID кармана (для инвестиций - карман, где записано движение)
            amount: Сумма > 0, направление задаёт тип
            sub_pocket_id: ID sub-pocket (обязателен для fixed-типов)
            is_pending: True - записать без влияния на балансы
            notes: Комментарий
            displayed_date: Дата для пользователя (default=today)

        Returns:
            movement_id: ID созданного движения
        """
        row = self.stage(
            movement_type, account_id, pocket_id, amount,
            sub_pocket_id=sub_pocket_id,
            is_pending=is_pending,
            notes=notes,
            displayed_date=displayed_date,
        )
        self.recompute_accounts([account_id])
        self.store.commit()
        return row.id


class UpdateMovementUseCase(_MovementUseCase):
    """
    Use case: Изменить движение (полная замена полей)

    Старый эффект откатывается, новый применяется к своей цели - она
    может отличаться от прежней (другой карман, sub-pocket, тип).
    Итог такой же, как если бы старого движения не было вовсе.
    У осиротевшего движения можно поправить только notes и displayed_date.
    """

    def execute(self, movement_id: int, **changes) -> MovementModel:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise IntegrityViolationError(f"Нельзя изменить поля: {', '.join(sorted(unknown))}")

        row = self._get(movement_id)
        old = Movement.of(row)
        if old.is_orphaned:
            locked = set(changes) - ORPHAN_UPDATABLE_FIELDS
            if locked:
                raise IntegrityViolationError(
                    f"Движение #{movement_id} осиротело, нельзя изменить: {', '.join(sorted(locked))}"
                )

        if "amount" in changes:
            changes["amount"] = parse_positive_amount(changes["amount"])
        if "notes" in changes:
            changes["notes"] = (changes["notes"] or "").strip()

        new = old.merged(**changes)
        validate_movement_type(new.movement_type)
        # Эффекта у осиротевшего движения нет, ссылки у него не менялись
        if not new.is_orphaned:
            validate_references(self.store, new)

        self.effects.reverse(old)
        self.store.update(row, **changes)
        self.effects.apply(new)

        self.recompute_accounts([old.account_id, new.account_id])
        self.store.commit()
        return row


class DeleteMovementUseCase(_MovementUseCase):
    """Use case: Удалить движение с откатом его эффекта"""

    def execute(self, movement_id: int) -> None:
        row = self._get(movement_id)
        old = Movement.of(row)

        self.effects.reverse(old)
        self.store.delete(row)

        self.recompute_accounts([old.account_id])
        self.store.commit()


class ApplyPendingMovementUseCase(_MovementUseCase):
    """Use case: Провести pending-движение (Pending -> Applied)"""

    def _apply(self, movement_id: int) -> MovementModel:
        row = self._get(movement_id)
        if not row.is_pending:
            raise InvalidStateError(f"Движение #{movement_id} уже проведено")
        if row.is_orphaned:
            raise InvalidStateError(f"Движение #{movement_id} осиротело, провести его нельзя")

        movement = Movement.of(row).merged(is_pending=False)
        validate_references(self.store, movement)

        self.store.update(row, is_pending=False)
        self.effects.apply(movement)
        logger.info("Movement %s applied", movement_id)
        return row

    def execute(self, movement_id: int) -> MovementModel:
        row = self._apply(movement_id)
        self.recompute_accounts([row.account_id])
        self.store.commit()
        return row

    def execute_batch(self, movement_ids: List[int]) -> List[MovementModel]:
        """
        Провести несколько pending-движений в заданном порядке

        Всё или ничего: при ошибке сессия откатывается.
        """
        try:
            rows = [self._apply(movement_id) for movement_id in movement_ids]
        except LedgerError:
            self.db.rollback()
            raise
        self.recompute_accounts(r.account_id for r in rows)
        self.store.commit()
        return rows


class MovementQueries:
    """
    Чтение движений

    Активные выборки (по счёту / карману / месяцу) исключают осиротевшие.
    Сортировка - по created_at (порядок регистрации).
    """

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def _list(self, *criteria, **filters) -> List[MovementModel]:
        return self.store.get_all(MovementModel, *criteria, order_by=(MovementModel.created_at, MovementModel.id), **filters)

    def get(self, movement_id: int) -> MovementModel:
        row = self.store.get_by_id(MovementModel, movement_id)
        if not row:
            raise NotFoundError(f"Движение #{movement_id} не найдено")
        return row

    def by_account(self, account_id: int) -> List[MovementModel]:
        return self._list(account_id=account_id, is_orphaned=False)

    def by_pocket(self, pocket_id: int) -> List[MovementModel]:
        return self._list(pocket_id=pocket_id, is_orphaned=False)

    def by_month(self, year: int, month: int) -> List[MovementModel]:
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return self._list(
            MovementModel.displayed_date >= start,
            MovementModel.displayed_date < end,
            is_orphaned=False,
        )

    def grouped_by_month(self) -> Dict[str, List[MovementModel]]:
        return group_by_month(self._list(is_orphaned=False))

    def pending(self) -> List[MovementModel]:
        return self._list(is_pending=True, is_orphaned=False)

    def applied(self) -> List[MovementModel]:
        return self._list(is_pending=False, is_orphaned=False)

    def orphaned(self) -> List[MovementModel]:
        return self._list(is_orphaned=True)
