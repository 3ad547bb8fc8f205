"""
Transfer use case - перевод между карманами как пара движений
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ledger.config import Settings
from ledger.domain.errors import NotFoundError, IntegrityViolationError, LedgerError
from ledger.domain.movement import MOVEMENT_EXPENSE_NORMAL, MOVEMENT_INCOME_NORMAL
from ledger.infrastructure.db.models import PocketModel
from ledger.utils.validation import parse_positive_amount
from ledger.application.movements import CreateMovementUseCase
from ledger.application.prices import PriceLookup


@dataclass(frozen=True)
class TransferResult:
    expense_movement_id: int
    income_movement_id: int


class CreateTransferUseCase:
    """
    Use case: Перевести деньги из одного normal-кармана в другой

    ExpenseNormal на источнике + IncomeNormal на получателе одним unit of work:
    либо оба движения, либо ни одного.
    """

    def __init__(
        self,
        db: Session,
        price_lookup: Optional[PriceLookup] = None,
        settings: Optional[Settings] = None
    ):
        self.db = db
        self.movements = CreateMovementUseCase(db, price_lookup, settings)
        self.store = self.movements.store

    def execute(
        self,
        source_account_id: int,
        source_pocket_id: int,
        target_account_id: int,
        target_pocket_id: int,
        amount,
        notes: str = "",
        displayed_date: date | None = None,
        is_pending: bool = False
    ) -> TransferResult:
        amount = parse_positive_amount(amount)
        if source_pocket_id == target_pocket_id:
            raise IntegrityViolationError("Карман-источник и карман-получатель должны различаться")

        source = self.store.get_by_id(PocketModel, source_pocket_id)
        target = self.store.get_by_id(PocketModel, target_pocket_id)
        if not source:
            raise NotFoundError(f"Карман-источник #{source_pocket_id} не найден")
        if not target:
            raise NotFoundError(f"Карман-получатель #{target_pocket_id} не найден")

        notes = (notes or "").strip()
        try:
            expense = self.movements.stage(
                MOVEMENT_EXPENSE_NORMAL, source_account_id, source_pocket_id, amount,
                is_pending=is_pending,
                notes=f"Transfer to {target.name}: {notes}" if notes else f"Transfer to {target.name}",
                displayed_date=displayed_date,
            )
            income = self.movements.stage(
                MOVEMENT_INCOME_NORMAL, target_account_id, target_pocket_id, amount,
                is_pending=is_pending,
                notes=f"Transfer from {source.name}: {notes}" if notes else f"Transfer from {source.name}",
                displayed_date=displayed_date,
            )
        except LedgerError:
            self.db.rollback()
            raise

        self.movements.recompute_accounts([source_account_id, target_account_id])
        self.store.commit()
        return TransferResult(expense.id, income.id)
