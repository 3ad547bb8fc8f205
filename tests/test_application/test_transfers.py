"""
Tests for transfers between pockets
"""
import pytest
from decimal import Decimal

from ledger.domain.errors import NotFoundError, IntegrityViolationError, InvalidAmountError
from ledger.infrastructure.db.models import AccountModel, PocketModel, MovementModel
from ledger.application.accounts import CreateAccountUseCase
from ledger.application.pockets import CreatePocketUseCase
from ledger.application.movements import CreateMovementUseCase
from ledger.application.transfers import CreateTransferUseCase


def test_transfer_within_account(db_session, account_id, pocket_id, second_pocket_id):
    CreateMovementUseCase(db_session).execute("IncomeNormal", account_id, pocket_id, "500")

    result = CreateTransferUseCase(db_session).execute(
        source_account_id=account_id, source_pocket_id=pocket_id,
        target_account_id=account_id, target_pocket_id=second_pocket_id,
        amount="200", notes="rainy day",
    )

    assert db_session.get(PocketModel, pocket_id).balance == Decimal("300")
    assert db_session.get(PocketModel, second_pocket_id).balance == Decimal("200")
    assert db_session.get(AccountModel, account_id).balance == Decimal("500")

    expense = db_session.get(MovementModel, result.expense_movement_id)
    income = db_session.get(MovementModel, result.income_movement_id)
    assert expense.movement_type == "ExpenseNormal"
    assert expense.notes == "Transfer to Savings: rainy day"
    assert income.movement_type == "IncomeNormal"
    assert income.notes == "Transfer from Daily: rainy day"


def test_transfer_between_accounts(db_session, settings, account_id, pocket_id):
    other_account = CreateAccountUseCase(db_session, settings).execute(name="Nequi", color="#000", currency="COP")
    other_pocket = CreatePocketUseCase(db_session).execute(account_id=other_account, name="Wallet")

    CreateTransferUseCase(db_session).execute(account_id, pocket_id, other_account, other_pocket, "75")

    assert db_session.get(AccountModel, account_id).balance == Decimal("-75")
    assert db_session.get(AccountModel, other_account).balance == Decimal("75")


def test_transfer_validation(db_session, account_id, pocket_id, second_pocket_id):
    transfer = CreateTransferUseCase(db_session)

    with pytest.raises(IntegrityViolationError):
        transfer.execute(account_id, pocket_id, account_id, pocket_id, "10")
    with pytest.raises(InvalidAmountError):
        transfer.execute(account_id, pocket_id, account_id, second_pocket_id, "0")
    with pytest.raises(NotFoundError):
        transfer.execute(account_id, pocket_id, account_id, 404, "10")


def test_failed_second_leg_rolls_back_first(db_session, settings, account_id, pocket_id):
    """Получатель не из указанного счёта - расход на источнике тоже не сохраняется"""
    other_account = CreateAccountUseCase(db_session, settings).execute(name="Nequi", color="#000", currency="COP")
    other_pocket = CreatePocketUseCase(db_session).execute(account_id=other_account, name="Wallet")

    with pytest.raises(NotFoundError):
        CreateTransferUseCase(db_session).execute(account_id, pocket_id, account_id, other_pocket, "10")

    assert db_session.query(MovementModel).count() == 0
    assert db_session.get(PocketModel, pocket_id).balance == Decimal("0")
