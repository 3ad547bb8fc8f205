"""
Tests for Account use cases
"""
import pytest
from decimal import Decimal

from ledger.domain.errors import NotFoundError, IntegrityViolationError
from ledger.infrastructure.db.models import AccountModel, PocketModel
from ledger.application.accounts import (
    CreateAccountUseCase, UpdateAccountUseCase, DeleteAccountUseCase, ReorderAccountsUseCase,
)


def test_create_normal_account(db_session, settings):
    """Создание обычного счёта: баланс 0, без инвестиционных полей"""
    account_id = CreateAccountUseCase(db_session, settings).execute(
        name="  Cash ", color="#111111", currency="USD"
    )

    account = db_session.get(AccountModel, account_id)
    assert account.name == "Cash"
    assert account.account_type == "normal"
    assert account.balance == Decimal("0")
    assert account.stock_symbol is None
    assert account.invested_amount is None
    assert db_session.query(PocketModel).filter_by(account_id=account_id).count() == 0


def test_create_investment_account_creates_named_pockets(db_session, settings):
    """Investment-счёт сразу получает карманы Invested Money и Shares"""
    account_id = CreateAccountUseCase(db_session, settings).execute(
        name="Brokerage", color="#222222", currency="USD", account_type="investment", stock_symbol="spy"
    )

    account = db_session.get(AccountModel, account_id)
    pockets = db_session.query(PocketModel).filter_by(account_id=account_id).order_by(PocketModel.id).all()
    assert [p.name for p in pockets] == ["Invested Money", "Shares"]
    assert all(p.currency == "USD" for p in pockets)
    assert account.stock_symbol == "SPY"
    assert account.invested_amount == Decimal("0")
    assert account.share_count == Decimal("0")


def test_investment_account_defaults_to_voo(db_session, investment_account_id):
    assert db_session.get(AccountModel, investment_account_id).stock_symbol == "VOO"


@pytest.mark.parametrize("currency", ["usd", "US", "USDT", "", "U1D"])
def test_create_account_rejects_bad_currency(db_session, settings, currency):
    with pytest.raises(IntegrityViolationError, match="Неверный код валюты"):
        CreateAccountUseCase(db_session, settings).execute(name="X", color="#000", currency=currency)


def test_create_account_rejects_empty_name_and_color(db_session, settings):
    use_case = CreateAccountUseCase(db_session, settings)
    with pytest.raises(IntegrityViolationError):
        use_case.execute(name="   ", color="#000", currency="USD")
    with pytest.raises(IntegrityViolationError):
        use_case.execute(name="Cash", color="", currency="USD")


def test_create_account_rejects_unknown_type(db_session, settings):
    with pytest.raises(IntegrityViolationError, match="Неверный тип счёта"):
        CreateAccountUseCase(db_session, settings).execute(
            name="Cash", color="#000", currency="USD", account_type="crypto"
        )


def test_duplicate_name_and_currency_rejected(db_session, settings, account_id):
    """(name, currency) уникальны; то же имя в другой валюте допустимо"""
    use_case = CreateAccountUseCase(db_session, settings)

    with pytest.raises(IntegrityViolationError, match="уже существует"):
        use_case.execute(name="Bancolombia", color="#000", currency="COP")

    other_id = use_case.execute(name="Bancolombia", color="#000", currency="USD")
    assert other_id != account_id


def test_update_account_currency_propagates_to_pockets(db_session, account_id, pocket_id):
    UpdateAccountUseCase(db_session).execute(account_id, currency="EUR", name="Main")

    account = db_session.get(AccountModel, account_id)
    assert account.currency == "EUR"
    assert account.name == "Main"
    assert db_session.get(PocketModel, pocket_id).currency == "EUR"


def test_update_account_uniqueness_excludes_itself(db_session, settings, account_id):
    CreateAccountUseCase(db_session, settings).execute(name="Nequi", color="#000", currency="COP")

    UpdateAccountUseCase(db_session).execute(account_id, name="Bancolombia")  # своё же имя - ок
    with pytest.raises(IntegrityViolationError):
        UpdateAccountUseCase(db_session).execute(account_id, name="Nequi")


def test_update_stock_symbol_only_for_investment(db_session, account_id, investment_account_id):
    with pytest.raises(IntegrityViolationError, match="Тикер"):
        UpdateAccountUseCase(db_session).execute(account_id, stock_symbol="VTI")

    UpdateAccountUseCase(db_session).execute(investment_account_id, stock_symbol=" vti ")
    assert db_session.get(AccountModel, investment_account_id).stock_symbol == "VTI"


def test_update_missing_account(db_session):
    with pytest.raises(NotFoundError):
        UpdateAccountUseCase(db_session).execute(404, name="X")


def test_delete_account_with_pockets_rejected(db_session, account_id, pocket_id):
    with pytest.raises(IntegrityViolationError, match="каскадное удаление"):
        DeleteAccountUseCase(db_session).execute(account_id)

    assert db_session.get(AccountModel, account_id) is not None


def test_delete_empty_account(db_session, account_id):
    DeleteAccountUseCase(db_session).execute(account_id)

    assert db_session.get(AccountModel, account_id) is None
    with pytest.raises(NotFoundError):
        DeleteAccountUseCase(db_session).execute(account_id)


def test_reorder_accounts(db_session, settings, account_id):
    second_id = CreateAccountUseCase(db_session, settings).execute(name="Nequi", color="#000", currency="COP")

    ReorderAccountsUseCase(db_session).execute([second_id, account_id])

    assert db_session.get(AccountModel, second_id).sort_order == 0
    assert db_session.get(AccountModel, account_id).sort_order == 1


def test_reorder_rejects_duplicates(db_session, account_id):
    with pytest.raises(IntegrityViolationError):
        ReorderAccountsUseCase(db_session).execute([account_id, account_id])
