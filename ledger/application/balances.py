"""
Balance derivation - единственный пересчёт балансов карманов и счетов

recompute(account_id) вызывается в конце каждой мутирующей операции.
Читает только авторитетные балансы нижнего уровня (sub-pockets и
normal-карманы), поэтому повторный запуск ничего не меняет.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from ledger.config import Settings, get_settings
from ledger.domain.account import (
    ACCOUNT_TYPE_INVESTMENT, normal_account_balance, investment_market_value,
)
from ledger.domain.pocket import POCKET_TYPE_FIXED, fixed_pocket_balance
from ledger.infrastructure.db.models import AccountModel, PocketModel, SubPocketModel
from ledger.infrastructure.store.repository import EntityStore
from ledger.application.prices import PriceLookup, PriceLookupError

logger = logging.getLogger(__name__)


def sync_investment_fields(
    store: EntityStore,
    account: AccountModel,
    settings: Optional[Settings] = None
) -> None:
    """
    Синхронизировать invested_amount / share_count с карманами
    "Invested Money" / "Shares". Отсутствующий карман поле не трогает.
    """
    if account.account_type != ACCOUNT_TYPE_INVESTMENT:
        return
    settings = settings or get_settings()
    pockets = store.get_all(PocketModel, account_id=account.id)
    by_name = {p.name: p for p in pockets}

    invested = by_name.get(settings.INVESTED_POCKET_NAME)
    shares = by_name.get(settings.SHARES_POCKET_NAME)
    if invested is not None:
        account.invested_amount = invested.balance
    if shares is not None:
        account.share_count = shares.balance


def recompute(
    store: EntityStore,
    account_id: int,
    price_lookup: Optional[PriceLookup] = None,
    settings: Optional[Settings] = None
) -> Optional[AccountModel]:
    """
    Пересчитать fixed-карманы и баланс счёта

    Args:
        store: EntityStore текущего unit of work
        account_id: ID счёта
        price_lookup: источник цены акций (для investment)

    Returns:
        Обновлённый счёт или None, если счёта уже нет
    """
    account = store.get_by_id(AccountModel, account_id, for_update=True)
    if account is None:
        return None

    pockets = store.get_all(PocketModel, account_id=account_id)
    for pocket in pockets:
        if pocket.pocket_type == POCKET_TYPE_FIXED:
            sub_pockets = store.get_all(SubPocketModel, pocket_id=pocket.id)
            pocket.balance = fixed_pocket_balance(sp.balance for sp in sub_pockets)

    if account.account_type == ACCOUNT_TYPE_INVESTMENT:
        sync_investment_fields(store, account, settings)
        account.balance = _investment_balance(account, price_lookup)
    else:
        account.balance = normal_account_balance(p.balance for p in pockets)

    store.flush()
    return account


def recompute_all(
    store: EntityStore,
    price_lookup: Optional[PriceLookup] = None,
    settings: Optional[Settings] = None
) -> List[AccountModel]:
    """Пересчитать все счета (maintenance)"""
    accounts = store.get_all(AccountModel, order_by=AccountModel.sort_order)
    return [recompute(store, a.id, price_lookup, settings) for a in accounts]


def _investment_balance(account: AccountModel, price_lookup: Optional[PriceLookup]) -> Decimal:
    fallback = Decimal(account.invested_amount or 0)
    if price_lookup is None or not account.stock_symbol:
        return fallback
    try:
        price = price_lookup.get_price(account.stock_symbol)
    except PriceLookupError as exc:
        logger.warning(
            "No price for %s (account %s), using invested amount: %s",
            account.stock_symbol, account.id, exc
        )
        return fallback
    return investment_market_value(account.share_count or 0, price)
