"""
Account domain rules
"""
from decimal import Decimal
from typing import Iterable

from ledger.utils.money import quantize_money

ACCOUNT_TYPE_NORMAL = "normal"          # баланс = сумма карманов
ACCOUNT_TYPE_INVESTMENT = "investment"  # баланс = акции × рыночная цена

ACCOUNT_TYPES = (ACCOUNT_TYPE_NORMAL, ACCOUNT_TYPE_INVESTMENT)


def normal_account_balance(pocket_balances: Iterable[Decimal]) -> Decimal:
    return sum((Decimal(b) for b in pocket_balances), Decimal("0"))


def investment_market_value(share_count: Decimal, price: Decimal) -> Decimal:
    """Рыночная стоимость, округлённая до центов"""
    return quantize_money(Decimal(share_count or 0) * Decimal(price))
