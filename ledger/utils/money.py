"""
Unified money formatting for reports and scripts.

Usage:
    from ledger.utils.money import format_money

    format_money(15000, "USD")      -> "15 000.00 USD"
    format_money(1200.5, "COP", 0)  -> "1 200 COP"
"""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    """Округлить до центов (ROUND_HALF_UP)"""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount, currency: str = "USD", decimals: int = 2) -> str:
    """
    Отформатировать сумму с пробелами-разделителями тысяч и кодом валюты.

    Args:
        amount: число (int / float / Decimal / str)
        currency: ISO-код валюты (USD, EUR, COP …)
        decimals: знаков после запятой
    """
    if isinstance(amount, str):
        amount = Decimal(amount)
    fmt = f"{{:,.{decimals}f}}"
    formatted = fmt.format(amount).replace(",", " ")
    return f"{formatted} {currency}"
