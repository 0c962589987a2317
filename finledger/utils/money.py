"""
Money formatting for advisor texts.

Usage:
    from finledger.utils.money import format_money

    format_money(Decimal("15000"))     -> "R$ 15,000.00"
    format_money(-1200.5)              -> "-R$ 1,200.50"
"""
from decimal import Decimal

CURRENCY_SYMBOL = "R$"


def format_money(amount, symbol: str = CURRENCY_SYMBOL) -> str:
    """
    Two decimals, thousands separator, currency symbol in front.

    Args:
        amount: int / float / Decimal / str
        symbol: currency prefix
    """
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol} {abs(amount):,.2f}"


def format_percent(value, places: int = 1) -> str:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return f"{value:.{places}f}%"
