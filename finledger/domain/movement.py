"""
Financial movement domain: enums, status machine, balance arithmetic
"""
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, FrozenSet

CENTS = Decimal("0.01")

# Money columns are Numeric(15, 2): at most 13 integer digits
AMOUNT_LIMIT = Decimal("10000000000000")


class MovementType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class MovementStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REVERSED = "REVERSED"


class MovementSource(str, Enum):
    MANUAL = "MANUAL"
    IMPORT = "IMPORT"      # bank statement files
    API = "API"
    RECURRING = "RECURRING"


class MovementCategory(str, Enum):
    SALES = "SALES"
    SERVICES = "SERVICES"
    SALARY = "SALARY"
    INVESTMENTS = "INVESTMENTS"
    SUPPLIERS = "SUPPLIERS"
    RENT = "RENT"
    UTILITIES = "UTILITIES"
    TAXES = "TAXES"
    PAYROLL = "PAYROLL"
    MARKETING = "MARKETING"
    FOOD = "FOOD"
    TRANSPORT = "TRANSPORT"
    HEALTH = "HEALTH"
    EDUCATION = "EDUCATION"
    LEISURE = "LEISURE"
    OTHER = "OTHER"


# Allowed status changes. REVERSED is terminal: a reversal is never undone.
MOVEMENT_TRANSITIONS: Dict[MovementStatus, FrozenSet[MovementStatus]] = {
    MovementStatus.PENDING: frozenset({
        MovementStatus.COMPLETED,
        MovementStatus.CANCELLED,
        MovementStatus.REVERSED,
    }),
    MovementStatus.COMPLETED: frozenset({MovementStatus.REVERSED}),
    MovementStatus.CANCELLED: frozenset({MovementStatus.REVERSED}),
    MovementStatus.REVERSED: frozenset(),
}


def can_transition(current: MovementStatus, target: MovementStatus) -> bool:
    """True if `current -> target` is a legal movement status change"""
    return target in MOVEMENT_TRANSITIONS[current]


def to_money(value) -> Decimal:
    """Quantize any numeric value (Decimal, int, float, str) to cents"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def resulting_balance(prior: Decimal, amount: Decimal, movement_type: MovementType) -> Decimal:
    """
    Balance after applying a movement on top of `prior`

    Example:
        >>> resulting_balance(Decimal("100.00"), Decimal("30.00"), MovementType.EXPENSE)
        Decimal('70.00')
    """
    if movement_type == MovementType.INCOME:
        return to_money(prior + amount)
    return to_money(prior - amount)
