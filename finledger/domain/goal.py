"""
Savings goal domain - status machine and progress arithmetic

A goal moves through ACTIVE / PAUSED / COMPLETED / EXPIRED:

- ACTIVE -> PAUSED          pause
- PAUSED -> ACTIVE          reactivate (allowed even past the end date)
- ACTIVE|PAUSED -> EXPIRED  expiry sweep, end date before today
- any but COMPLETED -> COMPLETED   progress reaches the target

COMPLETED is terminal. EXPIRED is a soft flag: progress can still be added
and may complete the goal.
"""
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, FrozenSet

PERCENT_PLACES = Decimal("0.0001")
HUNDRED = Decimal("100")


class GoalType(str, Enum):
    EMERGENCY_FUND = "EMERGENCY_FUND"
    TRIP = "TRIP"
    MONTHLY_SAVINGS = "MONTHLY_SAVINGS"
    SPECIFIC_INVESTMENT = "SPECIFIC_INVESTMENT"
    PURCHASE = "PURCHASE"
    EDUCATION = "EDUCATION"
    RETIREMENT = "RETIREMENT"
    OTHER = "OTHER"


class GoalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


GOAL_TRANSITIONS: Dict[GoalStatus, FrozenSet[GoalStatus]] = {
    GoalStatus.ACTIVE: frozenset({GoalStatus.PAUSED, GoalStatus.COMPLETED, GoalStatus.EXPIRED}),
    GoalStatus.PAUSED: frozenset({GoalStatus.ACTIVE, GoalStatus.COMPLETED, GoalStatus.EXPIRED}),
    GoalStatus.EXPIRED: frozenset({GoalStatus.COMPLETED}),
    GoalStatus.COMPLETED: frozenset(),
}

# Statuses the expiry sweep is allowed to flip
SWEEPABLE_STATUSES = tuple(
    status for status in GoalStatus if GoalStatus.EXPIRED in GOAL_TRANSITIONS[status]
)


def can_transition(current: GoalStatus, target: GoalStatus) -> bool:
    return target in GOAL_TRANSITIONS[current]


def completion_percentage(current: Decimal, target: Decimal) -> Decimal:
    """
    round(current / target * 100, 4 places, HALF_UP)

    Example:
        >>> completion_percentage(Decimal("3000.00"), Decimal("10000.00"))
        Decimal('30.0000')
        >>> completion_percentage(Decimal("1"), Decimal("3"))
        Decimal('33.3333')
    """
    return (current * HUNDRED / target).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def is_overdue(end_date: date, today: date) -> bool:
    """The deadline has passed (the end date itself is still in time)"""
    return end_date < today
