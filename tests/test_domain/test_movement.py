"""Tests for movement domain rules: status machine and balance arithmetic"""
from decimal import Decimal

import pytest

from finledger.domain.movement import (
    MovementType, MovementStatus, MOVEMENT_TRANSITIONS,
    can_transition, resulting_balance, to_money,
)


class TestTransitions:
    @pytest.mark.parametrize("target", [
        MovementStatus.COMPLETED, MovementStatus.CANCELLED, MovementStatus.REVERSED,
    ])
    def test_pending_moves_anywhere(self, target):
        assert can_transition(MovementStatus.PENDING, target)

    def test_completed_only_reverses(self):
        assert can_transition(MovementStatus.COMPLETED, MovementStatus.REVERSED)
        assert not can_transition(MovementStatus.COMPLETED, MovementStatus.CANCELLED)
        assert not can_transition(MovementStatus.COMPLETED, MovementStatus.PENDING)

    def test_cancelled_can_be_reversed(self):
        assert can_transition(MovementStatus.CANCELLED, MovementStatus.REVERSED)
        assert not can_transition(MovementStatus.CANCELLED, MovementStatus.COMPLETED)

    def test_reversed_is_terminal(self):
        assert MOVEMENT_TRANSITIONS[MovementStatus.REVERSED] == frozenset()
        for status in MovementStatus:
            assert not can_transition(MovementStatus.REVERSED, status)


class TestBalanceArithmetic:
    def test_income_adds(self):
        assert resulting_balance(Decimal("100.00"), Decimal("50.25"), MovementType.INCOME) == Decimal("150.25")

    def test_expense_subtracts(self):
        assert resulting_balance(Decimal("100.00"), Decimal("30.00"), MovementType.EXPENSE) == Decimal("70.00")

    def test_expense_may_go_negative(self):
        assert resulting_balance(Decimal("0.00"), Decimal("10.00"), MovementType.EXPENSE) == Decimal("-10.00")

    def test_to_money_rounds_half_up(self):
        assert to_money(Decimal("10.005")) == Decimal("10.01")
        assert to_money(3800.0) == Decimal("3800.00")
        assert to_money(0) == Decimal("0.00")
