"""Tests for goal domain rules"""
from datetime import date
from decimal import Decimal

from finledger.domain.goal import (
    GoalStatus, SWEEPABLE_STATUSES, can_transition, completion_percentage, is_overdue,
)


def test_completion_percentage_four_places():
    assert completion_percentage(Decimal("3000.00"), Decimal("10000.00")) == Decimal("30.0000")
    assert completion_percentage(Decimal("1"), Decimal("3")) == Decimal("33.3333")
    assert completion_percentage(Decimal("2"), Decimal("3")) == Decimal("66.6667")


def test_completion_percentage_can_exceed_hundred():
    assert completion_percentage(Decimal("150"), Decimal("100")) == Decimal("150.0000")


def test_completed_is_terminal():
    for status in GoalStatus:
        assert not can_transition(GoalStatus.COMPLETED, status)


def test_expired_only_completes():
    assert can_transition(GoalStatus.EXPIRED, GoalStatus.COMPLETED)
    assert not can_transition(GoalStatus.EXPIRED, GoalStatus.ACTIVE)
    assert not can_transition(GoalStatus.EXPIRED, GoalStatus.PAUSED)


def test_pause_and_reactivate_edges():
    assert can_transition(GoalStatus.ACTIVE, GoalStatus.PAUSED)
    assert can_transition(GoalStatus.PAUSED, GoalStatus.ACTIVE)
    assert not can_transition(GoalStatus.PAUSED, GoalStatus.PAUSED)


def test_end_date_itself_is_not_overdue():
    assert not is_overdue(date(2024, 6, 30), date(2024, 6, 30))
    assert is_overdue(date(2024, 6, 30), date(2024, 7, 1))


def test_sweepable_statuses_follow_transition_table():
    assert SWEEPABLE_STATUSES == (GoalStatus.ACTIVE, GoalStatus.PAUSED)
    for status in SWEEPABLE_STATUSES:
        assert can_transition(status, GoalStatus.EXPIRED)
