"""Tests for savings goals: creation, progress, pause/reactivate and the expiry sweep"""
import logging
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

from finledger.infrastructure.db.models import SavingsGoalModel
from finledger.domain.goal import GoalType, GoalStatus
from finledger.application.errors import ValidationError, NotFoundError, ConflictError, UnexpectedError
from finledger.application.goals import (
    CreateGoalUseCase, UpdateGoalUseCase, AddGoalProgressUseCase,
    PauseGoalUseCase, ReactivateGoalUseCase, DeleteGoalUseCase,
    SweepExpiredGoalsUseCase, GoalQueries,
)

TODAY = date(2024, 6, 15)


def create_goal(db, account_id, **overrides):
    params = dict(
        account_id=account_id,
        name="Emergency fund",
        goal_type=GoalType.EMERGENCY_FUND,
        target_amount=Decimal("10000.00"),
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
        today=TODAY,
    )
    params.update(overrides)
    return CreateGoalUseCase(db).execute(**params)


def set_status(db, goal, status):
    goal.status = status
    db.commit()


class TestCreateGoal:
    def test_defaults(self, db_session, account):
        goal = create_goal(db_session, account.id, description="  six months  ")

        assert goal.status == GoalStatus.ACTIVE
        assert goal.current_amount == Decimal("0.00")
        assert goal.completion_percentage == Decimal("0.0000")
        assert goal.description == "six months"
        assert goal.registered_at is not None

    def test_blank_name(self, db_session, account):
        with pytest.raises(ValidationError, match="Name is required"):
            create_goal(db_session, account.id, name=" ")

    def test_type_required(self, db_session, account):
        with pytest.raises(ValidationError, match="Goal type is required"):
            create_goal(db_session, account.id, goal_type=None)

    @pytest.mark.parametrize("target", [Decimal("0"), Decimal("-1"), None])
    def test_target_must_be_positive(self, db_session, account, target):
        with pytest.raises(ValidationError, match="Target amount must be greater than zero"):
            create_goal(db_session, account.id, target_amount=target)

    def test_dates_required(self, db_session, account):
        with pytest.raises(ValidationError, match="Start and end dates are required"):
            create_goal(db_session, account.id, end_date=None)

    def test_start_after_end(self, db_session, account):
        with pytest.raises(ValidationError, match="Start date must not be after end date"):
            create_goal(db_session, account.id, start_date=date(2024, 6, 1), end_date=date(2024, 5, 1))

    def test_start_in_future(self, db_session, account):
        with pytest.raises(ValidationError, match="cannot be in the future"):
            create_goal(db_session, account.id, start_date=date(2024, 6, 16), end_date=date(2024, 12, 1))
        assert db_session.query(SavingsGoalModel).count() == 0

    def test_start_today_is_fine(self, db_session, account):
        goal = create_goal(db_session, account.id, start_date=TODAY)
        assert goal.start_date == TODAY

    def test_unknown_account(self, db_session):
        with pytest.raises(NotFoundError):
            create_goal(db_session, 77)


class TestGoalProgress:
    def test_scenario_progress_to_completion(self, db_session, account):
        goal = create_goal(db_session, account.id)
        progress = AddGoalProgressUseCase(db_session)

        goal = progress.execute(goal.id, Decimal("3000.00"))
        assert goal.current_amount == Decimal("3000.00")
        assert goal.completion_percentage == Decimal("30.0000")
        assert goal.status == GoalStatus.ACTIVE

        goal = progress.execute(goal.id, Decimal("7000.00"))
        assert goal.current_amount == Decimal("10000.00")
        assert goal.completion_percentage == Decimal("100.0000")
        assert goal.status == GoalStatus.COMPLETED

        with pytest.raises(ConflictError, match="Goal is already completed"):
            progress.execute(goal.id, Decimal("1.00"))

        db_session.refresh(goal)
        assert goal.current_amount == Decimal("10000.00")

    def test_overshoot_completes(self, db_session, account):
        goal = create_goal(db_session, account.id, target_amount=Decimal("100"))
        goal = AddGoalProgressUseCase(db_session).execute(goal.id, Decimal("150"))
        assert goal.status == GoalStatus.COMPLETED
        assert goal.completion_percentage == Decimal("150.0000")

    def test_large_overshoot_fits_percentage_column(self, db_session, account):
        goal = create_goal(db_session, account.id, target_amount=Decimal("1.00"))
        goal = AddGoalProgressUseCase(db_session).execute(goal.id, Decimal("1000.00"))

        assert goal.completion_percentage == Decimal("100000.0000")
        column = SavingsGoalModel.__table__.c.completion_percentage.type
        # worst case: the largest storable amount saved toward a one-cent target
        worst = Decimal("9999999999999.99") * 100 / Decimal("0.01")
        assert worst < Decimal(10) ** (column.precision - column.scale)

    def test_saved_amount_stays_within_money_range(self, db_session, account):
        goal = create_goal(db_session, account.id, target_amount=Decimal("9999999999999.99"))
        progress = AddGoalProgressUseCase(db_session)
        progress.execute(goal.id, Decimal("9999999999999.00"))

        with pytest.raises(ValidationError, match="Saved amount must stay below"):
            progress.execute(goal.id, Decimal("1.00"))

        db_session.refresh(goal)
        assert goal.current_amount == Decimal("9999999999999.00")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), None])
    def test_amount_must_be_positive(self, db_session, account, amount):
        goal = create_goal(db_session, account.id)
        with pytest.raises(ValidationError, match="Progress amount must be greater than zero"):
            AddGoalProgressUseCase(db_session).execute(goal.id, amount)

    def test_paused_goal_accepts_progress(self, db_session, account):
        goal = create_goal(db_session, account.id, target_amount=Decimal("100"))
        PauseGoalUseCase(db_session).execute(goal.id)

        goal = AddGoalProgressUseCase(db_session).execute(goal.id, Decimal("40"))
        assert goal.status == GoalStatus.PAUSED
        assert goal.current_amount == Decimal("40.00")

    def test_expired_goal_can_still_complete(self, db_session, account):
        goal = create_goal(db_session, account.id, target_amount=Decimal("100"))
        set_status(db_session, goal, GoalStatus.EXPIRED)

        goal = AddGoalProgressUseCase(db_session).execute(goal.id, Decimal("100"))
        assert goal.status == GoalStatus.COMPLETED

    def test_unknown_goal(self, db_session):
        with pytest.raises(NotFoundError, match="Goal not found with ID: 5"):
            AddGoalProgressUseCase(db_session).execute(5, Decimal("1"))


class TestPauseReactivate:
    def test_pause_active(self, db_session, account):
        goal = create_goal(db_session, account.id)
        assert PauseGoalUseCase(db_session).execute(goal.id).status == GoalStatus.PAUSED

    def test_pause_twice(self, db_session, account):
        goal = create_goal(db_session, account.id)
        PauseGoalUseCase(db_session).execute(goal.id)
        with pytest.raises(ConflictError, match="already paused"):
            PauseGoalUseCase(db_session).execute(goal.id)

    @pytest.mark.parametrize("status, message", [
        (GoalStatus.COMPLETED, "Cannot pause a completed goal"),
        (GoalStatus.EXPIRED, "Cannot pause an expired goal"),
    ])
    def test_pause_closed_goal(self, db_session, account, status, message):
        goal = create_goal(db_session, account.id)
        set_status(db_session, goal, status)
        with pytest.raises(ConflictError, match=message):
            PauseGoalUseCase(db_session).execute(goal.id)
        db_session.refresh(goal)
        assert goal.status == status

    def test_reactivate_paused(self, db_session, account):
        goal = create_goal(db_session, account.id)
        PauseGoalUseCase(db_session).execute(goal.id)
        goal = ReactivateGoalUseCase(db_session).execute(goal.id, today=TODAY)
        assert goal.status == GoalStatus.ACTIVE

    @pytest.mark.parametrize("status", [GoalStatus.ACTIVE, GoalStatus.COMPLETED, GoalStatus.EXPIRED])
    def test_reactivate_requires_paused(self, db_session, account, status):
        goal = create_goal(db_session, account.id)
        set_status(db_session, goal, status)
        with pytest.raises(ConflictError, match=f"Current status: {status.value}"):
            ReactivateGoalUseCase(db_session).execute(goal.id)

    def test_reactivate_overdue_warns_but_succeeds(self, db_session, account, caplog):
        goal = create_goal(db_session, account.id, end_date=date(2024, 3, 31))
        PauseGoalUseCase(db_session).execute(goal.id)

        with caplog.at_level(logging.WARNING, logger="finledger.application.goals"):
            goal = ReactivateGoalUseCase(db_session).execute(goal.id, today=TODAY)

        assert goal.status == GoalStatus.ACTIVE
        assert "overdue" in caplog.text


class TestSweepExpired:
    def test_flips_only_overdue_active_and_paused(self, db_session, account):
        create_goal(db_session, account.id, name="A", end_date=date(2024, 6, 14))
        overdue_paused = create_goal(db_session, account.id, name="B", end_date=date(2024, 5, 1))
        PauseGoalUseCase(db_session).execute(overdue_paused.id)
        overdue_completed = create_goal(db_session, account.id, name="C", end_date=date(2024, 5, 1))
        set_status(db_session, overdue_completed, GoalStatus.COMPLETED)
        create_goal(db_session, account.id, name="D", end_date=TODAY)
        create_goal(db_session, account.id, name="E", end_date=date(2024, 12, 31))

        count = SweepExpiredGoalsUseCase(db_session).execute(today=TODAY)

        assert count == 2
        statuses = {
            g.name: g.status for g in db_session.query(SavingsGoalModel).all()
        }
        assert statuses == {
            "A": GoalStatus.EXPIRED,
            "B": GoalStatus.EXPIRED,
            "C": GoalStatus.COMPLETED,
            "D": GoalStatus.ACTIVE,
            "E": GoalStatus.ACTIVE,
        }

    def test_second_run_is_a_no_op(self, db_session, account):
        create_goal(db_session, account.id, end_date=date(2024, 6, 1))
        assert SweepExpiredGoalsUseCase(db_session).execute(today=TODAY) == 1
        assert SweepExpiredGoalsUseCase(db_session).execute(today=TODAY) == 0

    def test_failure_midway_keeps_earlier_flips(self, db_session, account):
        first = create_goal(db_session, account.id, name="First", end_date=date(2024, 5, 1))
        second = create_goal(db_session, account.id, name="Second", end_date=date(2024, 5, 2))

        real_commit = db_session.commit
        commits = []

        def commit_then_fail():
            commits.append(1)
            if len(commits) == 2:
                raise RuntimeError("connection lost")
            real_commit()

        with patch.object(db_session, "commit", side_effect=commit_then_fail):
            with pytest.raises(UnexpectedError):
                SweepExpiredGoalsUseCase(db_session).execute(today=TODAY)

        db_session.refresh(first)
        db_session.refresh(second)
        assert first.status == GoalStatus.EXPIRED
        assert second.status == GoalStatus.ACTIVE

        assert SweepExpiredGoalsUseCase(db_session).execute(today=TODAY) == 1
        db_session.refresh(second)
        assert second.status == GoalStatus.EXPIRED


class TestUpdateDelete:
    def test_update_keeps_amount_and_status(self, db_session, account):
        goal = create_goal(db_session, account.id)
        AddGoalProgressUseCase(db_session).execute(goal.id, Decimal("2500"))
        PauseGoalUseCase(db_session).execute(goal.id)

        goal = UpdateGoalUseCase(db_session).execute(
            goal_id=goal.id,
            account_id=account.id,
            name="Bigger fund",
            goal_type=GoalType.EMERGENCY_FUND,
            target_amount=Decimal("5000.00"),
            start_date=date(2024, 1, 1),
            end_date=date(2025, 6, 30),
            today=TODAY,
        )

        assert goal.name == "Bigger fund"
        assert goal.current_amount == Decimal("2500.00")
        assert goal.status == GoalStatus.PAUSED
        assert goal.completion_percentage == Decimal("50.0000")

    def test_update_validates(self, db_session, account):
        goal = create_goal(db_session, account.id)
        with pytest.raises(ValidationError, match="Target amount"):
            UpdateGoalUseCase(db_session).execute(
                goal_id=goal.id,
                account_id=account.id,
                name="x",
                goal_type=GoalType.OTHER,
                target_amount=Decimal("0"),
                start_date=date(2024, 1, 1),
                end_date=date(2024, 2, 1),
                today=TODAY,
            )

    def test_delete(self, db_session, account):
        goal = create_goal(db_session, account.id)
        DeleteGoalUseCase(db_session).execute(goal.id)
        assert db_session.query(SavingsGoalModel).count() == 0
        with pytest.raises(NotFoundError):
            DeleteGoalUseCase(db_session).execute(goal.id)


class TestGoalQueries:
    def test_active_sorted_by_end_date(self, db_session, account):
        create_goal(db_session, account.id, name="Later", end_date=date(2024, 12, 31))
        create_goal(db_session, account.id, name="Sooner", end_date=date(2024, 8, 31))
        paused = create_goal(db_session, account.id, name="Paused", end_date=date(2024, 7, 31))
        PauseGoalUseCase(db_session).execute(paused.id)

        names = [g.name for g in GoalQueries(db_session).active_by_account(account.id)]
        assert names == ["Sooner", "Later"]

    def test_expired_listing_includes_unswept(self, db_session, account):
        create_goal(db_session, account.id, name="Overdue", end_date=date(2024, 5, 31))
        done = create_goal(db_session, account.id, name="Done", end_date=date(2024, 5, 31))
        set_status(db_session, done, GoalStatus.COMPLETED)
        create_goal(db_session, account.id, name="Open", end_date=date(2024, 12, 31))

        names = [g.name for g in GoalQueries(db_session).expired_by_account(account.id, today=TODAY)]
        assert names == ["Overdue"]

    def test_by_type(self, db_session, account):
        create_goal(db_session, account.id, name="Trip", goal_type=GoalType.TRIP)
        create_goal(db_session, account.id, name="Fund")

        names = [g.name for g in GoalQueries(db_session).by_type(account.id, "TRIP")]
        assert names == ["Trip"]

    def test_summary(self, db_session, account, other_account):
        create_goal(db_session, account.id, name="one")
        done = create_goal(db_session, account.id, name="two", target_amount=Decimal("10"))
        AddGoalProgressUseCase(db_session).execute(done.id, Decimal("10"))
        create_goal(db_session, other_account.id, name="elsewhere")

        summary = GoalQueries(db_session).summary_by_account(account.id)

        assert summary["total"] == 2
        assert summary["completed"] == 1
        assert summary["by_status"]["ACTIVE"] == 1
        assert summary["by_status"]["EXPIRED"] == 0
