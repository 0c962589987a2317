"""
Goal use cases - savings goals, progress and the expiry sweep
"""
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from finledger.infrastructure.db.models import SavingsGoalModel
from finledger.domain.goal import (
    GoalType, GoalStatus, SWEEPABLE_STATUSES,
    can_transition, completion_percentage, is_overdue,
)
from finledger.domain.movement import AMOUNT_LIMIT, to_money
from finledger.application.accounts import get_account_or_raise
from finledger.application.errors import (
    ValidationError, NotFoundError, ConflictError,
    translate_errors, validate_id, require_text, optional_text,
)
from finledger.application.movements import coerce_enum, validate_amount
from finledger.utils import dates

logger = logging.getLogger(__name__)

_ZERO_PERCENT = Decimal("0.0000")

_PAUSE_REFUSALS = {
    GoalStatus.PAUSED: "Goal is already paused",
    GoalStatus.COMPLETED: "Cannot pause a completed goal",
    GoalStatus.EXPIRED: "Cannot pause an expired goal",
}


def _validate_goal_fields(
    name,
    account_id,
    goal_type,
    target_amount,
    start_date,
    end_date,
    today: date,
) -> dict:
    """Field checks shared by create and update, in reporting order"""
    name = require_text(name, "name")
    validate_id(account_id, "account ID")
    goal_type = coerce_enum(GoalType, goal_type, "goal type")
    target_amount = validate_amount(target_amount, "Target amount must be greater than zero")
    if start_date is None or end_date is None:
        raise ValidationError("Start and end dates are required")
    if start_date > end_date:
        raise ValidationError("Start date must not be after end date")
    if start_date > today:
        raise ValidationError("Start date cannot be in the future")
    return {
        "name": name,
        "account_id": account_id,
        "goal_type": goal_type,
        "target_amount": target_amount,
        "start_date": start_date,
        "end_date": end_date,
    }


def _get_goal_or_raise(db: Session, goal_id: int) -> SavingsGoalModel:
    validate_id(goal_id, "goal ID")
    goal = db.query(SavingsGoalModel).filter(SavingsGoalModel.id == goal_id).first()
    if goal is None:
        raise NotFoundError(f"Goal not found with ID: {goal_id}")
    return goal


class CreateGoalUseCase:
    """Use case: create a savings goal (ACTIVE, nothing saved yet)"""

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("create goal")
    def execute(
        self,
        account_id: int,
        name: str | None,
        goal_type: GoalType | str | None,
        target_amount: Decimal | None,
        start_date: date | None,
        end_date: date | None,
        description: str | None = None,
        notes: str | None = None,
        today: date | None = None,
    ) -> SavingsGoalModel:
        """
        Args:
            today: reference date for the "start not in the future" rule
                   (defaults to today in settings.TIMEZONE)

        Returns:
            The persisted goal
        """
        today = today or dates.today()
        fields = _validate_goal_fields(
            name, account_id, goal_type, target_amount, start_date, end_date, today
        )

        logger.info("Creating goal '%s' for account %s", fields["name"], account_id)

        get_account_or_raise(self.db, account_id)

        goal = SavingsGoalModel(
            **fields,
            description=optional_text(description),
            notes=optional_text(notes),
            current_amount=to_money(0),
            status=GoalStatus.ACTIVE,
            completion_percentage=_ZERO_PERCENT,
            registered_at=dates.now(),
        )
        self.db.add(goal)
        self.db.commit()

        logger.info("Goal created. ID: %s, target: %s", goal.id, goal.target_amount)
        return goal


class UpdateGoalUseCase:
    """
    Use case: edit a goal's definition

    Saved amount and status are kept; the percentage follows the new target.
    """

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("update goal")
    def execute(
        self,
        goal_id: int,
        account_id: int,
        name: str | None,
        goal_type: GoalType | str | None,
        target_amount: Decimal | None,
        start_date: date | None,
        end_date: date | None,
        description: str | None = None,
        notes: str | None = None,
        today: date | None = None,
    ) -> SavingsGoalModel:
        today = today or dates.today()
        fields = _validate_goal_fields(
            name, account_id, goal_type, target_amount, start_date, end_date, today
        )
        validate_id(goal_id, "goal ID")

        goal = _get_goal_or_raise(self.db, goal_id)
        get_account_or_raise(self.db, account_id)

        for key, value in fields.items():
            setattr(goal, key, value)
        goal.description = optional_text(description)
        goal.notes = optional_text(notes)
        goal.completion_percentage = completion_percentage(goal.current_amount, goal.target_amount)
        self.db.commit()

        logger.info(
            "Goal updated. ID: %s, name: %s, progress: %s%%",
            goal.id, goal.name, goal.completion_percentage,
        )
        return goal


class AddGoalProgressUseCase:
    """
    Use case: add saved money to a goal

    Only a COMPLETED goal refuses progress. Reaching the target completes the
    goal, whatever its status was (PAUSED and EXPIRED included).
    """

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("update goal progress")
    def execute(self, goal_id: int, amount: Decimal | None) -> SavingsGoalModel:
        validate_id(goal_id, "goal ID")
        amount = validate_amount(amount, "Progress amount must be greater than zero")

        goal = _get_goal_or_raise(self.db, goal_id)
        if goal.status == GoalStatus.COMPLETED:
            raise ConflictError("Goal is already completed")

        saved = to_money(goal.current_amount + amount)
        if saved >= AMOUNT_LIMIT:
            raise ValidationError(f"Saved amount must stay below {AMOUNT_LIMIT}")
        goal.current_amount = saved
        goal.completion_percentage = completion_percentage(goal.current_amount, goal.target_amount)
        if goal.current_amount >= goal.target_amount and can_transition(goal.status, GoalStatus.COMPLETED):
            goal.status = GoalStatus.COMPLETED
            logger.info("Goal ID %s reached its target", goal.id)
        self.db.commit()

        logger.info(
            "Goal progress updated. ID: %s, added: %s, saved: %s, progress: %s%%",
            goal.id, amount, goal.current_amount, goal.completion_percentage,
        )
        return goal


class PauseGoalUseCase:
    """Use case: pause an ACTIVE goal"""

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("pause goal")
    def execute(self, goal_id: int) -> SavingsGoalModel:
        goal = _get_goal_or_raise(self.db, goal_id)

        if not can_transition(goal.status, GoalStatus.PAUSED):
            raise ConflictError(_PAUSE_REFUSALS[goal.status])

        goal.status = GoalStatus.PAUSED
        self.db.commit()

        logger.info("Goal paused. ID: %s", goal_id)
        return goal


class ReactivateGoalUseCase:
    """Use case: resume a PAUSED goal, even one past its end date"""

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("reactivate goal")
    def execute(self, goal_id: int, today: date | None = None) -> SavingsGoalModel:
        goal = _get_goal_or_raise(self.db, goal_id)

        if not can_transition(goal.status, GoalStatus.ACTIVE):
            raise ConflictError(
                f"Goal is not paused. Current status: {goal.status.value}. "
                "Only paused goals can be reactivated."
            )

        if is_overdue(goal.end_date, today or dates.today()):
            logger.warning(
                "Reactivating overdue goal ID %s (end date %s); the next sweep will expire it",
                goal_id, goal.end_date,
            )

        goal.status = GoalStatus.ACTIVE
        self.db.commit()

        logger.info("Goal reactivated. ID: %s", goal_id)
        return goal


class DeleteGoalUseCase:
    def __init__(self, db: Session):
        self.db = db

    @translate_errors("delete goal")
    def execute(self, goal_id: int) -> None:
        goal = _get_goal_or_raise(self.db, goal_id)
        self.db.delete(goal)
        self.db.commit()
        logger.info("Goal deleted. ID: %s", goal_id)


class SweepExpiredGoalsUseCase:
    """
    Use case: mark ACTIVE / PAUSED goals whose end date has passed as EXPIRED

    Each goal is committed on its own, so a failure midway keeps the goals
    already flipped. Run by the scheduler and exposed over HTTP.
    """

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("check expired goals")
    def execute(self, today: date | None = None) -> int:
        today = today or dates.today()
        logger.info("Checking goals expired before %s", today)

        candidates = (
            self.db.query(SavingsGoalModel)
            .filter(
                SavingsGoalModel.end_date < today,
                SavingsGoalModel.status.in_(SWEEPABLE_STATUSES),
            )
            .order_by(SavingsGoalModel.id.asc())
            .all()
        )

        expired = 0
        for goal in candidates:
            if not can_transition(goal.status, GoalStatus.EXPIRED):
                continue
            goal.status = GoalStatus.EXPIRED
            self.db.commit()
            expired += 1
            logger.info("Goal marked as expired. ID: %s, name: %s", goal.id, goal.name)

        logger.info("Expiry sweep finished: %d goals expired", expired)
        return expired


class GoalQueries:
    """Read-only goal listings"""

    def __init__(self, db: Session):
        self.db = db

    def _for_account(self, account_id: int):
        get_account_or_raise(self.db, account_id)
        return self.db.query(SavingsGoalModel).filter(SavingsGoalModel.account_id == account_id)

    @translate_errors("list goals")
    def list_all(self) -> list[SavingsGoalModel]:
        return self.db.query(SavingsGoalModel).order_by(SavingsGoalModel.id.asc()).all()

    @translate_errors("find goal by ID")
    def get(self, goal_id: int) -> SavingsGoalModel:
        return _get_goal_or_raise(self.db, goal_id)

    @translate_errors("list goals by account")
    def by_account(self, account_id: int) -> list[SavingsGoalModel]:
        goals = self._for_account(account_id).order_by(SavingsGoalModel.id.asc()).all()
        logger.info("Goals found for account %s: %d", account_id, len(goals))
        return goals

    @translate_errors("list active goals by account")
    def active_by_account(self, account_id: int) -> list[SavingsGoalModel]:
        return (
            self._for_account(account_id)
            .filter(SavingsGoalModel.status == GoalStatus.ACTIVE)
            .order_by(SavingsGoalModel.end_date.asc(), SavingsGoalModel.id.asc())
            .all()
        )

    @translate_errors("list expired goals by account")
    def expired_by_account(self, account_id: int, today: date | None = None) -> list[SavingsGoalModel]:
        """Goals past their end date that were never completed (swept or not)"""
        today = today or dates.today()
        return (
            self._for_account(account_id)
            .filter(
                SavingsGoalModel.end_date < today,
                SavingsGoalModel.status != GoalStatus.COMPLETED,
            )
            .order_by(SavingsGoalModel.end_date.asc(), SavingsGoalModel.id.asc())
            .all()
        )

    @translate_errors("list goals by type")
    def by_type(self, account_id: int, goal_type: GoalType | str | None) -> list[SavingsGoalModel]:
        validate_id(account_id, "account ID")
        goal_type = coerce_enum(GoalType, goal_type, "goal type")
        return (
            self._for_account(account_id)
            .filter(SavingsGoalModel.goal_type == goal_type)
            .order_by(SavingsGoalModel.id.asc())
            .all()
        )

    @translate_errors("summarize goals by account")
    def summary_by_account(self, account_id: int) -> dict:
        """
        Returns:
            {"account_id", "total", "completed", "by_status": {STATUS: count}}
        """
        get_account_or_raise(self.db, account_id)
        rows = (
            self.db.query(SavingsGoalModel.status, func.count(SavingsGoalModel.id))
            .filter(SavingsGoalModel.account_id == account_id)
            .group_by(SavingsGoalModel.status)
            .all()
        )
        by_status = {status.value: 0 for status in GoalStatus}
        for status, count in rows:
            by_status[status.value] = count
        return {
            "account_id": account_id,
            "total": sum(by_status.values()),
            "completed": by_status[GoalStatus.COMPLETED.value],
            "by_status": by_status,
        }
