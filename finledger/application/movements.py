"""
Ledger use cases - financial movements and the account balance

The balance is never cached: current_balance() sums COMPLETED rows on every
call. Each movement also carries prior/resulting balance snapshots taken when
it was written; those are an audit trail and are not corrected later by
reversals or by updates of other rows.
"""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy import func
from sqlalchemy.orm import Session

from finledger.infrastructure.db.models import FinancialMovementModel
from finledger.domain.movement import (
    MovementType, MovementStatus, MovementSource, MovementCategory,
    AMOUNT_LIMIT, CENTS, can_transition, resulting_balance, to_money,
)
from finledger.application.accounts import get_account_or_raise
from finledger.application.errors import (
    ValidationError, NotFoundError, ConflictError,
    translate_errors, validate_id, require_text, optional_text,
)
from finledger.utils.dates import now

logger = logging.getLogger(__name__)

_ZERO = Decimal("0.00")

# Statuses a movement may be created with
_INITIAL_STATUSES = (MovementStatus.PENDING, MovementStatus.COMPLETED)


def current_balance(db: Session, account_id: int) -> Decimal:
    """
    Sum of COMPLETED INCOME minus sum of COMPLETED EXPENSE for an account

    Pending, cancelled and reversed rows are ignored. No existence check:
    an unknown account simply has a zero balance.
    """
    rows = (
        db.query(
            FinancialMovementModel.movement_type,
            func.coalesce(func.sum(FinancialMovementModel.amount), 0),
        )
        .filter(
            FinancialMovementModel.account_id == account_id,
            FinancialMovementModel.status == MovementStatus.COMPLETED,
        )
        .group_by(FinancialMovementModel.movement_type)
        .all()
    )
    totals = {movement_type: to_money(total) for movement_type, total in rows}
    income = totals.get(MovementType.INCOME, _ZERO)
    expense = totals.get(MovementType.EXPENSE, _ZERO)

    logger.debug(
        "Balance for account %s: income=%s expense=%s balance=%s",
        account_id, income, expense, income - expense,
    )
    return to_money(income - expense)


def coerce_enum(enum_cls, value, label: str):
    """Accept an enum member or its name; None -> '<Label> is required'"""
    if value is None:
        raise ValidationError(f"{label[:1].upper()}{label[1:]} is required")
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}") from None


def validate_amount(amount, message: str = "Amount must be greater than zero") -> Decimal:
    if amount is None:
        raise ValidationError(message)
    if not isinstance(amount, Decimal):
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise ValidationError("Invalid amount") from None
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(message)
    if amount != amount.quantize(CENTS):
        raise ValidationError("Amount must have at most 2 decimal places")
    if amount >= AMOUNT_LIMIT:
        raise ValidationError(f"Amount must be less than {AMOUNT_LIMIT}")
    return to_money(amount)


def validate_period(start_date: date | None, end_date: date | None) -> None:
    if start_date is None or end_date is None:
        raise ValidationError("Start and end dates are required")
    if start_date > end_date:
        raise ValidationError("Start date must not be after end date")


def _validate_fields(
    account_id,
    movement_type,
    amount,
    description,
    category,
    movement_date,
    source,
) -> dict:
    """Field checks shared by register and update, in reporting order"""
    description = require_text(description, "description")
    validate_id(account_id, "account ID")
    movement_type = coerce_enum(MovementType, movement_type, "movement type")
    amount = validate_amount(amount)
    if movement_date is None:
        raise ValidationError("Movement date is required")
    category = coerce_enum(MovementCategory, category, "category")
    source = coerce_enum(MovementSource, source, "movement source")
    return {
        "account_id": account_id,
        "movement_type": movement_type,
        "amount": amount,
        "description": description,
        "category": category,
        "movement_date": movement_date,
        "source": source,
    }


def _ensure_unique_external_id(db: Session, account_id: int, external_id: str | None) -> None:
    if not external_id:
        return
    duplicate = db.query(FinancialMovementModel.id).filter(
        FinancialMovementModel.account_id == account_id,
        FinancialMovementModel.external_id == external_id,
    ).first()
    if duplicate:
        raise ConflictError(
            f"A movement with external ID {external_id} is already registered for this account"
        )


def _get_movement_or_raise(db: Session, movement_id: int) -> FinancialMovementModel:
    validate_id(movement_id, "movement ID")
    movement = db.query(FinancialMovementModel).filter(
        FinancialMovementModel.id == movement_id
    ).first()
    if movement is None:
        raise NotFoundError(f"Movement not found with ID: {movement_id}")
    return movement


class RegisterMovementUseCase:
    """
    Use case: record an income or expense

    Process:
    1. Validate fields (description, account, type, amount, date, category, source)
    2. Lock the account row and read its current balance
    3. Stamp prior/resulting snapshots and persist (COMPLETED unless told PENDING)
    """

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("register financial movement")
    def execute(
        self,
        account_id: int,
        movement_type: MovementType | str | None,
        amount: Decimal | None,
        description: str | None,
        category: MovementCategory | str | None,
        movement_date: date | None,
        source: MovementSource | str | None,
        status: MovementStatus | str | None = None,
        notes: str | None = None,
        origin_file: str | None = None,
        external_id: str | None = None,
    ) -> FinancialMovementModel:
        """
        Returns:
            The persisted movement

        Raises:
            ValidationError, NotFoundError (account), ConflictError (duplicate external id)
        """
        fields = _validate_fields(
            account_id, movement_type, amount, description, category, movement_date, source
        )
        status = MovementStatus.COMPLETED if status is None else coerce_enum(MovementStatus, status, "status")
        if status not in _INITIAL_STATUSES:
            raise ValidationError("A new movement must be PENDING or COMPLETED")
        external_id = optional_text(external_id)

        logger.info(
            "Registering movement. Type: %s, amount: %s, account: %s",
            fields["movement_type"].value, fields["amount"], account_id,
        )

        get_account_or_raise(self.db, account_id, lock=True)
        _ensure_unique_external_id(self.db, account_id, external_id)

        prior = current_balance(self.db, account_id)
        resulting = resulting_balance(prior, fields["amount"], fields["movement_type"])

        movement = FinancialMovementModel(
            **fields,
            status=status,
            notes=optional_text(notes),
            registered_at=now(),
            prior_balance=prior,
            resulting_balance=resulting,
            origin_file=optional_text(origin_file),
            external_id=external_id,
        )
        self.db.add(movement)
        self.db.commit()

        logger.info(
            "Movement registered. ID: %s, type: %s, amount: %s, balance: %s -> %s",
            movement.id, movement.movement_type.value, movement.amount, prior, resulting,
        )
        return movement


class UpdateMovementUseCase:
    """
    Use case: edit a movement

    Snapshots are re-stamped from the balance at update time, not from the
    balance at the movement's original date. An omitted status keeps the
    stored one; a new status must be a legal transition.
    """

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("update financial movement")
    def execute(
        self,
        movement_id: int,
        account_id: int,
        movement_type: MovementType | str | None,
        amount: Decimal | None,
        description: str | None,
        category: MovementCategory | str | None,
        movement_date: date | None,
        source: MovementSource | str | None,
        status: MovementStatus | str | None = None,
        notes: str | None = None,
    ) -> FinancialMovementModel:
        fields = _validate_fields(
            account_id, movement_type, amount, description, category, movement_date, source
        )
        validate_id(movement_id, "movement ID")

        logger.info("Updating movement ID: %s", movement_id)

        movement = _get_movement_or_raise(self.db, movement_id)
        get_account_or_raise(self.db, account_id, lock=True)

        if status is not None:
            status = coerce_enum(MovementStatus, status, "status")
            if status != movement.status and not can_transition(movement.status, status):
                raise ConflictError(
                    f"Cannot change movement status from {movement.status.value} to {status.value}"
                )
        else:
            status = movement.status

        prior = current_balance(self.db, account_id)
        resulting = resulting_balance(prior, fields["amount"], fields["movement_type"])

        for key, value in fields.items():
            setattr(movement, key, value)
        movement.status = status
        movement.notes = optional_text(notes)
        movement.prior_balance = prior
        movement.resulting_balance = resulting
        self.db.commit()

        logger.info(
            "Movement updated. ID: %s, type: %s, amount: %s",
            movement.id, movement.movement_type.value, movement.amount,
        )
        return movement


class _ChangeMovementStatusUseCase:
    """Shared flow for one-step status changes (reverse / complete / cancel)"""

    target_status: MovementStatus

    def __init__(self, db: Session):
        self.db = db

    def _change(self, movement_id: int) -> FinancialMovementModel:
        validate_id(movement_id, "movement ID")
        movement = _get_movement_or_raise(self.db, movement_id)

        if movement.status == self.target_status:
            raise ConflictError(f"Movement is already {self.target_status.value}")
        if not can_transition(movement.status, self.target_status):
            raise ConflictError(
                f"Cannot change movement status from {movement.status.value} "
                f"to {self.target_status.value}"
            )

        previous = movement.status
        movement.status = self.target_status
        self.db.commit()

        logger.info(
            "Movement ID %s status changed: %s -> %s",
            movement_id, previous.value, movement.status.value,
        )
        return movement


class ReverseMovementUseCase(_ChangeMovementStatusUseCase):
    """
    Use case: reverse a movement (one way)

    The row stays, drops out of the balance, and its snapshots, like those of
    every later row, keep the values they were written with.
    """
    target_status = MovementStatus.REVERSED

    @translate_errors("reverse financial movement")
    def execute(self, movement_id: int) -> FinancialMovementModel:
        return self._change(movement_id)


class CompleteMovementUseCase(_ChangeMovementStatusUseCase):
    """Use case: settle a PENDING movement"""
    target_status = MovementStatus.COMPLETED

    @translate_errors("complete financial movement")
    def execute(self, movement_id: int) -> FinancialMovementModel:
        return self._change(movement_id)


class CancelMovementUseCase(_ChangeMovementStatusUseCase):
    """Use case: cancel a PENDING movement"""
    target_status = MovementStatus.CANCELLED

    @translate_errors("cancel financial movement")
    def execute(self, movement_id: int) -> FinancialMovementModel:
        return self._change(movement_id)


class DeleteMovementUseCase:
    def __init__(self, db: Session):
        self.db = db

    @translate_errors("delete financial movement")
    def execute(self, movement_id: int) -> None:
        movement = _get_movement_or_raise(self.db, movement_id)
        self.db.delete(movement)
        self.db.commit()
        logger.info("Movement deleted. ID: %s", movement_id)


class BalanceQuery:
    """Current balance of an existing account"""

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("compute current balance")
    def execute(self, account_id: int) -> Decimal:
        get_account_or_raise(self.db, account_id)
        return current_balance(self.db, account_id)


class MovementQueries:
    """Read-only movement listings"""

    def __init__(self, db: Session):
        self.db = db

    def _for_account(self, account_id: int):
        get_account_or_raise(self.db, account_id)
        return self.db.query(FinancialMovementModel).filter(
            FinancialMovementModel.account_id == account_id
        )

    @translate_errors("list movements")
    def list_all(self) -> list[FinancialMovementModel]:
        movements = self.db.query(FinancialMovementModel).order_by(FinancialMovementModel.id.asc()).all()
        logger.info("Movements found: %d", len(movements))
        return movements

    @translate_errors("find movement by ID")
    def get(self, movement_id: int) -> FinancialMovementModel:
        return _get_movement_or_raise(self.db, movement_id)

    @translate_errors("list movements by account")
    def by_account(self, account_id: int) -> list[FinancialMovementModel]:
        return self._for_account(account_id).order_by(FinancialMovementModel.id.asc()).all()

    @translate_errors("list movements by period")
    def by_period(self, account_id: int, start_date: date | None, end_date: date | None) -> list[FinancialMovementModel]:
        validate_id(account_id, "account ID")
        validate_period(start_date, end_date)
        return (
            self._for_account(account_id)
            .filter(FinancialMovementModel.movement_date.between(start_date, end_date))
            .order_by(FinancialMovementModel.movement_date.desc(), FinancialMovementModel.id.desc())
            .all()
        )

    @translate_errors("list movements by type")
    def by_type(self, account_id: int, movement_type: MovementType | str | None) -> list[FinancialMovementModel]:
        validate_id(account_id, "account ID")
        movement_type = coerce_enum(MovementType, movement_type, "movement type")
        return (
            self._for_account(account_id)
            .filter(FinancialMovementModel.movement_type == movement_type)
            .order_by(FinancialMovementModel.id.asc())
            .all()
        )

    @translate_errors("list movements by status")
    def by_status(self, account_id: int, status: MovementStatus | str | None) -> list[FinancialMovementModel]:
        validate_id(account_id, "account ID")
        status = coerce_enum(MovementStatus, status, "status")
        return (
            self._for_account(account_id)
            .filter(FinancialMovementModel.status == status)
            .order_by(FinancialMovementModel.id.asc())
            .all()
        )

    @translate_errors("list movements by type and period")
    def by_type_and_period(
        self,
        account_id: int,
        movement_type: MovementType | str | None,
        start_date: date | None,
        end_date: date | None,
    ) -> list[FinancialMovementModel]:
        validate_id(account_id, "account ID")
        movement_type = coerce_enum(MovementType, movement_type, "movement type")
        validate_period(start_date, end_date)
        return (
            self._for_account(account_id)
            .filter(
                FinancialMovementModel.movement_type == movement_type,
                FinancialMovementModel.movement_date.between(start_date, end_date),
            )
            .order_by(FinancialMovementModel.movement_date.desc(), FinancialMovementModel.id.desc())
            .all()
        )
