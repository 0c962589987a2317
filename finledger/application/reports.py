"""
Report aggregation - movements of one account plus totals, ready for a renderer

Nothing is rendered here; the payload is handed to whatever produces the
document (PDF, spreadsheet) outside this service.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from finledger.infrastructure.db.models import FinancialMovementModel
from finledger.domain.movement import MovementType, MovementStatus, to_money
from finledger.application.accounts import get_account_or_raise
from finledger.application.errors import ValidationError, translate_errors
from finledger.application.movements import MovementQueries, current_balance, coerce_enum
from finledger.utils import dates

logger = logging.getLogger(__name__)

DEFAULT_REPORT_TITLE = "Financial Movements Report"


@dataclass
class ReportParams:
    """
    Report request

    Only account_id is required. Either date may be given alone, but a
    period filter is applied only when both are present.
    """
    account_id: int | None
    start_date: date | None = None
    end_date: date | None = None
    movement_type: MovementType | str | None = None
    title: str | None = None
    include_summary: bool | None = None

    def __post_init__(self):
        if self.account_id is None or isinstance(self.account_id, bool) or self.account_id <= 0:
            raise ValidationError("Account ID is required")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValidationError("Start date must not be after end date")
        if self.movement_type is not None:
            self.movement_type = coerce_enum(MovementType, self.movement_type, "movement type")
        if self.title is None or not self.title.strip():
            self.title = DEFAULT_REPORT_TITLE
        else:
            self.title = self.title.strip()
        if self.include_summary is None:
            self.include_summary = True

    @property
    def has_period(self) -> bool:
        return self.start_date is not None and self.end_date is not None


def serialize_movement(movement: FinancialMovementModel) -> dict:
    """Flat dict of a movement (money as strings, enums by name)"""
    def money(value):
        return None if value is None else str(to_money(value))

    return {
        "id": movement.id,
        "account_id": movement.account_id,
        "movement_type": movement.movement_type.value,
        "amount": money(movement.amount),
        "description": movement.description,
        "category": movement.category.value,
        "movement_date": movement.movement_date,
        "registered_at": movement.registered_at,
        "status": movement.status.value,
        "source": movement.source.value,
        "notes": movement.notes,
        "prior_balance": money(movement.prior_balance),
        "resulting_balance": money(movement.resulting_balance),
        "origin_file": movement.origin_file,
        "external_id": movement.external_id,
    }


def summarize(movements: list[FinancialMovementModel]) -> tuple[Decimal, Decimal]:
    """(income, expense) over the COMPLETED movements of the list"""
    income = Decimal("0")
    expense = Decimal("0")
    for movement in movements:
        if movement.status != MovementStatus.COMPLETED:
            continue
        if movement.movement_type == MovementType.INCOME:
            income += movement.amount
        else:
            expense += movement.amount
    return to_money(income), to_money(expense)


class MovementReportService:
    """
    Builds the report payload for one account

    Selection:
        type + period -> movements of that type within the period
        type only     -> movements of that type
        period only   -> movements within the period
        neither       -> every movement of the account

    Usage:
        payload = MovementReportService(db).build(ReportParams(account_id=1))
    """

    def __init__(self, db: Session):
        self.db = db
        self.queries = MovementQueries(db)

    def _select(self, params: ReportParams) -> list[FinancialMovementModel]:
        if params.movement_type is not None and params.has_period:
            return self.queries.by_type_and_period(
                params.account_id, params.movement_type, params.start_date, params.end_date
            )
        if params.movement_type is not None:
            return self.queries.by_type(params.account_id, params.movement_type)
        if params.has_period:
            return self.queries.by_period(params.account_id, params.start_date, params.end_date)
        return self.queries.by_account(params.account_id)

    @translate_errors("generate report data")
    def build(self, params: ReportParams, today: date | None = None) -> dict:
        """
        Returns:
            dict with title, account, generated_on, movements, total_income,
            total_expense, net, current_balance, start_date, end_date,
            movement_type, include_summary
        """
        logger.info("Building report for account %s", params.account_id)

        account = get_account_or_raise(self.db, params.account_id)
        movements = self._select(params)
        total_income, total_expense = summarize(movements)

        payload = {
            "title": params.title,
            "account": {
                "bank": account.bank,
                "agency_number": account.agency_number,
                "account_number": account.account_number,
                "holder": account.holder,
            },
            "generated_on": today or dates.today(),
            "movements": [serialize_movement(m) for m in movements],
            "total_income": total_income,
            "total_expense": total_expense,
            "net": to_money(total_income - total_expense),
            "current_balance": current_balance(self.db, params.account_id),
            "start_date": params.start_date,
            "end_date": params.end_date,
            "movement_type": params.movement_type.value if params.movement_type else None,
            "include_summary": params.include_summary,
        }

        logger.info(
            "Report built for account %s: %d movements, net %s",
            params.account_id, len(movements), payload["net"],
        )
        return payload
