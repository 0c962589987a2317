"""
Financial movement API endpoints
"""
from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from finledger.api.deps import get_db
from finledger.api.responses import ApiResponse, ok
from finledger.application.movements import (
    RegisterMovementUseCase, UpdateMovementUseCase, ReverseMovementUseCase,
    CompleteMovementUseCase, CancelMovementUseCase, DeleteMovementUseCase,
    BalanceQuery, MovementQueries,
)
from finledger.application.reports import MovementReportService, ReportParams, serialize_movement
from finledger.domain.movement import MovementType, MovementStatus, MovementSource, MovementCategory
from finledger.infrastructure.db.models import FinancialMovementModel
from finledger.utils.validation import parse_amount


router = APIRouter(prefix="/api/v1/movements", tags=["movements"])


# === Request/Response models ===

class MovementRequest(BaseModel):
    """Body of create and update. Missing fields are reported by the use case."""
    account_id: int | None = None
    movement_type: MovementType | None = None
    amount: str | None = None  # Decimal as string, "1500.50" or "1500,50"
    description: str | None = None
    category: MovementCategory | None = None
    movement_date: date | None = None
    source: MovementSource | None = None
    status: MovementStatus | None = None
    notes: str | None = None
    origin_file: str | None = None
    external_id: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        """Accept JSON numbers too; at most 2 decimal places"""
        if v is None:
            return None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        return str(parse_amount(v))


class MovementResponse(BaseModel):
    id: int
    account_id: int
    movement_type: str
    amount: str  # Decimal as string
    description: str
    category: str
    movement_date: date
    registered_at: datetime
    status: str
    source: str
    notes: str | None = None
    prior_balance: str | None = None
    resulting_balance: str | None = None
    origin_file: str | None = None
    external_id: str | None = None


class BalanceResponse(BaseModel):
    account_id: int
    balance: str


class ReportRequest(BaseModel):
    account_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    movement_type: MovementType | None = None
    title: str | None = None
    include_summary: bool | None = None


class ReportAccount(BaseModel):
    bank: str
    agency_number: str
    account_number: str
    holder: str


class ReportResponse(BaseModel):
    title: str
    account: ReportAccount
    generated_on: date
    movements: list[MovementResponse]
    total_income: str
    total_expense: str
    net: str
    current_balance: str
    start_date: date | None = None
    end_date: date | None = None
    movement_type: str | None = None
    include_summary: bool


# === Helper functions ===

def _to_response(movement: FinancialMovementModel) -> MovementResponse:
    return MovementResponse(**serialize_movement(movement))


def _to_list(movements: list[FinancialMovementModel]) -> list[MovementResponse]:
    return [_to_response(m) for m in movements]


def _amount(req: MovementRequest) -> Decimal | None:
    return Decimal(req.amount) if req.amount is not None else None


# === Endpoints ===

@router.post("/", response_model=ApiResponse, status_code=201)
def register_movement(req: MovementRequest, db: Session = Depends(get_db)):
    """Record an income or expense"""
    movement = RegisterMovementUseCase(db).execute(
        account_id=req.account_id,
        movement_type=req.movement_type,
        amount=_amount(req),
        description=req.description,
        category=req.category,
        movement_date=req.movement_date,
        source=req.source,
        status=req.status,
        notes=req.notes,
        origin_file=req.origin_file,
        external_id=req.external_id,
    )
    return ok("Movement registered successfully", _to_response(movement))


@router.get("/", response_model=ApiResponse)
def list_movements(db: Session = Depends(get_db)):
    movements = MovementQueries(db).list_all()
    return ok(f"{len(movements)} movements found", _to_list(movements))


@router.post("/report", response_model=ApiResponse)
def build_report(req: ReportRequest, db: Session = Depends(get_db)):
    """Report payload (movements, totals, account header) for an external renderer"""
    params = ReportParams(
        account_id=req.account_id,
        start_date=req.start_date,
        end_date=req.end_date,
        movement_type=req.movement_type,
        title=req.title,
        include_summary=req.include_summary,
    )
    payload = MovementReportService(db).build(params)

    report = ReportResponse(
        title=payload["title"],
        account=ReportAccount(**payload["account"]),
        generated_on=payload["generated_on"],
        movements=[MovementResponse(**m) for m in payload["movements"]],
        total_income=str(payload["total_income"]),
        total_expense=str(payload["total_expense"]),
        net=str(payload["net"]),
        current_balance=str(payload["current_balance"]),
        start_date=payload["start_date"],
        end_date=payload["end_date"],
        movement_type=payload["movement_type"],
        include_summary=payload["include_summary"],
    )
    return ok("Report data generated successfully", report)


@router.get("/account/{account_id}", response_model=ApiResponse)
def list_by_account(account_id: int, db: Session = Depends(get_db)):
    movements = MovementQueries(db).by_account(account_id)
    return ok(f"{len(movements)} movements found", _to_list(movements))


@router.get("/account/{account_id}/period", response_model=ApiResponse)
def list_by_period(
    account_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    """Movements dated within [start_date, end_date], newest first"""
    movements = MovementQueries(db).by_period(account_id, start_date, end_date)
    return ok(f"{len(movements)} movements found", _to_list(movements))


@router.get("/account/{account_id}/type/{movement_type}", response_model=ApiResponse)
def list_by_type(account_id: int, movement_type: MovementType, db: Session = Depends(get_db)):
    movements = MovementQueries(db).by_type(account_id, movement_type)
    return ok(f"{len(movements)} movements found", _to_list(movements))


@router.get("/account/{account_id}/status/{status}", response_model=ApiResponse)
def list_by_status(account_id: int, status: MovementStatus, db: Session = Depends(get_db)):
    movements = MovementQueries(db).by_status(account_id, status)
    return ok(f"{len(movements)} movements found", _to_list(movements))


@router.get("/account/{account_id}/balance", response_model=ApiResponse)
def get_balance(account_id: int, db: Session = Depends(get_db)):
    """Balance computed from COMPLETED movements"""
    balance = BalanceQuery(db).execute(account_id)
    return ok("Current balance computed", BalanceResponse(account_id=account_id, balance=str(balance)))


@router.get("/{movement_id}", response_model=ApiResponse)
def get_movement(movement_id: int, db: Session = Depends(get_db)):
    movement = MovementQueries(db).get(movement_id)
    return ok("Movement found", _to_response(movement))


@router.put("/{movement_id}", response_model=ApiResponse)
def update_movement(movement_id: int, req: MovementRequest, db: Session = Depends(get_db)):
    movement = UpdateMovementUseCase(db).execute(
        movement_id=movement_id,
        account_id=req.account_id,
        movement_type=req.movement_type,
        amount=_amount(req),
        description=req.description,
        category=req.category,
        movement_date=req.movement_date,
        source=req.source,
        status=req.status,
        notes=req.notes,
    )
    return ok("Movement updated successfully", _to_response(movement))


@router.delete("/{movement_id}", status_code=204)
def delete_movement(movement_id: int, db: Session = Depends(get_db)):
    DeleteMovementUseCase(db).execute(movement_id)
    return Response(status_code=204)


@router.post("/{movement_id}/reverse", response_model=ApiResponse)
def reverse_movement(movement_id: int, db: Session = Depends(get_db)):
    movement = ReverseMovementUseCase(db).execute(movement_id)
    return ok("Movement reversed successfully", _to_response(movement))


@router.post("/{movement_id}/complete", response_model=ApiResponse)
def complete_movement(movement_id: int, db: Session = Depends(get_db)):
    movement = CompleteMovementUseCase(db).execute(movement_id)
    return ok("Movement completed successfully", _to_response(movement))


@router.post("/{movement_id}/cancel", response_model=ApiResponse)
def cancel_movement(movement_id: int, db: Session = Depends(get_db)):
    movement = CancelMovementUseCase(db).execute(movement_id)
    return ok("Movement cancelled successfully", _to_response(movement))
