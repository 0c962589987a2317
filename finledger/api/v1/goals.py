"""
Savings goal API endpoints (including the advisor texts)
"""
from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from finledger.api.deps import get_db
from finledger.api.responses import ApiResponse, ok
from finledger.application.goals import (
    CreateGoalUseCase, UpdateGoalUseCase, AddGoalProgressUseCase,
    PauseGoalUseCase, ReactivateGoalUseCase, DeleteGoalUseCase,
    SweepExpiredGoalsUseCase, GoalQueries,
)
from finledger.application.advisor import GoalAdvisor
from finledger.domain.goal import GoalType
from finledger.infrastructure.db.models import SavingsGoalModel
from finledger.utils.validation import parse_amount


router = APIRouter(prefix="/api/v1/goals", tags=["goals"])


def _amount_before(v):
    """Shared field validator body: JSON numbers or strings, at most 2 decimals"""
    if v is None:
        return None
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        v = str(v)
    return str(parse_amount(v))


# === Request/Response models ===

class GoalRequest(BaseModel):
    account_id: int | None = None
    name: str | None = None
    description: str | None = None
    goal_type: GoalType | None = None
    target_amount: str | None = None  # Decimal as string
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None

    @field_validator("target_amount", mode="before")
    @classmethod
    def validate_target(cls, v):
        return _amount_before(v)


class ProgressRequest(BaseModel):
    amount: str | None = None  # Decimal as string

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        return _amount_before(v)


class GoalResponse(BaseModel):
    id: int
    account_id: int
    name: str
    description: str | None = None
    goal_type: str
    target_amount: str
    current_amount: str
    start_date: date
    end_date: date
    status: str
    registered_at: datetime
    notes: str | None = None
    completion_percentage: str


class GoalWithAnalysisResponse(BaseModel):
    goal: GoalResponse
    analysis: str


class GoalSummaryResponse(BaseModel):
    account_id: int
    total: int
    completed: int
    by_status: dict[str, int]


class SweepResponse(BaseModel):
    expired: int


# === Helper functions ===

def _decimal(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _to_response(goal: SavingsGoalModel) -> GoalResponse:
    return GoalResponse(
        id=goal.id,
        account_id=goal.account_id,
        name=goal.name,
        description=goal.description,
        goal_type=goal.goal_type.value,
        target_amount=str(goal.target_amount),
        current_amount=str(goal.current_amount),
        start_date=goal.start_date,
        end_date=goal.end_date,
        status=goal.status.value,
        registered_at=goal.registered_at,
        notes=goal.notes,
        completion_percentage=str(goal.completion_percentage),
    )


def _to_list(goals: list[SavingsGoalModel]) -> list[GoalResponse]:
    return [_to_response(g) for g in goals]


def _create(req: GoalRequest, db: Session) -> SavingsGoalModel:
    return CreateGoalUseCase(db).execute(
        account_id=req.account_id,
        name=req.name,
        goal_type=req.goal_type,
        target_amount=_decimal(req.target_amount),
        start_date=req.start_date,
        end_date=req.end_date,
        description=req.description,
        notes=req.notes,
    )


# === Endpoints ===

@router.post("/", response_model=ApiResponse, status_code=201)
def create_goal(req: GoalRequest, db: Session = Depends(get_db)):
    """Create a savings goal"""
    goal = _create(req, db)
    return ok("Goal created successfully", _to_response(goal))


@router.get("/", response_model=ApiResponse)
def list_goals(db: Session = Depends(get_db)):
    goals = GoalQueries(db).list_all()
    return ok(f"{len(goals)} goals found", _to_list(goals))


@router.post("/sweep-expired", response_model=ApiResponse)
def sweep_expired_goals(db: Session = Depends(get_db)):
    """Mark every ACTIVE / PAUSED goal past its end date as EXPIRED"""
    expired = SweepExpiredGoalsUseCase(db).execute()
    return ok(f"{expired} goals marked as expired", SweepResponse(expired=expired))


@router.post("/with-analysis", response_model=ApiResponse, status_code=201)
def create_goal_with_analysis(req: GoalRequest, db: Session = Depends(get_db)):
    """Create a goal and return it with a viability analysis"""
    goal = _create(req, db)
    analysis = GoalAdvisor(db).analyze_viability(goal)
    return ok(
        "Goal created with viability analysis",
        GoalWithAnalysisResponse(goal=_to_response(goal), analysis=analysis),
    )


@router.get("/account/{account_id}", response_model=ApiResponse)
def list_by_account(account_id: int, db: Session = Depends(get_db)):
    goals = GoalQueries(db).by_account(account_id)
    return ok(f"{len(goals)} goals found", _to_list(goals))


@router.get("/account/{account_id}/active", response_model=ApiResponse)
def list_active(account_id: int, db: Session = Depends(get_db)):
    goals = GoalQueries(db).active_by_account(account_id)
    return ok(f"{len(goals)} active goals found", _to_list(goals))


@router.get("/account/{account_id}/expired", response_model=ApiResponse)
def list_expired(account_id: int, db: Session = Depends(get_db)):
    goals = GoalQueries(db).expired_by_account(account_id)
    return ok(f"{len(goals)} expired goals found", _to_list(goals))


@router.get("/account/{account_id}/type/{goal_type}", response_model=ApiResponse)
def list_by_type(account_id: int, goal_type: GoalType, db: Session = Depends(get_db)):
    goals = GoalQueries(db).by_type(account_id, goal_type)
    return ok(f"{len(goals)} goals found", _to_list(goals))


@router.get("/account/{account_id}/summary", response_model=ApiResponse)
def goal_summary(account_id: int, db: Session = Depends(get_db)):
    summary = GoalQueries(db).summary_by_account(account_id)
    return ok("Goal summary computed", GoalSummaryResponse(**summary))


@router.get("/account/{account_id}/optimizations", response_model=ApiResponse)
def suggest_optimizations(account_id: int, db: Session = Depends(get_db)):
    text = GoalAdvisor(db).suggest_optimizations(account_id)
    return ok("Optimization suggestions generated", text)


@router.get("/{goal_id}", response_model=ApiResponse)
def get_goal(goal_id: int, db: Session = Depends(get_db)):
    goal = GoalQueries(db).get(goal_id)
    return ok("Goal found", _to_response(goal))


@router.get("/{goal_id}/action-plan", response_model=ApiResponse)
def action_plan(goal_id: int, db: Session = Depends(get_db)):
    text = GoalAdvisor(db).generate_plan(goal_id)
    return ok("Action plan generated", text)


@router.put("/{goal_id}", response_model=ApiResponse)
def update_goal(goal_id: int, req: GoalRequest, db: Session = Depends(get_db)):
    goal = UpdateGoalUseCase(db).execute(
        goal_id=goal_id,
        account_id=req.account_id,
        name=req.name,
        goal_type=req.goal_type,
        target_amount=_decimal(req.target_amount),
        start_date=req.start_date,
        end_date=req.end_date,
        description=req.description,
        notes=req.notes,
    )
    return ok("Goal updated successfully", _to_response(goal))


@router.put("/{goal_id}/progress", response_model=ApiResponse)
def add_progress(goal_id: int, req: ProgressRequest, db: Session = Depends(get_db)):
    """Add saved money to a goal; reaching the target completes it"""
    goal = AddGoalProgressUseCase(db).execute(goal_id, _decimal(req.amount))
    return ok("Goal progress updated successfully", _to_response(goal))


@router.delete("/{goal_id}", status_code=204)
def delete_goal(goal_id: int, db: Session = Depends(get_db)):
    DeleteGoalUseCase(db).execute(goal_id)
    return Response(status_code=204)


@router.post("/{goal_id}/pause", response_model=ApiResponse)
def pause_goal(goal_id: int, db: Session = Depends(get_db)):
    goal = PauseGoalUseCase(db).execute(goal_id)
    return ok("Goal paused successfully", _to_response(goal))


@router.post("/{goal_id}/reactivate", response_model=ApiResponse)
def reactivate_goal(goal_id: int, db: Session = Depends(get_db)):
    goal = ReactivateGoalUseCase(db).execute(goal_id)
    return ok("Goal reactivated successfully", _to_response(goal))
