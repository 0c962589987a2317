"""
Account API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finledger.api.deps import get_db
from finledger.api.responses import ApiResponse, ok
from finledger.application.accounts import CreateAccountUseCase, AccountQueries
from finledger.infrastructure.db.models import AccountModel


router = APIRouter(prefix="/api/v1/accounts", tags=["accounts"])


# === Request/Response models ===

class CreateAccountRequest(BaseModel):
    bank: str | None = None
    agency_number: str | None = None
    account_number: str | None = None
    account_kind: str | None = None  # CHECKING, SAVINGS, ...
    holder: str | None = None


class AccountResponse(BaseModel):
    id: int
    bank: str
    agency_number: str
    account_number: str
    account_kind: str
    holder: str
    created_at: datetime | None = None


def _to_response(account: AccountModel) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        bank=account.bank,
        agency_number=account.agency_number,
        account_number=account.account_number,
        account_kind=account.account_kind,
        holder=account.holder,
        created_at=account.created_at,
    )


# === Endpoints ===

@router.post("/", response_model=ApiResponse, status_code=201)
def create_account(req: CreateAccountRequest, db: Session = Depends(get_db)):
    """Register a bank account"""
    account = CreateAccountUseCase(db).execute(
        bank=req.bank,
        agency_number=req.agency_number,
        account_number=req.account_number,
        account_kind=req.account_kind,
        holder=req.holder,
    )
    return ok("Account registered successfully", _to_response(account))


@router.get("/", response_model=ApiResponse)
def list_accounts(db: Session = Depends(get_db)):
    accounts = AccountQueries(db).list_all()
    return ok(f"{len(accounts)} accounts found", [_to_response(a) for a in accounts])


@router.get("/{account_id}", response_model=ApiResponse)
def get_account(account_id: int, db: Session = Depends(get_db)):
    account = AccountQueries(db).get(account_id)
    return ok("Account found", _to_response(account))
