"""
Account directory - keyed store of bank accounts used by the ledger and goals
"""
import logging

from sqlalchemy.orm import Session

from finledger.infrastructure.db.models import AccountModel
from finledger.application.errors import (
    ConflictError, NotFoundError, translate_errors, validate_id, require_text,
)

logger = logging.getLogger(__name__)


def get_account_or_raise(db: Session, account_id: int, lock: bool = False) -> AccountModel:
    """
    Resolve an account by id

    Args:
        lock: read the row FOR UPDATE. Writers that read the balance and then
              insert a movement take this lock so concurrent writers on the
              same account run one after another (PostgreSQL; no-op on SQLite).

    Raises:
        ValidationError: invalid id
        NotFoundError: no such account
    """
    validate_id(account_id, "account ID")
    query = db.query(AccountModel).filter(AccountModel.id == account_id)
    if lock:
        query = query.with_for_update()
    account = query.first()
    if account is None:
        raise NotFoundError(f"Account not found with ID: {account_id}")
    return account


class CreateAccountUseCase:
    """Use case: register a bank account"""

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("register account")
    def execute(
        self,
        bank: str | None,
        agency_number: str | None,
        account_number: str | None,
        account_kind: str | None,
        holder: str | None,
    ) -> AccountModel:
        bank = require_text(bank, "bank")
        agency_number = require_text(agency_number, "agency number")
        account_number = require_text(account_number, "account number")
        account_kind = require_text(account_kind, "account kind")
        holder = require_text(holder, "holder")

        exists = self.db.query(AccountModel.id).filter(
            AccountModel.account_number == account_number
        ).first()
        if exists:
            raise ConflictError("An account with this number is already registered")

        account = AccountModel(
            bank=bank,
            agency_number=agency_number,
            account_number=account_number,
            account_kind=account_kind,
            holder=holder,
        )
        self.db.add(account)
        self.db.commit()

        logger.info("Account registered. ID: %s, holder: %s", account.id, account.holder)
        return account


class AccountQueries:
    """Read side of the account directory"""

    def __init__(self, db: Session):
        self.db = db

    @translate_errors("list accounts")
    def list_all(self) -> list[AccountModel]:
        return self.db.query(AccountModel).order_by(AccountModel.id.asc()).all()

    @translate_errors("find account by ID")
    def get(self, account_id: int) -> AccountModel:
        return get_account_or_raise(self.db, account_id)
