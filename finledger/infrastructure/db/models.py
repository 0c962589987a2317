"""
SQLAlchemy ORM models: accounts, financial movements, savings goals
"""
from datetime import date as date_type, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Integer, Date, TIMESTAMP, Numeric, ForeignKey, Enum as SAEnum, Index, func,
)
from sqlalchemy.orm import Mapped, mapped_column

from finledger.infrastructure.db.session import Base
from finledger.domain.movement import MovementType, MovementStatus, MovementSource, MovementCategory
from finledger.domain.goal import GoalType, GoalStatus


def _enum_column(enum_cls):
    """Enum stored by symbolic name in a VARCHAR (no native PG enum)"""
    return SAEnum(enum_cls, native_enum=False, length=32, validate_strings=True)


class AccountModel(Base):
    """
    Bank account (account directory)
    """
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    bank: Mapped[str] = mapped_column(String(255), nullable=False)
    agency_number: Mapped[str] = mapped_column(String(20), nullable=False)
    account_number: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    account_kind: Mapped[str] = mapped_column(String(50), nullable=False)
    holder: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class FinancialMovementModel(Base):
    """
    Income or expense recorded against an account.

    prior_balance / resulting_balance are snapshots taken when the row was
    written (or last updated). They are an audit trail, not the live balance.
    """
    __tablename__ = "financial_movements"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    movement_type: Mapped[MovementType] = mapped_column(_enum_column(MovementType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[MovementCategory] = mapped_column(_enum_column(MovementCategory), nullable=False)
    movement_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    registered_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    status: Mapped[MovementStatus] = mapped_column(_enum_column(MovementStatus), nullable=False)
    source: Mapped[MovementSource] = mapped_column(_enum_column(MovementSource), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    prior_balance: Mapped[Decimal | None] = mapped_column(Numeric(precision=15, scale=2), nullable=True)
    resulting_balance: Mapped[Decimal | None] = mapped_column(Numeric(precision=15, scale=2), nullable=True)

    # Imported statements
    origin_file: Mapped[str | None] = mapped_column(String(100), nullable=True)
    external_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        Index("ix_movements_account_date", "account_id", "movement_date"),
        Index("ix_movements_account_external", "account_id", "external_id"),
    )


class SavingsGoalModel(Base):
    """
    Savings goal owned by an account
    """
    __tablename__ = "savings_goals"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    goal_type: Mapped[GoalType] = mapped_column(_enum_column(GoalType), nullable=False)
    target_amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    current_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2), nullable=False, server_default="0"
    )
    start_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    end_date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[GoalStatus] = mapped_column(_enum_column(GoalStatus), nullable=False)
    registered_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    completion_percentage: Mapped[Decimal] = mapped_column(
        Numeric(precision=24, scale=4), nullable=False, server_default="0"
    )
