"""
Goal advisor - plain-text savings advice built from the ledger

Text comes from an Ollama-compatible /api/generate endpoint when
ADVISOR_BASE_URL is set. Whenever the model is not configured, unreachable
or answers with something unusable, a fixed template with the same numbers
is returned instead. Advisor failures never surface as errors.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, ROUND_UP

import requests
from sqlalchemy import func
from sqlalchemy.orm import Session

from finledger.config import Settings, get_settings
from finledger.infrastructure.db.models import FinancialMovementModel, SavingsGoalModel
from finledger.domain.movement import MovementType, MovementStatus, CENTS, to_money
from finledger.application.errors import translate_errors, validate_id
from finledger.application.goals import GoalQueries
from finledger.application.movements import current_balance
from finledger.utils import dates
from finledger.utils.money import format_money, format_percent

logger = logging.getLogger(__name__)

ANALYSIS_MONTHS = 3

SYSTEM_PROMPT = (
    "You are a personal finance assistant. Answer in Markdown, in at most "
    "300 words, using only the figures given below. Do not invent numbers."
)


@dataclass
class FinancialSnapshot:
    """Monthly averages of COMPLETED movements over the analysis window"""
    monthly_income: Decimal
    monthly_expense: Decimal
    balance: Decimal
    period_months: int = ANALYSIS_MONTHS

    @property
    def saving_capacity(self) -> Decimal:
        return to_money(self.monthly_income - self.monthly_expense)


def build_snapshot(db: Session, account_id: int, today: date) -> FinancialSnapshot:
    """Average monthly income/expense over the last ANALYSIS_MONTHS months"""
    window_start = dates.add_months(today, -ANALYSIS_MONTHS)
    rows = (
        db.query(
            FinancialMovementModel.movement_type,
            func.coalesce(func.sum(FinancialMovementModel.amount), 0),
        )
        .filter(
            FinancialMovementModel.account_id == account_id,
            FinancialMovementModel.status == MovementStatus.COMPLETED,
            FinancialMovementModel.movement_date > window_start,
            FinancialMovementModel.movement_date <= today,
        )
        .group_by(FinancialMovementModel.movement_type)
        .all()
    )
    totals = {movement_type: to_money(total) for movement_type, total in rows}
    months = Decimal(ANALYSIS_MONTHS)
    return FinancialSnapshot(
        monthly_income=to_money(totals.get(MovementType.INCOME, Decimal("0")) / months),
        monthly_expense=to_money(totals.get(MovementType.EXPENSE, Decimal("0")) / months),
        balance=current_balance(db, account_id),
    )


def monthly_saving_needed(target: Decimal, current: Decimal, end_date: date, today: date) -> Decimal:
    """
    Amount to put aside each month to reach the target by end_date

    With no whole month left the full remaining amount is due now.
    Otherwise the remainder is spread over the months left, rounded up to
    the cent.

    Example:
        >>> monthly_saving_needed(Decimal("1000"), Decimal("0"), date(2024, 4, 1), date(2024, 1, 1))
        Decimal('333.34')
    """
    remaining = to_money(target - (current or Decimal("0")))
    months = dates.months_between(today, end_date)
    if months <= 0:
        return remaining
    return (remaining / Decimal(months)).quantize(CENTS, rounding=ROUND_UP)


def income_commitment(needed: Decimal, monthly_income: Decimal) -> Decimal | None:
    """Share of monthly income the saving takes, in percent (None with no income)"""
    if monthly_income <= 0:
        return None
    return (needed * 100 / monthly_income).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


class GoalAdvisor:
    """
    Action plans, viability checks and optimization tips for savings goals

    Usage:
        advisor = GoalAdvisor(db)
        text = advisor.generate_plan(goal_id=7)
    """

    def __init__(self, db: Session, settings: Settings | None = None, today: date | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.today = today or dates.today()

    # === Text generation ===

    def _generate(self, prompt: str) -> str | None:
        """Model answer, or None when the fallback text must be used"""
        if not self.settings.advisor_enabled:
            logger.debug("Advisor model not configured, using template text")
            return None

        headers = {}
        if self.settings.ADVISOR_API_KEY:
            headers["Authorization"] = f"Bearer {self.settings.ADVISOR_API_KEY}"

        try:
            resp = requests.post(
                f"{self.settings.ADVISOR_BASE_URL.rstrip('/')}/api/generate",
                json={
                    "model": self.settings.ADVISOR_MODEL,
                    "system": SYSTEM_PROMPT,
                    "prompt": prompt,
                    "stream": False,
                },
                headers=headers,
                timeout=self.settings.ADVISOR_TIMEOUT,
            )
            resp.raise_for_status()
            text = resp.json().get("response")
        except Exception:
            logger.exception("Advisor request failed, using template text")
            return None

        if not isinstance(text, str) or not text.strip():
            logger.warning("Advisor returned an empty answer, using template text")
            return None
        return text.strip()

    def _answer(self, facts: str, question: str, fallback: str) -> str:
        return self._generate(f"{facts}\n\n{question}") or fallback

    # === Facts shared by prompts and templates ===

    @staticmethod
    def _situation_lines(snapshot: FinancialSnapshot) -> list[str]:
        return [
            f"- **Monthly income:** {format_money(snapshot.monthly_income)}",
            f"- **Monthly expenses:** {format_money(snapshot.monthly_expense)}",
            f"- **Saving capacity:** {format_money(snapshot.saving_capacity)}",
            f"- **Current balance:** {format_money(snapshot.balance)}",
            f"- **Period analysed:** last {snapshot.period_months} months",
        ]

    # === Operations ===

    @translate_errors("generate goal action plan")
    def generate_plan(self, goal_id: int) -> str:
        goal = GoalQueries(self.db).get(goal_id)
        snapshot = build_snapshot(self.db, goal.account_id, self.today)
        needed = monthly_saving_needed(goal.target_amount, goal.current_amount, goal.end_date, self.today)

        facts = "\n".join([
            f"# Action plan for goal: {goal.name}",
            "",
            "## Goal",
            f"- **Target:** {format_money(goal.target_amount)}",
            f"- **Saved so far:** {format_money(goal.current_amount)}",
            f"- **Monthly saving needed:** {format_money(needed)}",
            f"- **Deadline:** {goal.end_date.strftime('%d/%m/%Y')}",
            "",
            "## Current financial situation",
            *self._situation_lines(snapshot),
        ])
        fallback = "\n".join([
            facts,
            "",
            "## Recommendations",
            "1. **Cut expenses:** find spending you can drop",
            "2. **Reallocate:** rebalance the monthly budget",
            "3. **Invest:** consider short-term fixed income",
            "4. **Track:** review progress every month",
            "",
            "## Next steps",
            "- Review the monthly budget",
            "- Set intermediate milestones",
            "- Check progress weekly",
        ])

        logger.info("Generating action plan for goal %s", goal_id)
        return self._answer(
            facts,
            "Write a practical monthly action plan for reaching this goal.",
            fallback,
        )

    @translate_errors("analyze goal viability")
    def analyze_viability(self, goal: SavingsGoalModel) -> str:
        """Viable when the monthly saving needed fits in the current saving capacity"""
        snapshot = build_snapshot(self.db, goal.account_id, self.today)
        needed = monthly_saving_needed(goal.target_amount, goal.current_amount, goal.end_date, self.today)
        viable = needed <= snapshot.saving_capacity
        commitment = income_commitment(needed, snapshot.monthly_income)

        facts = "\n".join([
            f"# Viability analysis: {goal.name}",
            "",
            "## Goal",
            f"- **Target:** {format_money(goal.target_amount)}",
            f"- **Monthly saving needed:** {format_money(needed)}",
            f"- **Period:** {goal.start_date.strftime('%d/%m/%Y')} to {goal.end_date.strftime('%d/%m/%Y')}",
            "",
            "## Financial situation",
            *self._situation_lines(snapshot),
            "",
            "## Assessment",
            f"- **Viability:** {'VIABLE' if viable else 'NOT VIABLE'}",
            f"- **Income commitment:** {format_percent(commitment) if commitment is not None else 'n/a'}",
        ])
        if viable:
            advice = [
                "- **Recommendation:** the goal can be reached with discipline",
                "",
                "Stay focused and keep your spending in check.",
            ]
        else:
            advice = [
                "- **Recommendation:** the budget needs adjusting",
                "",
                "Consider lowering the target or raising your saving capacity.",
            ]

        logger.info("Analyzing viability of goal '%s': %s", goal.name, "viable" if viable else "not viable")
        return self._answer(
            facts,
            "Explain whether this goal is realistic and what to adjust if it is not.",
            "\n".join([facts, *advice]),
        )

    @translate_errors("suggest goal optimizations")
    def suggest_optimizations(self, account_id: int) -> str:
        validate_id(account_id, "account ID")
        goals = GoalQueries(self.db).active_by_account(account_id)
        snapshot = build_snapshot(self.db, account_id, self.today)

        goal_lines = [
            f"- {g.name}: {format_money(g.current_amount)} / {format_money(g.target_amount)} "
            f"({format_percent(g.completion_percentage)})"
            for g in goals
        ] or ["- no active goals"]
        facts = "\n".join([
            "# Financial optimization suggestions",
            "",
            "## Active goals",
            *goal_lines,
            "",
            "## Financial situation",
            *self._situation_lines(snapshot),
        ])
        fallback = "\n".join([
            facts,
            "",
            "## Recommended strategies",
            "1. **Prioritize:** focus on the goals closest to their deadline",
            "2. **Save:** cut unnecessary spending",
            "3. **Invest:** consider fixed-income products",
            "4. **Budget:** review expenses every month",
            "5. **Automate:** schedule automatic transfers",
            "",
            "## Practical tips",
            "- Follow the 50/30/20 rule (needs/wants/savings)",
            "- Avoid impulse purchases",
            "- Compare prices before buying",
        ])

        logger.info("Generating optimization suggestions for account %s", account_id)
        return self._answer(
            facts,
            "Suggest how to reorganize the budget to make progress on these goals.",
            fallback,
        )
