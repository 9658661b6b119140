"""
src/tools/gateway.py - stored-procedure gateway

One method per procedure in the expense database. Each call opens a
connection from the pooled SQLAlchemy engine, runs `EXEC dbo.usp_*` with
bound parameters (None goes over as NULL) and maps the rows onto records.

Nothing here recovers from faults: driver and SQLAlchemy errors are re-raised
as `GatewayError` with a classified `ErrorKind`. Recovery is the facade's job
(see tools.expenses).
"""


from __future__ import annotations
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from tools.errors import ErrorKind, GatewayError
from tools.models import CategorySummary, Expense, ExpenseCategory, ExpenseStatus, ExpenseSummary, User


logger = logging.getLogger(__name__)


def _exec_sql(procedure: str, params: List[str]) -> str:
    """Build `EXEC dbo.<proc> @A=:a, @B=:b` for the given bind names."""

    args = ", ".join(f"@{_pascal(p)}=:{p}" for p in params)

    return f"SET NOCOUNT ON; EXEC dbo.{procedure} {args}".rstrip()

def _pascal(name: str) -> str:

    return "".join(part.capitalize() for part in name.split("_"))


class ExpenseGateway:

    def __init__(self, database_url: Optional[str] = None, *, engine: Optional[Engine] = None):

        self._database_url = database_url
        self._engine = engine

    # --- Engine ----------------------------------------------------------------
    @property
    def engine(self) -> Engine:
        """Lazily create the pooled engine on first use."""

        if self._engine is None:
            if not self._database_url:
                raise GatewayError("DATABASE_URL is not configured (no connection string).", kind=ErrorKind.CONNECTIVITY)
            self._engine = create_engine(self._database_url, pool_pre_ping=True, pool_recycle=1800)
            logger.info("Database engine created for %s", self._engine.url.render_as_string(hide_password=True))

        return self._engine

    # --- Execution helpers -------------------------------------------------------
    def _fetch_all(self, procedure: str, **params: Any) -> List[Dict[str, Any]]:

        sql = text(_exec_sql(procedure, list(params)))
        logger.debug("Executing %s with %s", procedure, params)

        try:
            with self.engine.connect() as conn:
                return [dict(row) for row in conn.execute(sql, params).mappings().all()]
        except SQLAlchemyError as exc:
            logger.error("Error executing %s: %s", procedure, exc)
            raise GatewayError.from_exception(exc, procedure=procedure) from exc

    def _fetch_one(self, procedure: str, **params: Any) -> Optional[Dict[str, Any]]:

        rows = self._fetch_all(procedure, **params)

        return rows[0] if rows else None

    def _mutate(self, procedure: str, sql: str, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Run a mutating batch in its own transaction and return its first row."""

        logger.debug("Executing %s with %s", procedure, params)

        try:
            with self.engine.begin() as conn:
                row = conn.execute(text(sql), params).mappings().first()
                return dict(row) if row is not None else None
        except SQLAlchemyError as exc:
            logger.error("Error executing %s: %s", procedure, exc)
            raise GatewayError.from_exception(exc, procedure=procedure) from exc

    def _rows_affected(self, procedure: str, **params: Any) -> bool:

        row = self._mutate(procedure, _exec_sql(procedure, list(params)), params)

        return bool(row) and int(row.get("RowsAffected", 0)) > 0

    # --- Lookups -------------------------------------------------------------------
    def get_categories(self) -> List[ExpenseCategory]:

        return [ExpenseCategory.from_row(r) for r in self._fetch_all("usp_GetCategories")]

    def get_statuses(self) -> List[ExpenseStatus]:

        return [ExpenseStatus.from_row(r) for r in self._fetch_all("usp_GetStatuses")]

    def get_users(self) -> List[User]:

        return [User.from_row(r) for r in self._fetch_all("usp_GetUsers")]

    def get_user_by_id(self, user_id: int) -> Optional[User]:

        row = self._fetch_one("usp_GetUserById", user_id=user_id)

        return User.from_row(row) if row else None

    # --- Expenses ------------------------------------------------------------------
    def get_expenses(
            self,
            user_id: Optional[int] = None,
            status_id: Optional[int] = None,
            category_id: Optional[int] = None,
            search_term: Optional[str] = None,
    ) -> List[Expense]:

        rows = self._fetch_all(
            "usp_GetExpenses",
            user_id=user_id,
            status_id=status_id,
            category_id=category_id,
            search_term=search_term,
        )

        return [Expense.from_row(r) for r in rows]

    def get_expense_by_id(self, expense_id: int) -> Optional[Expense]:

        row = self._fetch_one("usp_GetExpenseById", expense_id=expense_id)

        return Expense.from_row(row) if row else None

    def get_pending_expenses(self, search_term: Optional[str] = None) -> List[Expense]:

        return [Expense.from_row(r) for r in self._fetch_all("usp_GetPendingExpenses", search_term=search_term)]

    def create_expense(
            self,
            user_id: int,
            category_id: int,
            amount_minor: int,
            expense_date: date,
            description: Optional[str] = None,
    ) -> int:
        """
        Insert a Draft expense and return its new id.

        usp_CreateExpense hands the id back through an OUTPUT parameter, so the
        batch declares it, passes it in and selects it afterwards.
        """

        sql = (
            "SET NOCOUNT ON; DECLARE @ExpenseId INT; "
            "EXEC dbo.usp_CreateExpense @UserId=:user_id, @CategoryId=:category_id, "
            "@AmountMinor=:amount_minor, @ExpenseDate=:expense_date, @Description=:description, "
            "@ReceiptFile=NULL, @ExpenseId=@ExpenseId OUTPUT; "
            "SELECT @ExpenseId AS ExpenseId;"
        )
        params = {
            "user_id": user_id,
            "category_id": category_id,
            "amount_minor": amount_minor,
            "expense_date": expense_date,
            "description": description,
        }
        row = self._mutate("usp_CreateExpense", sql, params)

        if not row or row.get("ExpenseId") is None:
            raise GatewayError("usp_CreateExpense returned no ExpenseId.", procedure="usp_CreateExpense")

        return int(row["ExpenseId"])

    def update_expense(
            self,
            expense_id: int,
            category_id: int,
            amount_minor: int,
            expense_date: date,
            description: Optional[str] = None,
    ) -> bool:

        return self._rows_affected(
            "usp_UpdateExpense",
            expense_id=expense_id,
            category_id=category_id,
            amount_minor=amount_minor,
            expense_date=expense_date,
            description=description,
        )

    def submit_expense(self, expense_id: int) -> bool:

        return self._rows_affected("usp_SubmitExpense", expense_id=expense_id)

    def approve_expense(self, expense_id: int, reviewer_id: int) -> bool:

        return self._rows_affected("usp_ApproveExpense", expense_id=expense_id, reviewer_id=reviewer_id)

    def reject_expense(self, expense_id: int, reviewer_id: int) -> bool:

        return self._rows_affected("usp_RejectExpense", expense_id=expense_id, reviewer_id=reviewer_id)

    def delete_expense(self, expense_id: int) -> bool:
        """Only Draft expenses are deleted; anything else affects zero rows."""

        return self._rows_affected("usp_DeleteExpense", expense_id=expense_id)

    # --- Reports -------------------------------------------------------------------
    def get_expense_summary(self, user_id: Optional[int] = None) -> List[ExpenseSummary]:

        return [ExpenseSummary.from_row(r) for r in self._fetch_all("usp_GetExpenseSummary", user_id=user_id)]

    def get_expenses_by_category(self, user_id: Optional[int] = None) -> List[CategorySummary]:

        return [CategorySummary.from_row(r) for r in self._fetch_all("usp_GetExpensesByCategory", user_id=user_id)]
# EOF
