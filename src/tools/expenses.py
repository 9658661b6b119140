"""
src/tools/expenses.py - expense operations with sample-data fallback

`ExpenseService` exposes the same operations as `ExpenseGateway`, but never
raises. Every call:
  1) clears its `ErrorState`,
  2) delegates to the gateway and returns the result untouched, or
  3) on any fault: classifies it, records (message, location) on the
     `ErrorState`, logs it, and returns a deterministic fallback: the sample
     workspace (filtered like the procedure would) for reads, a synthesized
     id or True for writes.

Notes:
* One service (and one ErrorState) per request/UI action; build it with
  `ExpenseService(gateway)` wherever a request starts.
* Writes that fell back still return success. Callers that care check
  `service.error_state.outcome` afterwards.
* Money arrives in major units (25.50) and is converted to minor units
  (2550, truncating) here, before it reaches the gateway.
"""


from __future__ import annotations
import logging
import traceback
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, List, Optional, TypeVar, Union

from config import to_minor_units
from context import selectors
from context.loader import load_workspace
from tools.errors import ErrorState, classify_fault, describe_fault
from tools.gateway import ExpenseGateway
from tools.models import CategorySummary, Expense, ExpenseCategory, ExpenseStatus, ExpenseSummary, User


logger = logging.getLogger(__name__)

T = TypeVar("T")
Amount = Union[Decimal, float, int, str]


SOURCE_ROOT = Path(__file__).resolve().parents[1]
OWN_SOURCES = tuple(SOURCE_ROOT / name for name in ("tools", "context", "orchestrator", "config.py", "api.py", "app.py"))


def _is_own(filename: str) -> bool:

    path = Path(filename).resolve()

    return any(path == p or path.is_relative_to(p) for p in OWN_SOURCES)

def _fault_location(operation: str, exc: BaseException) -> str:
    """
    'gateway.py:get_expenses (line 71)': the deepest frame in our own source.

    Frames inside installed libraries (pydantic, sqlalchemy, mock) are
    skipped; with no own frame at all the facade operation is reported.
    """

    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    own = [f for f in frames if _is_own(f.filename)]

    if not own:
        return f"{Path(__file__).name}:{operation}"

    origin = own[-1]

    return f"{Path(origin.filename).name}:{operation} (line {origin.lineno})"


class ExpenseService:

    def __init__(self, gateway: ExpenseGateway, error_state: Optional[ErrorState] = None):

        self.gateway = gateway
        self.error_state = error_state or ErrorState()

    # --- Fallback plumbing -----------------------------------------------------------
    def _guard(self, operation: str, call: Callable[[], T], fallback: Callable[[], T]) -> T:

        self.error_state.clear()

        try:
            return call()
        except Exception as exc:
            self._handle_error(operation, exc)
            return fallback()

    def _handle_error(self, operation: str, exc: Exception) -> None:

        kind = classify_fault(exc)
        message = describe_fault(kind, str(exc))
        location = _fault_location(operation, exc)

        logger.error("Error in %s at %s: %s", operation, location, message, exc_info=exc)
        self.error_state.set_error(message, location, kind)

    # --- Lookups -------------------------------------------------------------------
    def get_categories(self) -> List[ExpenseCategory]:

        return self._guard("get_categories", self.gateway.get_categories, lambda: load_workspace().categories)

    def get_statuses(self) -> List[ExpenseStatus]:

        return self._guard("get_statuses", self.gateway.get_statuses, lambda: load_workspace().statuses)

    def get_users(self) -> List[User]:

        return self._guard("get_users", self.gateway.get_users, lambda: load_workspace().users)

    def get_user_by_id(self, user_id: int) -> Optional[User]:

        return self._guard(
            "get_user_by_id",
            lambda: self.gateway.get_user_by_id(user_id),
            lambda: selectors.get_user_by_id(load_workspace(), user_id),
        )

    # --- Expenses ------------------------------------------------------------------
    def get_expenses(
            self,
            user_id: Optional[int] = None,
            status_id: Optional[int] = None,
            category_id: Optional[int] = None,
            search_term: Optional[str] = None,
    ) -> List[Expense]:

        return self._guard(
            "get_expenses",
            lambda: self.gateway.get_expenses(user_id, status_id, category_id, search_term),
            lambda: selectors.filter_expenses(
                load_workspace(),
                user_id=user_id,
                status_id=status_id,
                category_id=category_id,
                search_term=search_term,
            ),
        )

    def get_expense_by_id(self, expense_id: int) -> Optional[Expense]:

        return self._guard(
            "get_expense_by_id",
            lambda: self.gateway.get_expense_by_id(expense_id),
            lambda: selectors.get_expense_by_id(load_workspace(), expense_id),
        )

    def get_pending_expenses(self, search_term: Optional[str] = None) -> List[Expense]:

        return self._guard(
            "get_pending_expenses",
            lambda: self.gateway.get_pending_expenses(search_term),
            lambda: selectors.pending_expenses(load_workspace(), search_term),
        )

    def create_expense(
            self,
            user_id: int,
            category_id: int,
            amount: Amount,
            expense_date: date,
            description: Optional[str] = None,
    ) -> int:
        """Create a Draft expense. `amount` is in major units (25.50)."""

        return self._guard(
            "create_expense",
            lambda: self.gateway.create_expense(user_id, category_id, to_minor_units(amount), expense_date, description),
            lambda: selectors.next_expense_id(load_workspace()),
        )

    def update_expense(
            self,
            expense_id: int,
            category_id: int,
            amount: Amount,
            expense_date: date,
            description: Optional[str] = None,
    ) -> bool:

        return self._guard(
            "update_expense",
            lambda: self.gateway.update_expense(expense_id, category_id, to_minor_units(amount), expense_date, description),
            lambda: True,
        )

    def submit_expense(self, expense_id: int) -> bool:

        return self._guard("submit_expense", lambda: self.gateway.submit_expense(expense_id), lambda: True)

    def approve_expense(self, expense_id: int, reviewer_id: int) -> bool:

        return self._guard(
            "approve_expense",
            lambda: self.gateway.approve_expense(expense_id, reviewer_id),
            lambda: True,
        )

    def reject_expense(self, expense_id: int, reviewer_id: int) -> bool:

        return self._guard(
            "reject_expense",
            lambda: self.gateway.reject_expense(expense_id, reviewer_id),
            lambda: True,
        )

    def delete_expense(self, expense_id: int) -> bool:

        return self._guard("delete_expense", lambda: self.gateway.delete_expense(expense_id), lambda: True)

    # --- Reports -------------------------------------------------------------------
    def get_expense_summary(self, user_id: Optional[int] = None) -> List[ExpenseSummary]:

        return self._guard(
            "get_expense_summary",
            lambda: self.gateway.get_expense_summary(user_id),
            lambda: load_workspace().expense_summary,
        )

    def get_expenses_by_category(self, user_id: Optional[int] = None) -> List[CategorySummary]:

        return self._guard(
            "get_expenses_by_category",
            lambda: self.gateway.get_expenses_by_category(user_id),
            lambda: load_workspace().category_summary,
        )
# EOF
