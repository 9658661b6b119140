"""
src/context/selectors.py

Filters over the sample workspace that mirror what the stored procedures do,
so fallback reads still honour the caller's filters.
"""


from typing import List, Optional

from rapidfuzz import fuzz

from config import SEARCH_MATCH_THRESHOLD, Status
from tools.models import Expense, User
from tools.permissions import has_permission
from context.loader import Workspace


def matches_search(term: Optional[str], *fields: Optional[str]) -> bool:
    """
    True when `term` is empty, or appears in any field.

    Plain case-insensitive containment first; a high partial_ratio also counts
    so "stationary" still finds "Stationery".
    """

    if not term:
        return True

    needle = term.strip().lower()

    for field in fields:
        if not field:
            continue
        hay = field.lower()
        if needle in hay or fuzz.partial_ratio(needle, hay) >= SEARCH_MATCH_THRESHOLD:
            return True

    return False

def filter_expenses(
        ws: Workspace,
        *,
        user_id: Optional[int] = None,
        status_id: Optional[int] = None,
        category_id: Optional[int] = None,
        search_term: Optional[str] = None,
) -> List[Expense]:

    return [
        e for e in ws.expenses
        if (user_id is None or e.user_id == user_id)
        and (status_id is None or e.status_id == status_id)
        and (category_id is None or e.category_id == category_id)
        and matches_search(search_term, e.description)
    ]

def pending_expenses(ws: Workspace, search_term: Optional[str] = None) -> List[Expense]:
    """Submitted expenses; search covers description and category, like usp_GetPendingExpenses."""

    return [
        e for e in ws.expenses
        if e.status_id == Status.SUBMITTED and matches_search(search_term, e.description, e.category_name)
    ]

def get_expense_by_id(ws: Workspace, expense_id: int) -> Optional[Expense]:

    return next((e for e in ws.expenses if e.expense_id == expense_id), None)

def get_user_by_id(ws: Workspace, user_id: int) -> Optional[User]:

    return next((u for u in ws.users if u.user_id == user_id), None)

def next_expense_id(ws: Workspace) -> int:

    return max((e.expense_id for e in ws.expenses), default=0) + 1

def managers(users: List[User]) -> List[User]:
    """Users who may review expenses; everyone, if nobody holds a reviewing role."""

    found = [u for u in users if has_permission(u.role_name, "approve_expense")]

    return found or list(users)
