"""
src/context/loader.py

Loads the sample workspace served whenever the database is unreachable.
"""


import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from tools.models import CategorySummary, Expense, ExpenseCategory, ExpenseStatus, ExpenseSummary, User


WORKSPACE_PATH = Path(__file__).resolve().parent / "sample_workspace.json"


class Workspace:
    """Freshly built records on every load, so callers may mutate what they get."""

    def __init__(self, data: Dict[str, Any]):

        self.categories = [ExpenseCategory.model_validate(c) for c in data.get("categories", [])]
        self.statuses = [ExpenseStatus.model_validate(s) for s in data.get("statuses", [])]
        self.users = [User.model_validate(u) for u in data.get("users", [])]
        self.expenses = [Expense.model_validate(e) for e in data.get("expenses", [])]
        self.expense_summary = [ExpenseSummary.model_validate(s) for s in data.get("expense_summary", [])]
        self.category_summary = [CategorySummary.model_validate(s) for s in data.get("category_summary", [])]


@lru_cache(maxsize=None)
def _read(path: Path) -> str:

    if not path.exists():
        raise FileNotFoundError(f"Sample workspace file not found: {path}")

    return path.read_text(encoding="utf-8")

def load_workspace(path: Path = WORKSPACE_PATH) -> Workspace:

    data = json.loads(_read(path))

    # Sanity checks
    required = ["categories", "statuses", "users", "expenses"]

    for key in required:
        if key not in data:
            raise ValueError(f"sample workspace missing '{key}'")

    return Workspace(data)
