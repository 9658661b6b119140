"""
src/orchestrator/arguments.py

Typed argument models, one per tool. The model sends camelCase JSON; each
bundle is validated into its struct before anything touches the expense
service, and the first problem is reported back as a short message such as
"reviewerId is required".
"""


from datetime import date
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel


class ArgumentError(ValueError):
    """A tool call's arguments were missing or malformed."""


class ToolArguments(BaseModel):

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class NoArguments(ToolArguments):

    pass


class ExpenseFilterArguments(ToolArguments):

    user_id: Optional[int] = None
    status_id: Optional[int] = None
    category_id: Optional[int] = None
    search_term: Optional[str] = None


class SearchArguments(ToolArguments):

    search_term: Optional[str] = None


class ExpenseIdArguments(ToolArguments):

    expense_id: int


class ReviewArguments(ToolArguments):

    expense_id: int
    reviewer_id: int


class CreateExpenseArguments(ToolArguments):

    user_id: int
    category_id: int
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    expense_date: date
    description: Optional[str] = None


class UserFilterArguments(ToolArguments):

    user_id: Optional[int] = None


ARGUMENT_MODELS: Dict[str, Type[ToolArguments]] = {
    "get_expenses": ExpenseFilterArguments,
    "get_pending_expenses": SearchArguments,
    "get_expense_by_id": ExpenseIdArguments,
    "create_expense": CreateExpenseArguments,
    "submit_expense": ExpenseIdArguments,
    "approve_expense": ReviewArguments,
    "reject_expense": ReviewArguments,
    "get_categories": NoArguments,
    "get_users": NoArguments,
    "get_expense_summary": UserFilterArguments,
    "get_expenses_by_category": UserFilterArguments,
}


def _describe(exc: ValidationError) -> str:

    first = exc.errors()[0]
    field = ".".join(str(p) for p in first.get("loc", ())) or "arguments"

    if first.get("type") == "missing":
        return f"{field} is required"
    if field == "expenseDate":
        return "Invalid date format"

    return f"{field} is invalid: {first.get('msg', 'bad value')}"

def decode_arguments(name: str, raw: Dict[str, Any]) -> ToolArguments:
    """
    Validate a raw argument bundle for tool `name`.

    JSON nulls count as absent. Raises ArgumentError on the first problem and
    KeyError for a tool we do not know.
    """

    model = ARGUMENT_MODELS[name]
    present = {k: v for k, v in (raw or {}).items() if v is not None}

    try:
        return model.model_validate(present)
    except ValidationError as exc:
        raise ArgumentError(_describe(exc)) from exc
