"""
src/tools/models.py

Pydantic records returned by the expense gateway and facade.

Rows come back from the stored procedures with PascalCase column names
(ExpenseId, AmountMinor, ...). `from_row()` maps them onto the snake_case
fields; dumping with by_alias=True gives the camelCase JSON used by the REST
surface and the chat tools.
"""


from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel, to_snake

from config import DEFAULT_CURRENCY


# Display amounts go over the wire as JSON numbers, not strings
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Record(BaseModel):

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]):
        """Build a record from a result row keyed by database column names."""

        return cls.model_validate({to_snake(key): value for key, value in row.items()})

    def to_json(self) -> Dict[str, Any]:

        return self.model_dump(mode="json", by_alias=True)


class ExpenseCategory(Record):

    category_id: int
    category_name: str
    is_active: bool = True


class ExpenseStatus(Record):

    status_id: int
    status_name: str


class User(Record):

    user_id: int
    user_name: str
    email: str
    role_id: int
    role_name: str
    manager_id: Optional[int] = None
    is_active: bool = True


class Expense(Record):

    expense_id: int
    user_id: int
    user_name: str = ""
    category_id: int
    category_name: str = ""
    status_id: int
    status_name: str = ""
    amount_minor: int
    amount_display: Money
    currency: str = DEFAULT_CURRENCY.value
    expense_date: date
    description: Optional[str] = None
    receipt_file: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    reviewer_name: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ExpenseSummary(Record):

    status_name: str
    expense_count: int
    total_amount_minor: int
    total_amount_display: Money


class CategorySummary(Record):

    category_name: str
    expense_count: int
    total_amount_minor: int
    total_amount_display: Money
