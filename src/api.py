"""
src/api.py

FastAPI REST surface for expenses, lookups, reports and chat.

Every route answers with the same envelope:
    {"success": bool, "data": ..., "error": str|null, "errorLocation": str|null, "degraded": bool}

`degraded` is true when the expense service fell back to sample data for
this request; `error`/`errorLocation` then carry the recorded fault.
"""


import logging
import time
from datetime import date
from decimal import Decimal
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config import Settings
from orchestrator.models import ChatRequest
from orchestrator.router import ChatOrchestrator
from tools.expenses import ExpenseService
from tools.gateway import ExpenseGateway


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
class CamelModel(BaseModel):

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateExpenseRequest(CamelModel):

    user_id: int
    category_id: int
    amount: Decimal = Field(..., gt=0, allow_inf_nan=False)
    expense_date: date
    description: Optional[str] = None


class UpdateExpenseRequest(CamelModel):

    category_id: int
    amount: Decimal = Field(..., gt=0, allow_inf_nan=False)
    expense_date: date
    description: Optional[str] = None


class ReviewRequest(CamelModel):

    reviewer_id: int


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:

    return Settings.from_env()

@lru_cache(maxsize=1)
def get_gateway() -> ExpenseGateway:
    """One gateway (and so one connection pool) per process."""

    return ExpenseGateway(get_settings().database_url)

def get_service(gateway: ExpenseGateway = Depends(get_gateway)) -> ExpenseService:
    """A fresh service, with its own ErrorState, for every request."""

    return ExpenseService(gateway)

def get_orchestrator(
        settings: Settings = Depends(get_settings),
        service: ExpenseService = Depends(get_service),
) -> ChatOrchestrator:

    return ChatOrchestrator(settings, service)


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------
def _jsonable(data: Any) -> Any:

    if isinstance(data, list):
        return [_jsonable(d) for d in data]
    if hasattr(data, "to_json"):
        return data.to_json()

    return data

def ok(service: ExpenseService, data: Any, status_code: int = 200) -> JSONResponse:

    state = service.error_state

    return JSONResponse(
        status_code=status_code,
        content={
            "success": True,
            "data": _jsonable(data),
            "error": state.message,
            "errorLocation": state.location,
            "degraded": state.has_error,
        },
    )

def fail(service: ExpenseService, error: str, status_code: int) -> JSONResponse:

    state = service.error_state

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": error,
            "errorLocation": state.location,
            "degraded": state.has_error,
        },
    )

def _validation_message(exc: RequestValidationError) -> str:
    """First problem as "field: message", e.g. "amount: Input should be greater than 0"."""

    errors = exc.errors()

    if not errors:
        return "Invalid request"

    first = errors[0]
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]

    return f"{'.'.join(loc) or 'request'}: {first.get('msg', 'invalid value')}"


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
def create_api() -> FastAPI:

    api = FastAPI(
        title="Expense Management API",
        version="1.0.0",
        description="Expenses, approvals, reports and an optional chat assistant.",
    )

    @api.exception_handler(RequestValidationError)
    async def validation_failed(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "data": None,
                "error": _validation_message(exc),
                "errorLocation": None,
                "degraded": False,
            },
        )

    @api.get("/health", tags=["Health"])
    def health() -> dict:
        return {"status": "ok"}

    # --- Lookups -------------------------------------------------------------
    @api.get("/api/categories", tags=["Lookup"])
    def categories(service: ExpenseService = Depends(get_service)):
        return ok(service, service.get_categories())

    @api.get("/api/statuses", tags=["Lookup"])
    def statuses(service: ExpenseService = Depends(get_service)):
        return ok(service, service.get_statuses())

    # --- Users -------------------------------------------------------------------
    @api.get("/api/users", tags=["Users"])
    def users(service: ExpenseService = Depends(get_service)):
        return ok(service, service.get_users())

    @api.get("/api/users/{user_id}", tags=["Users"])
    def user(user_id: int, service: ExpenseService = Depends(get_service)):
        found = service.get_user_by_id(user_id)
        if found is None:
            return fail(service, "User not found", 404)
        return ok(service, found)

    # --- Expenses (fixed paths before /{expense_id}) -------------------------------
    @api.get("/api/expenses", tags=["Expenses"])
    def expenses(
            user_id: Optional[int] = Query(None, alias="userId"),
            status_id: Optional[int] = Query(None, alias="statusId"),
            category_id: Optional[int] = Query(None, alias="categoryId"),
            search: Optional[str] = None,
            service: ExpenseService = Depends(get_service),
    ):
        return ok(service, service.get_expenses(user_id, status_id, category_id, search))

    @api.get("/api/expenses/pending", tags=["Expenses"])
    def pending(search: Optional[str] = None, service: ExpenseService = Depends(get_service)):
        return ok(service, service.get_pending_expenses(search))

    @api.get("/api/expenses/summary", tags=["Reports"])
    def summary(user_id: Optional[int] = Query(None, alias="userId"), service: ExpenseService = Depends(get_service)):
        return ok(service, service.get_expense_summary(user_id))

    @api.get("/api/expenses/by-category", tags=["Reports"])
    def by_category(user_id: Optional[int] = Query(None, alias="userId"), service: ExpenseService = Depends(get_service)):
        return ok(service, service.get_expenses_by_category(user_id))

    @api.get("/api/expenses/{expense_id}", tags=["Expenses"])
    def expense(expense_id: int, service: ExpenseService = Depends(get_service)):
        found = service.get_expense_by_id(expense_id)
        if found is None:
            return fail(service, "Expense not found", 404)
        return ok(service, found)

    @api.post("/api/expenses", tags=["Expenses"])
    def create(request: CreateExpenseRequest, service: ExpenseService = Depends(get_service)):
        new_id = service.create_expense(
            request.user_id, request.category_id, request.amount, request.expense_date, request.description
        )
        response = ok(service, new_id, status_code=201)
        response.headers["Location"] = f"/api/expenses/{new_id}"
        return response

    @api.put("/api/expenses/{expense_id}", tags=["Expenses"])
    def update(expense_id: int, request: UpdateExpenseRequest, service: ExpenseService = Depends(get_service)):
        if service.update_expense(expense_id, request.category_id, request.amount, request.expense_date, request.description):
            return ok(service, True)
        return fail(service, "Expense not found or update failed", 404)

    @api.post("/api/expenses/{expense_id}/submit", tags=["Expenses"])
    def submit(expense_id: int, service: ExpenseService = Depends(get_service)):
        if service.submit_expense(expense_id):
            return ok(service, True)
        return fail(service, "Failed to submit expense", 400)

    @api.post("/api/expenses/{expense_id}/approve", tags=["Expenses"])
    def approve(expense_id: int, request: ReviewRequest, service: ExpenseService = Depends(get_service)):
        if service.approve_expense(expense_id, request.reviewer_id):
            return ok(service, True)
        return fail(service, "Failed to approve expense", 400)

    @api.post("/api/expenses/{expense_id}/reject", tags=["Expenses"])
    def reject(expense_id: int, request: ReviewRequest, service: ExpenseService = Depends(get_service)):
        if service.reject_expense(expense_id, request.reviewer_id):
            return ok(service, True)
        return fail(service, "Failed to reject expense", 400)

    @api.delete("/api/expenses/{expense_id}", tags=["Expenses"])
    def delete(expense_id: int, service: ExpenseService = Depends(get_service)):
        if service.delete_expense(expense_id):
            return ok(service, True)
        return fail(service, "Expense not found or cannot be deleted", 404)

    # --- Chat ----------------------------------------------------------------------
    @api.post("/api/chat", tags=["Chat"])
    def chat(
            request: ChatRequest,
            orchestrator: ChatOrchestrator = Depends(get_orchestrator),
            settings: Settings = Depends(get_settings),
    ):
        deadline = time.monotonic() + settings.chat_timeout_seconds
        response = orchestrator.get_response(request, deadline=deadline)
        return JSONResponse(content=response.model_dump(mode="json", by_alias=True))

    @api.get("/api/chat/status", tags=["Chat"])
    def chat_status(settings: Settings = Depends(get_settings)):
        return {"enabled": settings.chat_enabled}

    return api
