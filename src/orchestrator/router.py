"""
src/orchestrator/router.py

Router: builds tool specs, runs the function-calling loop, executes tools
against the expense service, and returns a tidy result.
"""


import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from config import MAX_TOOL_ROUNDS, Settings
from orchestrator import prompts
from orchestrator.arguments import ArgumentError, decode_arguments
from orchestrator.llm_openai import assistant_turn, build_client, call_model, extract_tool_calls
from orchestrator.models import (
    AuditEntry,
    ChatRequest,
    ChatResponse,
    ChatTurn,
    OrchestratorResult,
    RunOutcome,
    ToolCall,
    ToolResult,
)
from tools.expenses import ExpenseService


logger = logging.getLogger(__name__)

FORWARDED_ROLES = ("user", "assistant")


# -------- Tool registry (name -> callable, schema) -----------------------------


def _tool_spec(name: str, description: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
    """Build an OpenAI function spec."""

    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": parameters.get("properties", {}),
                "required": parameters.get("required", []),
            },
        },
    }

def _user_filter(description: str) -> Dict[str, Any]:

    return {"properties": {"userId": {"type": "integer", "description": description}}}

def get_tools_and_specs() -> List[Dict[str, Any]]:
    """
    JSON schemas describing the tools we expose to the model.
    Sent with every request; nothing is cached server-side.
    """

    expense_id = {"type": "integer", "description": "The expense ID"}
    reviewer_id = {"type": "integer", "description": "The manager's user ID"}

    return [
        _tool_spec(
            "get_expenses",
            "Get a list of expenses with optional filters",
            {
                "properties": {
                    "userId": {"type": "integer", "description": "Filter by user ID"},
                    "statusId": {
                        "type": "integer",
                        "description": "Filter by status ID (1=Draft, 2=Submitted, 3=Approved, 4=Rejected)",
                    },
                    "categoryId": {"type": "integer", "description": "Filter by category ID"},
                    "searchTerm": {"type": "string", "description": "Search term for description"},
                }
            }
        ),
        _tool_spec(
            "get_pending_expenses",
            "Get expenses pending approval",
            {"properties": {"searchTerm": {"type": "string", "description": "Optional search term"}}}
        ),
        _tool_spec(
            "get_expense_by_id",
            "Get details of a specific expense",
            {"properties": {"expenseId": expense_id}, "required": ["expenseId"]}
        ),
        _tool_spec(
            "create_expense",
            "Create a new expense",
            {
                "properties": {
                    "userId": {"type": "integer", "description": "User ID creating the expense"},
                    "categoryId": {
                        "type": "integer",
                        "description": "Category ID (1=Travel, 2=Meals, 3=Supplies, 4=Accommodation, 5=Other)",
                    },
                    "amount": {"type": "number", "description": "Amount in GBP (e.g., 25.50)"},
                    "expenseDate": {"type": "string", "description": "Expense date in YYYY-MM-DD format"},
                    "description": {"type": "string", "description": "Description of the expense"},
                },
                "required": ["userId", "categoryId", "amount", "expenseDate"]
            }
        ),
        _tool_spec(
            "submit_expense",
            "Submit an expense for approval",
            {"properties": {"expenseId": expense_id}, "required": ["expenseId"]}
        ),
        _tool_spec(
            "approve_expense",
            "Approve a pending expense",
            {"properties": {"expenseId": expense_id, "reviewerId": reviewer_id}, "required": ["expenseId", "reviewerId"]}
        ),
        _tool_spec(
            "reject_expense",
            "Reject a pending expense",
            {"properties": {"expenseId": expense_id, "reviewerId": reviewer_id}, "required": ["expenseId", "reviewerId"]}
        ),
        _tool_spec("get_categories", "Get list of expense categories", {}),
        _tool_spec("get_users", "Get list of users", {}),
        _tool_spec("get_expense_summary", "Get expense summary by status", _user_filter("Optional user ID to filter by")),
        _tool_spec("get_expenses_by_category", "Get expense summary by category", _user_filter("Optional user ID to filter by")),
    ]


# -------- Tool execution bridge ------------------------------------------------
def _records(items: Iterable[Any]) -> List[Dict[str, Any]]:

    return [item.to_json() for item in items]

def _handlers(service: ExpenseService) -> Dict[str, Callable[[Any], Any]]:
    """Tool name -> callable taking decoded arguments, returning a JSON-ready payload."""

    return {
        "get_expenses": lambda a: _records(service.get_expenses(a.user_id, a.status_id, a.category_id, a.search_term)),
        "get_pending_expenses": lambda a: _records(service.get_pending_expenses(a.search_term)),
        "get_expense_by_id": lambda a: _maybe_record(service.get_expense_by_id(a.expense_id)),
        "create_expense": lambda a: {
            "success": True,
            "expenseId": service.create_expense(a.user_id, a.category_id, a.amount, a.expense_date, a.description),
        },
        "submit_expense": lambda a: {"success": service.submit_expense(a.expense_id)},
        "approve_expense": lambda a: {"success": service.approve_expense(a.expense_id, a.reviewer_id)},
        "reject_expense": lambda a: {"success": service.reject_expense(a.expense_id, a.reviewer_id)},
        "get_categories": lambda a: _records(service.get_categories()),
        "get_users": lambda a: _records(service.get_users()),
        "get_expense_summary": lambda a: _records(service.get_expense_summary(a.user_id)),
        "get_expenses_by_category": lambda a: _records(service.get_expenses_by_category(a.user_id)),
    }

def _maybe_record(item: Any) -> Optional[Dict[str, Any]]:

    return item.to_json() if item is not None else None

def execute_tool(service: ExpenseService, call: ToolCall) -> ToolResult:
    """Map a tool call name to the expense service and execute it."""

    handler = _handlers(service).get(call.name)

    if handler is None:
        return ToolResult(name=call.name, ok=False, error=f"Unknown function: {call.name}")

    logger.info("Executing function: %s with args: %s", call.name, call.raw_arguments)

    try:
        out = handler(decode_arguments(call.name, call.arguments))
        return ToolResult(name=call.name, ok=True, output=out)
    except ArgumentError as e:
        logger.warning("Bad arguments for %s: %s", call.name, e)
        return ToolResult(name=call.name, ok=False, error=str(e))
    except Exception as e:
        logger.error("Error executing function %s", call.name, exc_info=e)
        return ToolResult(name=call.name, ok=False, error=str(e))


# -------- Orchestrate ----------------------------------------------------------
def build_messages(user_text: str, history: Iterable[ChatTurn]) -> List[Dict[str, Any]]:
    """System prompt, then user/assistant history (other roles dropped), then the new turn."""

    messages: List[Dict[str, Any]] = [{"role": "system", "content": prompts.SYSTEM_PROMPT}]

    for turn in history:
        role = (turn.role or "").lower()
        if role in FORWARDED_ROLES:
            messages.append({"role": role, "content": turn.content})

    messages.append({"role": "user", "content": user_text})

    return messages


class ChatOrchestrator:
    """
    One bounded tool-calling conversation per `run()`.

    `client` is any object exposing chat.completions.create(); left as None it
    is built from Settings on first use, so a disabled orchestrator never
    touches the network or the credential chain.
    """

    def __init__(
            self,
            settings: Settings,
            service: ExpenseService,
            *,
            client: Any = None,
            max_tool_rounds: int = MAX_TOOL_ROUNDS,
    ):

        self.settings = settings
        self.service = service
        self.max_tool_rounds = max_tool_rounds
        self._client = client

    @property
    def is_enabled(self) -> bool:

        return self.settings.chat_enabled

    @property
    def client(self) -> Any:

        if self._client is None:
            self._client = build_client(self.settings)

        return self._client

    def run(self, user_text: str, history: Iterable[ChatTurn] = (), *, deadline: Optional[float] = None) -> OrchestratorResult:
        """
        Entry point: takes the user text plus prior turns, runs the tool-calling loop.

        `deadline` is a time.monotonic() value; it is checked before every
        round and caps the per-request timeout handed to the client.
        """

        audit: List[AuditEntry] = []

        if not self.is_enabled:
            audit.append(AuditEntry(step="disabled", ok=True, detail="Chat endpoint or deployment not configured."))
            return OrchestratorResult(outcome=RunOutcome.DISABLED, summary=prompts.DISABLED_MESSAGE, messages=[], audit=audit)

        messages = build_messages(user_text, history)
        tool_specs = get_tools_and_specs()

        for round_idx in range(self.max_tool_rounds):
            timeout = None
            if deadline is not None:
                timeout = deadline - time.monotonic()
                if timeout <= 0:
                    audit.append(AuditEntry(step="deadline", ok=False, detail=f"Deadline passed before round {round_idx + 1}."))
                    return OrchestratorResult(
                        outcome=RunOutcome.TIMED_OUT,
                        summary=prompts.TIMED_OUT_MESSAGE,
                        messages=messages,
                        audit=audit,
                        rounds=round_idx,
                    )

            try:
                resp = call_model(self.client, self.settings.openai_deployment_name, list(messages), tools=tool_specs, timeout=timeout)
            except Exception as e:
                logger.error("Error in chat service", exc_info=e)
                error = f"{prompts.COMMUNICATION_ERROR_PREFIX}: {e}"
                audit.append(AuditEntry(step=f"model_round_{round_idx + 1}", ok=False, detail=error))
                return OrchestratorResult(
                    outcome=RunOutcome.COMMUNICATION_ERROR,
                    summary="",
                    messages=messages,
                    audit=audit,
                    rounds=round_idx + 1,
                    error=error,
                )

            choice = resp.choices[0]
            finish_reason = choice.finish_reason

            if finish_reason == "stop":
                final_text = choice.message.content or prompts.NO_CONTENT_MESSAGE
                audit.append(AuditEntry(step=f"model_round_{round_idx + 1}", ok=True, detail="No tool call: returning text."))
                return OrchestratorResult(
                    outcome=RunOutcome.ANSWER,
                    summary=final_text,
                    messages=messages + [{"role": "assistant", "content": final_text}],
                    audit=audit,
                    rounds=round_idx + 1,
                )

            if finish_reason != "tool_calls":
                audit.append(AuditEntry(step=f"model_round_{round_idx + 1}", ok=True, detail=f"Finish reason '{finish_reason}': stopping."))
                return OrchestratorResult(
                    outcome=RunOutcome.EARLY_EXIT,
                    summary=prompts.COMPLETED_MESSAGE,
                    messages=messages,
                    audit=audit,
                    rounds=round_idx + 1,
                )

            tool_calls = extract_tool_calls(choice)
            messages.append(assistant_turn(choice, tool_calls))

            # Execute each tool call in order, feed back results
            for tc in tool_calls:
                audit.append(AuditEntry(step="tool_call", ok=True, detail=f"Calling {tc.name}", tool_call=tc))
                result = execute_tool(self.service, tc)
                audit.append(AuditEntry(
                    step="tool_result",
                    ok=result.ok,
                    detail=("ok" if result.ok else result.error or "error"),
                    tool_call=tc,
                    tool_result=result,
                ))

                # Push tool result back to the model as a "tool" message
                messages.append({
                    "role": "tool",
                    "tool_call_id": tc.id,
                    "content": result.to_content(),
                })

        logger.warning("Stopped after %d tool rounds without a final answer", self.max_tool_rounds)
        audit.append(AuditEntry(step="max_rounds_reached", ok=False, detail=f"Stopped after {self.max_tool_rounds} rounds."))

        return OrchestratorResult(
            outcome=RunOutcome.TRUNCATED,
            summary=prompts.COMPLETED_MESSAGE,
            messages=messages,
            audit=audit,
            rounds=self.max_tool_rounds,
        )

    def get_response(self, request: ChatRequest, *, deadline: Optional[float] = None) -> ChatResponse:
        """Run the conversation and shape it as the /api/chat response."""

        result = self.run(request.message, request.history, deadline=deadline)

        if result.outcome is RunOutcome.COMMUNICATION_ERROR:
            return ChatResponse(success=False, error=result.error, outcome=result.outcome)

        return ChatResponse(
            success=True,
            message=result.summary,
            is_gen_ai_enabled=result.outcome is not RunOutcome.DISABLED,
            outcome=result.outcome,
        )
