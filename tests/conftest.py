"""tests/conftest.py

Pytest configuration and shared fixtures for the expense assistant test suite.
"""

from __future__ import annotations

# Standard Library
import json
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, Mock

# Third-Party Libraries
import pytest

# Local
from config import Settings
from context.loader import load_workspace
from tools.errors import ErrorKind, GatewayError
from tools.expenses import ExpenseService
from tools.gateway import ExpenseGateway


def make_completion(finish_reason: str = "stop", content: str | None = None, tool_calls: list | None = None) -> SimpleNamespace:
    """Build an object shaped like a chat-completions response.

    Args:
        finish_reason: The finish reason of the single choice.
        content: Assistant message text.
        tool_calls: Tool calls built with `make_tool_call`.

    Returns:
        Response stub with `choices[0].finish_reason` and `choices[0].message`.
    """
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(finish_reason=finish_reason, message=message)])


def make_tool_call(name: str, arguments: dict[str, Any] | str | None = None, call_id: str = "call_1") -> SimpleNamespace:
    """Build a function tool call stub; dict arguments are JSON encoded."""
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments or {})
    return SimpleNamespace(id=call_id, type="function", function=SimpleNamespace(name=name, arguments=raw))


@pytest.fixture
def workspace():
    """The bundled sample workspace."""
    return load_workspace()


@pytest.fixture
def mock_gateway() -> Mock:
    """A gateway whose every method can be configured per test.

    Returns:
        Mock constrained to the ExpenseGateway interface.
    """
    return Mock(spec=ExpenseGateway)


@pytest.fixture
def failing_gateway() -> Mock:
    """A gateway where every call raises a connectivity fault.

    Returns:
        Mock constrained to the ExpenseGateway interface.
    """
    gateway = Mock(spec=ExpenseGateway)
    fault = GatewayError("connection refused", kind=ErrorKind.CONNECTIVITY)

    for name in (
        "get_categories",
        "get_statuses",
        "get_users",
        "get_user_by_id",
        "get_expenses",
        "get_expense_by_id",
        "get_pending_expenses",
        "create_expense",
        "update_expense",
        "submit_expense",
        "approve_expense",
        "reject_expense",
        "delete_expense",
        "get_expense_summary",
        "get_expenses_by_category",
    ):
        getattr(gateway, name).side_effect = fault

    return gateway


@pytest.fixture
def service(mock_gateway: Mock) -> ExpenseService:
    """An expense service over the configurable gateway mock."""
    return ExpenseService(mock_gateway)


@pytest.fixture
def degraded_service(failing_gateway: Mock) -> ExpenseService:
    """An expense service whose gateway always fails."""
    return ExpenseService(failing_gateway)


@pytest.fixture
def enabled_settings() -> Settings:
    """Settings with a chat endpoint and deployment configured."""
    return Settings(
        openai_endpoint="https://example.openai.azure.com/",
        openai_deployment_name="gpt-4o",
        openai_api_key="test-key",
    )


@pytest.fixture
def disabled_settings() -> Settings:
    """Settings with no chat endpoint configured."""
    return Settings()


@pytest.fixture
def mock_llm_client() -> MagicMock:
    """A chat client whose completions.create answers 'Hello' immediately."""
    client = MagicMock()
    client.chat.completions.create.return_value = make_completion("stop", "Hello")
    return client
