"""tests/test_api.py

Integration tests for the REST surface (api.py) using FastAPI's TestClient.
The gateway and chat client are replaced through dependency overrides.
"""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, Mock

import pytest
from fastapi.testclient import TestClient

from api import create_api, get_gateway, get_orchestrator, get_settings
from config import Settings
from orchestrator.router import ChatOrchestrator
from tools.expenses import ExpenseService
from tools.models import Expense


def _expense(expense_id: int = 1) -> Expense:
    return Expense(
        expense_id=expense_id,
        user_id=1,
        user_name="Alice Example",
        category_id=1,
        category_name="Travel",
        status_id=1,
        status_name="Draft",
        amount_minor=2550,
        amount_display="25.50",
        expense_date=date(2024, 2, 1),
        description="Train",
    )


@pytest.fixture
def api_client(mock_gateway: Mock, disabled_settings: Settings) -> TestClient:
    """TestClient over the API with a mocked gateway and chat disabled."""
    app = create_api()
    app.dependency_overrides[get_gateway] = lambda: mock_gateway
    app.dependency_overrides[get_settings] = lambda: disabled_settings
    return TestClient(app)


@pytest.fixture
def degraded_client(failing_gateway: Mock, disabled_settings: Settings) -> TestClient:
    """TestClient over the API with a gateway that always fails."""
    app = create_api()
    app.dependency_overrides[get_gateway] = lambda: failing_gateway
    app.dependency_overrides[get_settings] = lambda: disabled_settings
    return TestClient(app)


class TestEnvelope:
    """Test suite for the response envelope."""

    def test_health(self, api_client: TestClient) -> None:
        """Test the health probe."""
        assert api_client.get("/health").json() == {"status": "ok"}

    def test_list_expenses(self, api_client: TestClient, mock_gateway: Mock) -> None:
        """Test a healthy read returns camelCase records and no error."""
        mock_gateway.get_expenses.return_value = [_expense()]

        body = api_client.get("/api/expenses", params={"userId": 1, "search": "train"}).json()

        assert body["success"] is True
        assert body["degraded"] is False
        assert body["error"] is None
        assert body["data"][0]["expenseId"] == 1
        assert body["data"][0]["amountDisplay"] == 25.5
        mock_gateway.get_expenses.assert_called_once_with(1, None, None, "train")

    def test_degraded_read(self, degraded_client: TestClient) -> None:
        """Test a fallback read is flagged as degraded with the fault attached."""
        body = degraded_client.get("/api/categories").json()

        assert body["success"] is True
        assert body["degraded"] is True
        assert body["error"].startswith("Database Connection Error")
        assert "get_categories" in body["errorLocation"]
        assert len(body["data"]) == 5


class TestExpenseRoutes:
    """Test suite for expense routes."""

    def test_get_by_id_not_found(self, api_client: TestClient, mock_gateway: Mock) -> None:
        """Test an unknown expense is a 404."""
        mock_gateway.get_expense_by_id.return_value = None

        response = api_client.get("/api/expenses/99")

        assert response.status_code == 404
        assert response.json()["error"] == "Expense not found"

    def test_fixed_paths_win_over_id(self, api_client: TestClient, mock_gateway: Mock) -> None:
        """Test /pending is not parsed as an expense id."""
        mock_gateway.get_pending_expenses.return_value = []

        assert api_client.get("/api/expenses/pending").status_code == 200
        mock_gateway.get_expense_by_id.assert_not_called()

    def test_create(self, api_client: TestClient, mock_gateway: Mock) -> None:
        """Test create converts the amount and answers 201 with a Location."""
        mock_gateway.create_expense.return_value = 12
        payload = {"userId": 1, "categoryId": 2, "amount": 25.555, "expenseDate": "2024-02-01"}

        response = api_client.post("/api/expenses", json=payload)

        assert response.status_code == 201
        assert response.headers["location"] == "/api/expenses/12"
        assert response.json()["data"] == 12
        mock_gateway.create_expense.assert_called_once_with(1, 2, 2555, date(2024, 2, 1), None)

    def test_create_rejects_non_positive_amount(self, api_client: TestClient, mock_gateway: Mock) -> None:
        """Test a zero amount is a 400 wrapped in the standard envelope."""
        payload = {"userId": 1, "categoryId": 2, "amount": 0, "expenseDate": "2024-02-01"}

        response = api_client.post("/api/expenses", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["data"] is None
        assert body["degraded"] is False
        assert body["error"].startswith("amount:")
        mock_gateway.create_expense.assert_not_called()

    def test_missing_field_is_400(self, api_client: TestClient) -> None:
        """Test a missing body field names the camelCase key."""
        response = api_client.post("/api/expenses/1/approve", json={})

        assert response.status_code == 400
        assert response.json()["error"].startswith("reviewerId:")

    def test_bad_path_parameter_is_400(self, api_client: TestClient) -> None:
        """Test a non-numeric expense id is rejected with the envelope."""
        response = api_client.get("/api/expenses/abc")

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_submit_failure_is_400(self, api_client: TestClient, mock_gateway: Mock) -> None:
        """Test a submit that changes nothing is a 400."""
        mock_gateway.submit_expense.return_value = False

        response = api_client.post("/api/expenses/3/submit")

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_approve(self, api_client: TestClient, mock_gateway: Mock) -> None:
        """Test approve passes the reviewer through."""
        mock_gateway.approve_expense.return_value = True

        response = api_client.post("/api/expenses/1/approve", json={"reviewerId": 2})

        assert response.status_code == 200
        mock_gateway.approve_expense.assert_called_once_with(1, 2)

    def test_update_not_found(self, api_client: TestClient, mock_gateway: Mock) -> None:
        """Test an update that affects nothing is a 404."""
        mock_gateway.update_expense.return_value = False
        payload = {"categoryId": 1, "amount": 10, "expenseDate": "2024-02-01"}

        assert api_client.put("/api/expenses/5", json=payload).status_code == 404

    def test_delete(self, api_client: TestClient, mock_gateway: Mock) -> None:
        """Test deleting a draft."""
        mock_gateway.delete_expense.return_value = True
        assert api_client.delete("/api/expenses/5").json()["data"] is True

    def test_degraded_write_still_succeeds(self, degraded_client: TestClient) -> None:
        """Test a fallback write reports success but flags degradation."""
        body = degraded_client.post("/api/expenses/1/reject", json={"reviewerId": 2}).json()

        assert body["success"] is True
        assert body["degraded"] is True


class TestChatRoutes:
    """Test suite for chat routes."""

    def test_status_disabled(self, api_client: TestClient) -> None:
        """Test the status route reports chat as disabled."""
        assert api_client.get("/api/chat/status").json() == {"enabled": False}

    def test_chat_disabled(self, api_client: TestClient) -> None:
        """Test chat answers with setup guidance when disabled."""
        body = api_client.post("/api/chat", json={"message": "Hi", "history": []}).json()

        assert body["success"] is True
        assert body["isGenAIEnabled"] is False

    def test_chat_enabled(self, mock_gateway: Mock, enabled_settings: Settings, mock_llm_client: MagicMock) -> None:
        """Test chat runs the orchestrator with the injected client."""
        app = create_api()
        app.dependency_overrides[get_settings] = lambda: enabled_settings
        app.dependency_overrides[get_orchestrator] = lambda: ChatOrchestrator(
            enabled_settings, ExpenseService(mock_gateway), client=mock_llm_client
        )

        body = TestClient(app).post("/api/chat", json={"message": "Hi"}).json()

        assert body["message"] == "Hello"
        assert body["outcome"] == "answer"
