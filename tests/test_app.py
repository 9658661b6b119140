"""tests/test_app.py

Unit tests for the Gradio page handlers (app.py). The handlers are plain
functions, so they are exercised directly without launching the UI.
"""

from __future__ import annotations

from unittest.mock import MagicMock, Mock, patch

import pytest

import app
from config import Settings


@pytest.fixture
def healthy(mock_gateway: Mock):
    """Route the handlers to the configurable gateway mock."""
    with patch("app.get_gateway", return_value=mock_gateway):
        yield mock_gateway


@pytest.fixture
def degraded(failing_gateway: Mock):
    """Route the handlers to a gateway that always fails."""
    with patch("app.get_gateway", return_value=failing_gateway):
        yield failing_gateway


class TestDashboard:
    """Test suite for the dashboard handler."""

    def test_degraded_dashboard(self, degraded: Mock) -> None:
        """Test the dashboard renders sample data under a warning banner."""
        status_rows, category_rows, recent, pending_md, banner = app.load_dashboard()

        assert ["Submitted", 2, "£189.00"] in status_rows
        assert ["Travel", 2, "£139.20"] in category_rows
        assert len(recent) == 4
        assert pending_md == "**Pending approval:** 2"
        assert "Database Connection Error" in banner


class TestExpenseHandlers:
    """Test suite for the expense page handlers."""

    def test_list_expenses_passes_filters(self, healthy: Mock) -> None:
        """Test dropdown values are forwarded as filters."""
        healthy.get_expenses.return_value = []

        rows, banner = app.list_expenses(2, None, "taxi")

        assert rows == []
        assert banner == ""
        healthy.get_expenses.assert_called_once_with(None, 2, None, "taxi")

    def test_submit_requires_id(self, healthy: Mock) -> None:
        """Test submitting without an id asks for one."""
        assert app.submit_expense(None) == "Enter an expense ID to submit."
        healthy.submit_expense.assert_not_called()

    def test_delete_non_draft(self, healthy: Mock) -> None:
        """Test a delete that affects nothing says so."""
        healthy.delete_expense.return_value = False
        assert app.delete_expense(3) == "Expense 3 not found or not a draft."

    def test_add_expense(self, healthy: Mock) -> None:
        """Test adding an expense converts the amount to minor units."""
        healthy.create_expense.return_value = 8

        message = app.add_expense(1, 2, 25.5, "2024-02-01", "  Lunch ")

        assert message == "Created draft expense 8."
        assert healthy.create_expense.call_args.args[2] == 2550
        assert healthy.create_expense.call_args.args[4] == "Lunch"

    def test_add_expense_bad_date(self, healthy: Mock) -> None:
        """Test an unparseable date is rejected before any call."""
        assert app.add_expense(1, 2, 10, "01/02/2024", "") == "Expense date must be YYYY-MM-DD."
        healthy.create_expense.assert_not_called()

    def test_add_expense_non_positive(self, healthy: Mock) -> None:
        """Test zero amounts are rejected."""
        assert app.add_expense(1, 2, 0, "2024-02-01", "") == "Amount must be greater than 0."

    def test_degraded_write_shows_banner(self, degraded: Mock) -> None:
        """Test a fallback write shows the fault instead of a success message."""
        assert app.submit_expense(1).startswith("⚠️ **Database Connection Error")


class TestApproveHandlers:
    """Test suite for the approval page handlers."""

    def test_approve(self, healthy: Mock) -> None:
        """Test approving with a reviewer."""
        healthy.approve_expense.return_value = True

        assert app.review_expense(1, 2, True) == "Expense 1 approved."
        healthy.approve_expense.assert_called_once_with(1, 2)

    def test_reject_needs_reviewer(self, healthy: Mock) -> None:
        """Test a reviewer must be chosen."""
        assert app.review_expense(1, None, False) == "Enter an expense ID and choose a reviewer."

    def test_list_pending(self, degraded: Mock) -> None:
        """Test the pending list falls back to sample data."""
        rows, banner = app.list_pending("")

        assert {r[0] for r in rows} == {1, 2}
        assert banner


class TestRespond:
    """Test suite for the chat handler."""

    def test_blank_message(self) -> None:
        """Test blank input leaves history untouched."""
        assert app.respond("   ", []) == ("", [])

    def test_disabled_reply(self, healthy: Mock, disabled_settings: Settings) -> None:
        """Test both turns are appended with the disabled guidance."""
        with patch("app.get_settings", return_value=disabled_settings):
            text, history = app.respond("Hi", [])

        assert text == ""
        assert history[0] == {"role": "user", "content": "Hi"}
        assert history[1]["content"].startswith("GenAI services are not configured")

    @patch("orchestrator.router.build_client")
    def test_enabled_reply(
            self, mock_build_client: Mock, healthy: Mock, enabled_settings: Settings, mock_llm_client: MagicMock
    ) -> None:
        """Test the orchestrator answer becomes the assistant turn."""
        mock_build_client.return_value = mock_llm_client

        with patch("app.get_settings", return_value=enabled_settings):
            _, history = app.respond("Hi", [{"role": "user", "content": "earlier"}, {"role": "assistant", "content": "ok"}])

        assert history[-1] == {"role": "assistant", "content": "Hello"}
        assert len(history) == 4
