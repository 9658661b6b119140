"""
src/app.py

Gradio pages (Dashboard, Expenses, Add Expense, Approve, Chat) mounted on the
FastAPI app at /ui. Every handler builds its own ExpenseService, so the error
banner it returns only ever reflects that action's fault.
"""


import logging
import time
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import gradio as gr
import uvicorn

from api import create_api, get_gateway, get_settings
from config import RECENT_EXPENSES_LIMIT, format_money
from context import selectors
from orchestrator.models import ChatRequest, ChatTurn
from orchestrator.router import ChatOrchestrator
from tools.expenses import ExpenseService
from tools.models import Expense


logger = logging.getLogger(__name__)

APP_TITLE = "Expense Management"
APP_DESC = (
    "Record expenses, submit them for approval and review them as a manager. "
    "The Chat tab answers questions like 'show me all pending expenses'."
)

EXPENSE_HEADERS = ["ID", "Date", "User", "Category", "Amount", "Status", "Description"]
SUMMARY_HEADERS = ["Name", "Count", "Total"]


def _service() -> ExpenseService:

    return ExpenseService(get_gateway())

def error_banner(service: ExpenseService) -> str:
    """Markdown shown above a page when its data came from the sample fallback."""

    state = service.error_state

    if not state.has_error:
        return ""

    return f"⚠️ **{state.message}**\n\n_Location: {state.location}_"

def expense_rows(expenses: List[Expense]) -> List[List[Any]]:

    return [
        [
            e.expense_id,
            e.expense_date.isoformat(),
            e.user_name,
            e.category_name,
            format_money(e.amount_display),
            e.status_name,
            e.description or "",
        ]
        for e in expenses
    ]

def _parse_date(value: Optional[str]) -> date:

    if not value:
        return date.today()

    return date.fromisoformat(value.strip())


# --- Dashboard -----------------------------------------------------------------
def load_dashboard() -> Tuple[List[List[Any]], List[List[Any]], List[List[Any]], str, str]:

    service = _service()
    banners = []

    by_status = service.get_expense_summary()
    banners.append(error_banner(service))
    by_category = service.get_expenses_by_category()
    banners.append(error_banner(service))
    recent = service.get_expenses()[:RECENT_EXPENSES_LIMIT]
    banners.append(error_banner(service))
    pending = service.get_pending_expenses()
    banners.append(error_banner(service))

    status_rows = [[s.status_name, s.expense_count, format_money(s.total_amount_display)] for s in by_status]
    category_rows = [[c.category_name, c.expense_count, format_money(c.total_amount_display)] for c in by_category]
    pending_md = f"**Pending approval:** {len(pending)}"

    return status_rows, category_rows, expense_rows(recent), pending_md, next((b for b in banners if b), "")


# --- Expenses ------------------------------------------------------------------
def list_expenses(status_id: Optional[int], category_id: Optional[int], search: str) -> Tuple[List[List[Any]], str]:

    service = _service()
    expenses = service.get_expenses(None, status_id or None, category_id or None, search or None)

    return expense_rows(expenses), error_banner(service)

def submit_expense(expense_id: Optional[float]) -> str:

    if not expense_id:
        return "Enter an expense ID to submit."

    service = _service()
    done = service.submit_expense(int(expense_id))

    return error_banner(service) or (f"Expense {int(expense_id)} submitted." if done else f"Expense {int(expense_id)} could not be submitted.")

def delete_expense(expense_id: Optional[float]) -> str:

    if not expense_id:
        return "Enter an expense ID to delete."

    service = _service()
    done = service.delete_expense(int(expense_id))

    return error_banner(service) or (
        f"Expense {int(expense_id)} deleted." if done else f"Expense {int(expense_id)} not found or not a draft."
    )


# --- Add expense ---------------------------------------------------------------
def add_expense(
        user_id: Optional[int],
        category_id: Optional[int],
        amount: Optional[float],
        expense_date: Optional[str],
        description: Optional[str],
) -> str:

    if not user_id or not category_id:
        return "Choose a user and a category."
    if amount is None or amount <= 0:
        return "Amount must be greater than 0."

    try:
        when = _parse_date(expense_date)
    except ValueError:
        return "Expense date must be YYYY-MM-DD."

    service = _service()
    new_id = service.create_expense(int(user_id), int(category_id), amount, when, (description or "").strip() or None)

    return error_banner(service) or f"Created draft expense {new_id}."


# --- Approve -------------------------------------------------------------------
def list_pending(search: str) -> Tuple[List[List[Any]], str]:

    service = _service()
    pending = service.get_pending_expenses(search or None)

    return expense_rows(pending), error_banner(service)

def review_expense(expense_id: Optional[float], reviewer_id: Optional[int], approve: bool) -> str:

    if not expense_id or not reviewer_id:
        return "Enter an expense ID and choose a reviewer."

    service = _service()
    verb = "approved" if approve else "rejected"

    if approve:
        done = service.approve_expense(int(expense_id), int(reviewer_id))
    else:
        done = service.reject_expense(int(expense_id), int(reviewer_id))

    return error_banner(service) or (
        f"Expense {int(expense_id)} {verb}." if done else f"Expense {int(expense_id)} could not be {verb}."
    )


# --- Chat ----------------------------------------------------------------------
def respond(message: str, history: List[Dict[str, str]]) -> Tuple[str, List[Dict[str, str]]]:
    """Send a user message and append both turns to the chat history."""

    if not message.strip():
        return "", history

    settings = get_settings()
    orchestrator = ChatOrchestrator(settings, _service())
    request = ChatRequest(message=message, history=[ChatTurn(role=h["role"], content=h["content"]) for h in history])
    response = orchestrator.get_response(request, deadline=time.monotonic() + settings.chat_timeout_seconds)
    reply = response.message if response.success else (response.error or "Something went wrong.")

    return "", history + [
        {"role": "user", "content": message},
        {"role": "assistant", "content": reply},
    ]


# --- Layout --------------------------------------------------------------------
def _choices() -> Dict[str, List[Tuple[str, int]]]:

    service = _service()
    users = service.get_users()

    return {
        "statuses": [(s.status_name, s.status_id) for s in service.get_statuses()],
        "categories": [(c.category_name, c.category_id) for c in service.get_categories()],
        "users": [(u.user_name, u.user_id) for u in users],
        "reviewers": [(u.user_name, u.user_id) for u in selectors.managers(users)],
    }

def app():
    choices = _choices()
    reviewers = choices["reviewers"]

    with gr.Blocks(title=APP_TITLE) as demo:
        gr.Markdown(f"# {APP_TITLE}")
        gr.Markdown(APP_DESC)

        with gr.Tab("Dashboard"):
            dash_banner = gr.Markdown()
            pending_md = gr.Markdown()
            with gr.Row():
                status_tbl = gr.Dataframe(headers=SUMMARY_HEADERS, label="By status")
                category_tbl = gr.Dataframe(headers=SUMMARY_HEADERS, label="By category")
            recent_tbl = gr.Dataframe(headers=EXPENSE_HEADERS, label="Recent expenses")
            refresh = gr.Button("Refresh")

        with gr.Tab("Expenses"):
            exp_banner = gr.Markdown()
            with gr.Row():
                status_dd = gr.Dropdown(label="Status", choices=choices["statuses"], value=None)
                category_dd = gr.Dropdown(label="Category", choices=choices["categories"], value=None)
                search_tb = gr.Textbox(label="Search", placeholder="e.g., taxi")
            exp_tbl = gr.Dataframe(headers=EXPENSE_HEADERS)
            filter_btn = gr.Button("Filter", variant="primary")
            with gr.Row():
                exp_id = gr.Number(label="Expense ID", precision=0)
                submit_btn = gr.Button("Submit for approval")
                delete_btn = gr.Button("Delete draft", variant="stop")
            exp_result = gr.Markdown()

        with gr.Tab("Add Expense"):
            user_dd = gr.Dropdown(label="User", choices=choices["users"])
            new_category_dd = gr.Dropdown(label="Category", choices=choices["categories"])
            amount_nb = gr.Number(label="Amount (£)", minimum=0)
            date_tb = gr.Textbox(label="Expense date", value=date.today().isoformat(), placeholder="YYYY-MM-DD")
            desc_tb = gr.Textbox(label="Description", lines=2)
            add_btn = gr.Button("Add expense", variant="primary")
            add_result = gr.Markdown()

        with gr.Tab("Approve"):
            approve_banner = gr.Markdown()
            with gr.Row():
                reviewer_dd = gr.Dropdown(label="Reviewer", choices=reviewers, value=reviewers[0][1] if reviewers else None)
                pending_search = gr.Textbox(label="Search")
            pending_tbl = gr.Dataframe(headers=EXPENSE_HEADERS)
            pending_btn = gr.Button("Load pending", variant="primary")
            with gr.Row():
                review_id = gr.Number(label="Expense ID", precision=0)
                approve_btn = gr.Button("Approve", variant="primary")
                reject_btn = gr.Button("Reject", variant="stop")
            review_result = gr.Markdown()

        with gr.Tab("Chat"):
            chatbot = gr.Chatbot(label="Expense assistant", type="messages", height=480)
            with gr.Row():
                txt = gr.Textbox(placeholder="Ask about your expenses…", show_label=False, scale=9)
                send_btn = gr.Button("Send", variant="primary", scale=1)

        # Wire buttons
        dash_outputs = [status_tbl, category_tbl, recent_tbl, pending_md, dash_banner]
        refresh.click(fn=load_dashboard, outputs=dash_outputs)
        demo.load(fn=load_dashboard, outputs=dash_outputs)

        filter_btn.click(fn=list_expenses, inputs=[status_dd, category_dd, search_tb], outputs=[exp_tbl, exp_banner])
        submit_btn.click(fn=submit_expense, inputs=[exp_id], outputs=[exp_result])
        delete_btn.click(fn=delete_expense, inputs=[exp_id], outputs=[exp_result])

        add_btn.click(
            fn=add_expense,
            inputs=[user_dd, new_category_dd, amount_nb, date_tb, desc_tb],
            outputs=[add_result],
        )

        pending_btn.click(fn=list_pending, inputs=[pending_search], outputs=[pending_tbl, approve_banner])
        approve_btn.click(
            fn=lambda expense_id, reviewer_id: review_expense(expense_id, reviewer_id, True),
            inputs=[review_id, reviewer_dd],
            outputs=[review_result],
        )
        reject_btn.click(
            fn=lambda expense_id, reviewer_id: review_expense(expense_id, reviewer_id, False),
            inputs=[review_id, reviewer_dd],
            outputs=[review_result],
        )

        txt.submit(respond, inputs=[txt, chatbot], outputs=[txt, chatbot])
        send_btn.click(respond, inputs=[txt, chatbot], outputs=[txt, chatbot])

    return demo

def create_app():
    """The FastAPI app with the Gradio pages mounted under /ui."""

    settings = get_settings()
    logger.info("Chat assistant %s", "enabled" if settings.chat_enabled else "disabled (no endpoint/deployment)")

    return gr.mount_gradio_app(create_api(), app(), path="/ui")


if __name__ == "__main__":

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)

# EOF
