"""
src/config.py

Enums, defaults and environment-driven settings for the expense assistant.
"""


import os
from decimal import Decimal, ROUND_DOWN
from enum import Enum, IntEnum
from typing import Dict, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel


load_dotenv()


class Status(IntEnum):

    DRAFT = 1
    SUBMITTED = 2
    APPROVED = 3
    REJECTED = 4


class Role(str, Enum):

    EMPLOYEE = "Employee"
    MANAGER = "Manager"


class Currency(str, Enum):

    GBP = "GBP"


# Defaults
DEFAULT_CURRENCY: Currency = Currency.GBP
DEFAULT_REVIEWER_ID: int = 2                # Seeded manager account
MAX_TOOL_ROUNDS: int = 10                   # Completion requests per chat run
RECENT_EXPENSES_LIMIT: int = 5
SEARCH_MATCH_THRESHOLD: int = 90            # rapidfuzz partial_ratio cut-off
CURRENCY_SYMBOLS: Dict[str, str] = {
    "GBP": "£",
}


class Settings(BaseModel):
    """Runtime settings read from the environment (and .env when present)."""

    openai_endpoint: Optional[str] = None
    openai_deployment_name: Optional[str] = None
    openai_api_version: str = "2024-10-21"
    openai_api_key: Optional[str] = None
    managed_identity_client_id: Optional[str] = None
    database_url: Optional[str] = None
    chat_timeout_seconds: float = 120.0
    log_level: str = "INFO"

    @property
    def chat_enabled(self) -> bool:

        return bool(self.openai_endpoint) and bool(self.openai_deployment_name)

    @classmethod
    def from_env(cls) -> "Settings":

        return cls(
            openai_endpoint=os.getenv("OPENAI_ENDPOINT") or None,
            openai_deployment_name=os.getenv("OPENAI_DEPLOYMENT_NAME") or None,
            openai_api_version=os.getenv("OPENAI_API_VERSION", "2024-10-21"),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            managed_identity_client_id=os.getenv("MANAGED_IDENTITY_CLIENT_ID") or None,
            database_url=os.getenv("DATABASE_URL") or None,
            chat_timeout_seconds=float(os.getenv("CHAT_TIMEOUT_SECONDS", "120")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


def to_minor_units(amount: Union[Decimal, float, int, str]) -> int:
    """
    Convert a major-unit amount (25.50) into integer minor units (2550).

    Goes through str() so binary float noise never leaks in, then truncates
    toward zero: 25.555 -> 2555.
    """

    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))

    return int((value * 100).to_integral_value(rounding=ROUND_DOWN))

def from_minor_units(amount_minor: int) -> Decimal:

    return (Decimal(amount_minor) / 100).quantize(Decimal("0.01"))

def format_money(amount: Union[Decimal, float], currency: Currency = DEFAULT_CURRENCY) -> str:
    """Very simple currency formatter"""

    sym = CURRENCY_SYMBOLS[Currency(currency).value]

    return f"{sym}{amount:,.2f}"
# EOF
