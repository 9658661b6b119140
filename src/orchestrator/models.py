"""
src/orchestrator/models.py

Pydantic models for chat requests, tool-calling I/O and audit entries.
"""


import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RunOutcome(str, Enum):

    ANSWER = "answer"                       # finish_reason == "stop"
    EARLY_EXIT = "early_exit"               # any other finish reason
    TRUNCATED = "truncated"                 # tool-round cap reached
    TIMED_OUT = "timed_out"                 # caller's deadline passed
    DISABLED = "disabled"
    COMMUNICATION_ERROR = "communication_error"


class ChatTurn(BaseModel):

    role: str = "user"
    content: str = ""


class ChatRequest(BaseModel):

    message: str = ""
    history: List[ChatTurn] = Field(default_factory=list)


class ChatResponse(BaseModel):

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str = ""
    error: Optional[str] = None
    is_gen_ai_enabled: bool = Field(default=True, alias="isGenAIEnabled")
    outcome: RunOutcome = RunOutcome.ANSWER


class ToolCall(BaseModel):

    id: Optional[str] = None
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    raw_arguments: str = "{}"


class ToolResult(BaseModel):

    name: str
    ok: bool
    output: Any = None
    error: Optional[str] = None

    def to_content(self) -> str:
        """What the model sees: the payload itself, or {"error": message}."""

        if self.ok:
            return json.dumps(self.output, ensure_ascii=False)

        return json.dumps({"error": self.error}, ensure_ascii=False)


class AuditEntry(BaseModel):

    step: str
    ok: bool
    detail: str
    tool_call: Optional[ToolCall] = None
    tool_result: Optional[ToolResult] = None


class OrchestratorResult(BaseModel):

    outcome: RunOutcome
    summary: str
    messages: List[Dict[str, Any]]  # Final chat messages
    audit: List[AuditEntry]
    rounds: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:

        return self.outcome is not RunOutcome.COMMUNICATION_ERROR
