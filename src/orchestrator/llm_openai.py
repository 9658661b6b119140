"""
src/orchestrator/llm_openai.py

Azure OpenAI client wrapper for function calling.
- build_client(): key- or identity-based AzureOpenAI client from Settings
- call_model(): one chat-completions round trip (no tool execution)
- extract_tool_calls(): normalise the tool calls on a response choice
"""


import json
import logging
from typing import Any, Dict, List, Optional

from azure.identity import DefaultAzureCredential, ManagedIdentityCredential, get_bearer_token_provider
from openai import AzureOpenAI

from config import Settings
from orchestrator.models import ToolCall


logger = logging.getLogger(__name__)

TOKEN_SCOPE = "https://cognitiveservices.azure.com/.default"


def build_client(settings: Settings) -> AzureOpenAI:
    """
    Create the AzureOpenAI client.

    An API key wins when present; otherwise tokens come from the user-assigned
    managed identity (MANAGED_IDENTITY_CLIENT_ID) or DefaultAzureCredential.
    """

    if settings.openai_api_key:
        logger.info("Using API key authentication for %s", settings.openai_endpoint)
        return AzureOpenAI(
            azure_endpoint=settings.openai_endpoint,
            api_key=settings.openai_api_key,
            api_version=settings.openai_api_version,
        )

    if settings.managed_identity_client_id:
        logger.info("Using ManagedIdentityCredential with client ID: %s", settings.managed_identity_client_id)
        credential = ManagedIdentityCredential(client_id=settings.managed_identity_client_id)
    else:
        logger.info("Using DefaultAzureCredential")
        credential = DefaultAzureCredential()

    return AzureOpenAI(
        azure_endpoint=settings.openai_endpoint,
        azure_ad_token_provider=get_bearer_token_provider(credential, TOKEN_SCOPE),
        api_version=settings.openai_api_version,
    )

def call_model(
        client: Any,
        deployment: str,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        timeout: Optional[float] = None,
):
    """
    Low-level call to Chat Completions with optional tool specs.
    Returns the raw response object.
    """

    kwargs: Dict[str, Any] = {
        "model": deployment,
        "messages": messages,
    }

    if tools:
        kwargs["tools"] = tools
        kwargs["tool_choice"] = "auto"
    if timeout is not None:
        kwargs["timeout"] = timeout

    return client.chat.completions.create(**kwargs)

def extract_tool_calls(choice) -> List[ToolCall]:
    """
    Normalise tool calls from the response choice.
    Arguments that are not valid JSON decode as {} and fail validation later.
    """

    out: List[ToolCall] = []
    tcs = getattr(choice.message, "tool_calls", None)

    if not tcs:
        return out

    for tc in tcs:
        fn = getattr(tc, "function", None)
        if fn is None:
            # Non-function tool calls still need an answer; dispatch reports them unknown
            out.append(ToolCall(id=tc.id, name=str(getattr(tc, "type", "unknown"))))
            continue
        raw = fn.arguments or "{}"
        try:
            args = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Unparseable arguments for %s: %r", fn.name, raw)
            args = {}
        if not isinstance(args, dict):
            args = {}
        out.append(ToolCall(id=tc.id, name=fn.name, arguments=args, raw_arguments=raw))

    return out

def assistant_turn(choice, tool_calls: List[ToolCall]) -> Dict[str, Any]:
    """The assistant message, tool calls included, as it goes back into the conversation."""

    turn: Dict[str, Any] = {"role": "assistant", "content": choice.message.content}

    # An empty tool_calls array is rejected by the service
    if tool_calls:
        turn["tool_calls"] = [
            {
                "id": tc.id,
                "type": "function",
                "function": {"name": tc.name, "arguments": tc.raw_arguments},
            }
            for tc in tool_calls
        ]

    return turn
