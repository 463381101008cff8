from __future__ import annotations

import json
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Sequence

from clients.openai_client import OpenAIGateway
from config import MAX_TOOL_STEPS, log
from schemas.chat import TurnResponse
from storage.session_store import SessionStore
from utils.debug_events import debug_enabled, record_event
from utils.errors import ServiceError
from utils.observability import log_event


NO_TEXT_FALLBACK = "I apologize, I encountered an issue."
STEP_LIMIT_FALLBACK = "I had trouble completing that request. Please try again."


class ToolSession:
    """Tool-mode conversation: the model decides what to ask and when to store."""

    def __init__(self) -> None:
        self.collected_data: Dict[str, str] = {}
        self.history: List[Dict[str, Any]] = []
        self.lock = RLock()

    def reset(self) -> None:
        self.collected_data = {}
        self.history = []

    def snapshot(self) -> Dict[str, Any]:
        return {
            "collected_data": dict(self.collected_data),
            "history_length": len(self.history),
        }


@dataclass
class ToolContext:
    session_id: str
    session: ToolSession
    allowed_fields: Sequence[str]
    request_id: Optional[str] = None


def _tool_ok(message: str) -> Dict[str, Any]:
    return {"ok": True, "message": message}


def _tool_err(message: str, code: str = "tool_error") -> Dict[str, Any]:
    return {"ok": False, "error": {"code": code, "message": message}}


# ============================================================
# Tool handlers
# ============================================================

def _store_user_data(args: Dict[str, Any], ctx: ToolContext) -> Dict[str, Any]:
    field = str(args.get("field") or "").strip()
    value = args.get("value")
    if field not in ctx.allowed_fields:
        return _tool_err(
            f"Unknown field: {field or '(empty)'}. Allowed: {', '.join(ctx.allowed_fields)}",
            "invalid_arguments",
        )
    if value is None or isinstance(value, (dict, list)):
        return _tool_err("value must be a string", "invalid_arguments")
    ctx.session.collected_data[field] = str(value)
    return _tool_ok(f"Stored {field}")


def _get_collected_data(args: Dict[str, Any], ctx: ToolContext) -> Dict[str, Any]:
    return dict(ctx.session.collected_data)


@dataclass
class ToolSpec:
    name: str
    description: str
    parameters: Dict[str, Any]
    handler: Callable[[Dict[str, Any], ToolContext], Dict[str, Any]]


def build_tool_specs(field_keys: Sequence[str]) -> Dict[str, ToolSpec]:
    return {
        "store_user_data": ToolSpec(
            name="store_user_data",
            description="Store a piece of user data that was collected. Call this after the user provides information.",
            parameters={
                "type": "object",
                "properties": {
                    "field": {
                        "type": "string",
                        "enum": list(field_keys),
                        "description": "The field name for the data being stored",
                    },
                    "value": {
                        "type": "string",
                        "description": "The value provided by the user",
                    },
                },
                "required": ["field", "value"],
            },
            handler=_store_user_data,
        ),
        "get_collected_data": ToolSpec(
            name="get_collected_data",
            description="Retrieve all collected user data to answer questions",
            parameters={"type": "object", "properties": {}, "required": []},
            handler=_get_collected_data,
        ),
    }


def build_openai_tools(specs: Dict[str, ToolSpec]) -> List[Dict[str, Any]]:
    tools = []
    for spec in specs.values():
        tools.append({
            "type": "function",
            "function": {
                "name": spec.name,
                "description": spec.description,
                "parameters": spec.parameters,
            },
        })
    return tools


def run_tool_by_name(
    specs: Dict[str, ToolSpec],
    tool_name: str,
    args: Dict[str, Any],
    ctx: ToolContext,
) -> Dict[str, Any]:
    spec = specs.get(tool_name)
    if not spec:
        return _tool_err(f"Unknown tool: {tool_name}", "unknown_tool")
    return spec.handler(args, ctx)


def build_system_prompt(field_keys: Sequence[str]) -> str:
    first, rest = field_keys[0], ", ".join(field_keys[1:])
    return (
        "You are a financial data collection assistant with access to tools.\n\n"
        "Your process:\n"
        f"1. Greet the user and ask for their {first}\n"
        "2. After they respond, use store_user_data to save it\n"
        f"3. Continue asking for: {rest} (one at a time)\n"
        "4. Use store_user_data after each response\n"
        "5. After all data is collected, offer to answer questions\n"
        "6. Use get_collected_data to retrieve information when answering questions\n\n"
        f"Only these fields exist: {', '.join(field_keys)}.\n"
        "Ask ONE question at a time and be conversational."
    )


# ============================================================
# Service API
# ============================================================

def run_tool_turn(
    *,
    store: SessionStore[ToolSession],
    gateway: OpenAIGateway,
    session_id: str,
    message: str,
    field_keys: Sequence[str],
    max_steps: int = MAX_TOOL_STEPS,
    request_id: Optional[str] = None,
) -> TurnResponse:
    """
    Run one tool-mode turn: call the model, execute any tools it requests,
    feed the results back and repeat until it answers in text or
    ``max_steps`` model calls have been made.
    """
    message = (message or "").strip()
    if not message:
        raise ServiceError("Missing message", 400, "missing_message")

    specs = build_tool_specs(field_keys)
    tools = build_openai_tools(specs)
    system = build_system_prompt(field_keys)
    session = store.get_or_create(session_id)

    with session.lock:
        ctx = ToolContext(session_id=session_id, session=session, allowed_fields=field_keys, request_id=request_id)
        session.history.append({"role": "user", "content": message})

        reply_text: Optional[str] = None
        for step in range(max_steps):
            reply = gateway.invoke(system, session.history, tools=tools, request_id=request_id)
            if not reply.wants_tools:
                reply_text = reply.text or NO_TEXT_FALLBACK
                break

            session.history.append(reply.assistant_turn())
            for call in reply.tool_calls:
                result = run_tool_by_name(specs, call.name, call.arguments, ctx)
                failed = isinstance(result.get("error"), dict)
                log.info("[Tools] call=%s session_id=%s step=%s ok=%s", call.name, session_id, step + 1, not failed)
                if debug_enabled():
                    record_event(
                        "tool",
                        f"call {call.name or 'unknown'}",
                        data={"args": call.arguments, "error": result.get("error") if failed else None},
                        request_id=request_id,
                        level="error" if failed else "info",
                    )
                session.history.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps(result, ensure_ascii=False),
                })

        if reply_text is None:
            log.warning("[Tools] step limit reached session_id=%s max_steps=%s", session_id, max_steps)
            log_event(
                "tools",
                "step_limit_reached",
                session_id=session_id,
                mode="tools",
                request_id=request_id,
                level="warning",
                data={"max_steps": max_steps},
            )
            reply_text = STEP_LIMIT_FALLBACK

        session.history.append({"role": "assistant", "content": reply_text})
        return {
            "response": reply_text,
            "sessionId": session_id,
            "collectedData": dict(session.collected_data),
        }
