from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI

from config import OPENAI_API_KEY, OPENAI_MAX_TOKENS, OPENAI_MODEL, OPENAI_TIMEOUT_SECS, log
from utils.debug_events import debug_enabled, record_event
from utils.errors import GatewayError

STOP_TEXT = "text"
STOP_TOOL_REQUEST = "tool_request"


def build_client() -> Optional[OpenAI]:
    """OpenAI client from env config, or None when no key is set (offline mode)."""
    if not OPENAI_API_KEY:
        return None
    kwargs: Dict[str, Any] = {"api_key": OPENAI_API_KEY, "max_retries": 0}
    if OPENAI_TIMEOUT_SECS:
        kwargs["timeout"] = OPENAI_TIMEOUT_SECS
    return OpenAI(**kwargs)


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: Dict[str, Any]
    raw_arguments: str = ""


@dataclass
class GatewayReply:
    stop_reason: str
    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)

    @property
    def wants_tools(self) -> bool:
        return self.stop_reason == STOP_TOOL_REQUEST

    def assistant_turn(self) -> Dict[str, Any]:
        """The reply as an OpenAI chat message, for appending to history."""
        turn: Dict[str, Any] = {"role": "assistant", "content": self.text or ""}
        if self.tool_calls:
            turn["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.raw_arguments or json.dumps(call.arguments)},
                }
                for call in self.tool_calls
            ]
        return turn


def _parse_args(raw: str) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _tool_calls_from_msg(msg: Any) -> List[ToolCall]:
    raw_calls = msg.get("tool_calls") if isinstance(msg, dict) else getattr(msg, "tool_calls", None)
    calls: List[ToolCall] = []
    for call in raw_calls or []:
        if isinstance(call, dict):
            fn = call.get("function") or {}
            call_id, name, raw_args = call.get("id") or "", fn.get("name") or "", fn.get("arguments") or ""
        else:
            call_id, name, raw_args = call.id, call.function.name, call.function.arguments or ""
        calls.append(ToolCall(id=call_id, name=name, arguments=_parse_args(raw_args), raw_arguments=raw_args))
    return calls


def _offline_reply(history: Sequence[Dict[str, Any]]) -> GatewayReply:
    # Dev/offline fallback so the server still works end-to-end without a key
    last_user = next(
        (str(m.get("content") or "") for m in reversed(history) if m.get("role") == "user" and isinstance(m.get("content"), str)),
        "",
    )
    return GatewayReply(stop_reason=STOP_TEXT, text=f"(offline) {last_user[-400:]}".strip())


class OpenAIGateway:
    """
    Request/response wrapper around chat completions.

    ``invoke`` takes a system instruction, the conversation history (OpenAI
    chat format) and optional tool declarations, and returns either text or
    a tool request. There are no retries and no rollback: provider failures
    surface as GatewayError.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        model: str = OPENAI_MODEL,
        max_tokens: int = OPENAI_MAX_TOKENS,
    ) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_env(cls) -> "OpenAIGateway":
        return cls(client=build_client())

    @property
    def online(self) -> bool:
        return self.client is not None

    def invoke(
        self,
        system_instruction: str,
        history: Sequence[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None,
    ) -> GatewayReply:
        if not self.client:
            return _offline_reply(history)

        messages: List[Dict[str, Any]] = [{"role": "system", "content": system_instruction}]
        messages.extend(history)
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        if debug_enabled():
            record_event(
                "openai",
                "chat.completions.create",
                data={"model": self.model, "messages": len(messages), "tools": len(tools or [])},
                request_id=request_id,
            )
        try:
            resp = self.client.chat.completions.create(**kwargs)
        except Exception as e:
            log.exception("[Gateway] chat.completions.create failed model=%s", self.model)
            raise GatewayError(str(e)) from e

        msg = resp.choices[0].message
        content = msg.get("content") if isinstance(msg, dict) else getattr(msg, "content", None)
        tool_calls = _tool_calls_from_msg(msg)
        if tool_calls:
            log.info("[Gateway] tool_request count=%s", len(tool_calls))
            return GatewayReply(stop_reason=STOP_TOOL_REQUEST, text=content or None, tool_calls=tool_calls)
        return GatewayReply(stop_reason=STOP_TEXT, text=(content or "").strip() or None)
