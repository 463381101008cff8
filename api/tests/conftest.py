import os
import sys
from typing import Any, Dict, List, Optional

import pytest

# Ensure api/ is on sys.path so imports like "services.*" work in tests.
API_DIR = os.path.dirname(os.path.dirname(__file__))
if API_DIR not in sys.path:
    sys.path.insert(0, API_DIR)

from clients.openai_client import STOP_TEXT, STOP_TOOL_REQUEST, GatewayReply, ToolCall  # noqa: E402


class ScriptedGateway:
    """Stands in for OpenAIGateway; returns (or raises) scripted replies in order."""

    online = True

    def __init__(self, replies: List[Any]):
        self._replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    def invoke(self, system_instruction, history, tools=None, request_id=None):
        self.calls.append({
            "system": system_instruction,
            "history": [dict(m) for m in history],
            "tools": tools,
        })
        if not self._replies:
            raise AssertionError("ScriptedGateway ran out of replies")
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def text_reply(text: Optional[str]) -> GatewayReply:
    return GatewayReply(stop_reason=STOP_TEXT, text=text)


def tool_reply(name: str, args: Dict[str, Any], call_id: str = "call_1") -> GatewayReply:
    return GatewayReply(
        stop_reason=STOP_TOOL_REQUEST,
        tool_calls=[ToolCall(id=call_id, name=name, arguments=args)],
    )


@pytest.fixture
def scripted_gateway():
    return ScriptedGateway


@pytest.fixture
def replies():
    class _Replies:
        text = staticmethod(text_reply)
        tool = staticmethod(tool_reply)

    return _Replies
