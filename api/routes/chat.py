from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, g, request

from config import log
from schemas.chat import ResetRequest, StructuredTurnRequest, ToolTurnRequest
from services.catalog import catalog_keys
from services.structured_chat_service import handle_structured_turn
from services.tool_chat_service import run_tool_turn
from utils.errors import ServiceError
from utils.json_helpers import jerror, jok

chat_bp = Blueprint("chat", __name__)

MODES = ("structured", "tools")


def _body() -> Dict[str, Any]:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def _session_id(data: Dict[str, Any]) -> str:
    sid = data.get("sessionId")
    if isinstance(sid, str) and sid.strip():
        return sid.strip()
    return str(uuid.uuid4())


def _store(mode: str):
    key = "STRUCTURED_STORE" if mode == "structured" else "TOOL_STORE"
    return current_app.config[key]


def _request_id() -> Optional[str]:
    return getattr(g, "request_id", None)


@chat_bp.post("/chat/structured")
def chat_structured():
    """
    Body:
      { message: "...", sessionId: "...", isInitial?: bool }

    Returns:
      jok({ response, sessionId, collectedData? })
    """
    data: StructuredTurnRequest = _body()
    session_id = _session_id(data)
    message = data.get("message")
    log.info("[Structured] turn session_id=%s initial=%s", session_id, bool(data.get("isInitial")))

    try:
        out = handle_structured_turn(
            store=_store("structured"),
            gateway=current_app.config["LLM_GATEWAY"],
            session_id=session_id,
            message=message if isinstance(message, str) else "",
            is_initial=data.get("isInitial") is True,
            request_id=_request_id(),
        )
        return jok(out)
    except ServiceError as e:
        return jerror(e.message, e.status, e.code)
    except Exception as e:
        log.exception("chat_structured failed")
        return jerror(str(e), 500, "internal_error")


@chat_bp.post("/chat/tools")
def chat_tools():
    """
    Body:
      { message: "...", sessionId: "..." }

    Returns:
      jok({ response, sessionId, collectedData })
    """
    data: ToolTurnRequest = _body()
    session_id = _session_id(data)
    message = data.get("message")
    log.info("[Tools] turn session_id=%s", session_id)

    try:
        out = run_tool_turn(
            store=_store("tools"),
            gateway=current_app.config["LLM_GATEWAY"],
            session_id=session_id,
            message=message if isinstance(message, str) else "",
            field_keys=catalog_keys(current_app.config["QUESTIONNAIRE_CATALOG"]),
            max_steps=current_app.config["MAX_TOOL_STEPS"],
            request_id=_request_id(),
        )
        return jok(out)
    except ServiceError as e:
        return jerror(e.message, e.status, e.code)
    except Exception as e:
        log.exception("chat_tools failed")
        return jerror(str(e), 500, "internal_error")


@chat_bp.get("/chat/session/<mode>/<session_id>")
def chat_session_state(mode: str, session_id: str):
    """Debug endpoint to inspect a session."""
    if mode not in MODES:
        return jerror(f"Unknown mode: {mode}", 400, "invalid_mode")
    session = _store(mode).get(session_id)
    if session is None:
        return jerror("Session not found", 404, "session_not_found")
    with session.lock:
        return jok({"sessionId": session_id, "mode": mode, "state": session.snapshot()})


@chat_bp.post("/chat/session/reset")
def chat_session_reset():
    """
    Body:
      { sessionId: "...", mode?: "structured" | "tools" }
    """
    data: ResetRequest = _body()
    session_id = (data.get("sessionId") or "").strip() if isinstance(data.get("sessionId"), str) else ""
    mode = data.get("mode") or "structured"
    if not session_id:
        return jerror("Missing sessionId", 400, "missing_session_id")
    if mode not in MODES:
        return jerror(f"Unknown mode: {mode}", 400, "invalid_mode")

    session = _store(mode).get_or_create(session_id)
    with session.lock:
        session.reset()
        log.info("[Chat] reset mode=%s session_id=%s", mode, session_id)
        return jok({"sessionId": session_id, "mode": mode, "state": session.snapshot()})
