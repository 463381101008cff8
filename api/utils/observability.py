from __future__ import annotations

from typing import Any, Dict, Optional

from utils.debug_events import record_event


def log_event(
    category: str,
    message: str,
    *,
    session_id: Optional[str] = None,
    mode: Optional[str] = None,
    request_id: Optional[str] = None,
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Record a chat-turn event tagged with its session and interaction mode."""
    payload = dict(data or {})
    if session_id:
        payload["session_id"] = session_id
    if mode:
        payload["mode"] = mode
    return record_event(
        category,
        message,
        data=payload,
        request_id=request_id,
        level=level,
    )
