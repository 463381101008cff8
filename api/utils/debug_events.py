from __future__ import annotations

import itertools
import time
from collections import deque
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

import config

_LOCK = Lock()
_EVENTS: Deque[Dict[str, Any]] = deque(maxlen=config.DEBUG_EVENTS_MAX)
_IDS = itertools.count(1)


def debug_enabled() -> bool:
    return bool(config.DEBUG_CONSOLE_ENABLED)


def record_event(
    category: str,
    message: str,
    *,
    data: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
    level: str = "info",
) -> Dict[str, Any]:
    """Append an event to the in-memory ring buffer (no-op unless the debug console is on)."""
    if not debug_enabled():
        return {}
    with _LOCK:
        event = {
            "id": next(_IDS),
            "ts": time.time(),
            "level": level,
            "category": category,
            "message": message,
            "request_id": request_id or "",
            "data": data or {},
        }
        _EVENTS.append(event)
    return event


def list_events(since_id: int = 0, category: Optional[str] = None) -> List[Dict[str, Any]]:
    with _LOCK:
        events = list(_EVENTS)
    if since_id > 0:
        events = [e for e in events if e["id"] > since_id]
    if category:
        events = [e for e in events if e["category"] == category]
    return events


def clear_events() -> int:
    with _LOCK:
        n = len(_EVENTS)
        _EVENTS.clear()
    return n
