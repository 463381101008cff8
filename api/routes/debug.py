from __future__ import annotations

from flask import Blueprint, request

from utils.debug_events import clear_events, debug_enabled, list_events
from utils.json_helpers import jerror, jok


debug_bp = Blueprint("debug", __name__)


@debug_bp.get("/debug/events")
def debug_events():
    if not debug_enabled():
        return jerror("Debug console disabled", 404, "not_found")
    try:
        since = int(request.args.get("since") or 0)
    except ValueError:
        return jerror("since must be an integer", 400)
    category = (request.args.get("category") or "").strip() or None
    return jok({"events": list_events(since, category)})


@debug_bp.post("/debug/clear")
def debug_clear():
    if not debug_enabled():
        return jerror("Debug console disabled", 404, "not_found")
    return jok({"cleared": clear_events()})
