from __future__ import annotations

from typing import Dict, TypedDict


class StructuredTurnRequest(TypedDict, total=False):
    message: str
    sessionId: str
    isInitial: bool


class ToolTurnRequest(TypedDict, total=False):
    message: str
    sessionId: str


class TurnResponse(TypedDict, total=False):
    response: str
    sessionId: str
    collectedData: Dict[str, str]


class ResetRequest(TypedDict, total=False):
    sessionId: str
    mode: str
