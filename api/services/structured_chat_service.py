from __future__ import annotations

from typing import Optional

from clients.openai_client import OpenAIGateway
from config import log
from schemas.chat import TurnResponse
from services.mutation_protocol import parse_mutation
from services.questionnaire import QuestionnaireSession
from storage.session_store import SessionStore
from utils.errors import MalformedMutationCommand, ServiceError
from utils.observability import log_event


# ============================================================
# Fixed replies
# ============================================================

GREETING_TEXT = "Hello! I'm here to collect some financial information."
ACK_TEXT = "Got it!"
COMPLETE_TEXT = (
    "Great! I've collected all your information. "
    "You can now ask me questions like 'What is my net worth?' or 'Show me my information'."
)
MALFORMED_MUTATION_TEXT = (
    "Sorry, I couldn't apply that change. "
    "Could you tell me again which field to change and the new value?"
)
EMPTY_REPLY_TEXT = "I apologize, I encountered an issue."

START_MESSAGE = "start"


def _is_initializing(message: str, is_initial: bool) -> bool:
    return bool(is_initial) or message == START_MESSAGE


def _result(session_id: str, session: QuestionnaireSession, response: str) -> TurnResponse:
    out: TurnResponse = {"response": response, "sessionId": session_id}
    if session.is_complete():
        out["collectedData"] = dict(session.collected_data)
    return out


def _greet(session: QuestionnaireSession) -> str:
    greeting = f"{GREETING_TEXT} {session.current_question()}"
    session.append_turn("assistant", greeting)
    return greeting


def _collect(session: QuestionnaireSession, message: str) -> str:
    session.record_answer(message)
    if session.is_complete():
        reply = COMPLETE_TEXT
    else:
        reply = f"{ACK_TEXT} {session.current_question()}"
    session.append_turn("assistant", reply)
    return reply


def _answer_with_model(
    session: QuestionnaireSession,
    gateway: OpenAIGateway,
    session_id: str,
    request_id: Optional[str],
) -> str:
    reply = gateway.invoke(session.build_instruction(), session.history, request_id=request_id)
    text = reply.text or EMPTY_REPLY_TEXT

    try:
        command = parse_mutation(text)
    except MalformedMutationCommand as e:
        log.warning("[Structured] malformed mutation session_id=%s raw=%r", session_id, e.raw)
        log_event(
            "structured",
            "malformed_mutation",
            session_id=session_id,
            mode="structured",
            request_id=request_id,
            level="warning",
            data={"raw": e.raw[:200]},
        )
        command = None
        text = MALFORMED_MUTATION_TEXT

    if command is not None:
        session.update_field(command.field, command.value)
        text = command.confirmation()
        log.info("[Structured] mutation action=%s field=%s session_id=%s", command.action, command.field, session_id)
        log_event(
            "structured",
            f"mutation {command.action}",
            session_id=session_id,
            mode="structured",
            request_id=request_id,
            data={"field": command.field},
        )

    session.append_turn("assistant", text)
    return text


def handle_structured_turn(
    *,
    store: SessionStore[QuestionnaireSession],
    gateway: OpenAIGateway,
    session_id: str,
    message: str,
    is_initial: bool = False,
    request_id: Optional[str] = None,
) -> TurnResponse:
    """
    Run one structured-mode turn.

    While the questionnaire is incomplete the reply is produced locally
    (greeting, "Got it! <next question>", or the completion message).
    Afterwards every turn goes to the model, whose reply may carry an
    UPDATE_DATA / ADD_DATA command.
    """
    message = message or ""
    session = store.get_or_create(session_id)

    with session.lock:
        if _is_initializing(message, is_initial):
            session.reset()
            log.info("[Structured] init session_id=%s", session_id)
            return _result(session_id, session, _greet(session))

        if not session.history:
            return _result(session_id, session, _greet(session))

        if not message.strip():
            raise ServiceError("Missing message", 400, "missing_message")

        session.append_turn("user", message)

        if not session.is_complete():
            reply = _collect(session, message)
            log.info(
                "[Structured] answer session_id=%s cursor=%s/%s",
                session_id,
                session.cursor,
                len(session.catalog),
            )
            log_event(
                "structured",
                "answer_recorded",
                session_id=session_id,
                mode="structured",
                request_id=request_id,
                data={"cursor": session.cursor, "complete": session.is_complete()},
            )
            return _result(session_id, session, reply)

        reply = _answer_with_model(session, gateway, session_id, request_id)
        return _result(session_id, session, reply)
