import threading

from services.catalog import FULL_CATALOG, MINIMAL_CATALOG
from services.questionnaire import QuestionnaireSession
from services.structured_chat_service import handle_structured_turn
from storage.session_store import SessionStore


def test_get_or_create_returns_same_session():
    store = SessionStore(lambda: QuestionnaireSession(MINIMAL_CATALOG))

    first = store.get_or_create("s1")
    again = store.get_or_create("s1")

    assert first is again
    assert store.get("missing") is None
    assert "s1" in store
    assert len(store) == 1
    assert store.session_ids() == ["s1"]


def test_new_session_starts_at_cursor_zero():
    store = SessionStore(lambda: QuestionnaireSession(FULL_CATALOG))
    session = store.get_or_create("fresh")
    assert session.cursor == 0
    assert session.collected_data == {}
    assert session.history == []


def test_concurrent_answers_on_one_session_are_serialised(scripted_gateway):
    store = SessionStore(lambda: QuestionnaireSession(FULL_CATALOG))
    gateway = scripted_gateway([])
    handle_structured_turn(store=store, gateway=gateway, session_id="s1", message="", is_initial=True)

    n = 8
    barrier = threading.Barrier(n)

    def _answer(i):
        barrier.wait()
        handle_structured_turn(store=store, gateway=gateway, session_id="s1", message=f"answer-{i}")

    threads = [threading.Thread(target=_answer, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    session = store.get("s1")
    assert session.cursor == n
    assert len(session.collected_data) == n
    assert sorted(session.collected_data.values()) == sorted(f"answer-{i}" for i in range(n))
    # Each user turn is immediately followed by its own reply.
    roles = [m["role"] for m in session.history[1:]]
    assert roles == ["user", "assistant"] * n
