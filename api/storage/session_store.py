from __future__ import annotations

from threading import Lock
from typing import Callable, Dict, Generic, List, Optional, TypeVar

from config import log

S = TypeVar("S")


class SessionStore(Generic[S]):
    """
    In-memory session map keyed by session id.

    Sessions live for the lifetime of the process; nothing is evicted.
    The store only guards its own map. Per-session serialisation is the
    session object's job (see ``session.lock``).
    """

    def __init__(self, factory: Callable[[], S], name: str = "sessions") -> None:
        self._factory = factory
        self._name = name
        self._sessions: Dict[str, S] = {}
        self._lock = Lock()

    def get(self, session_id: str) -> Optional[S]:
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> S:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = self._factory()
                self._sessions[session_id] = session
                log.info("[SessionStore] created store=%s session_id=%s", self._name, session_id)
            return session

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
