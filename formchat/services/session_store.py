"""In-memory store of server-side conversation sessions with idle expiry."""

import time

from formchat.core.conversation import ConversationSession
from formchat.core.logging import get_logger

logger = get_logger(__name__)


class SessionStore:
    """Sessions keyed by id; a session idle longer than ``ttl_seconds`` is dropped."""

    def __init__(self, ttl_seconds: int = 3600):
        self.ttl_seconds = ttl_seconds
        self._sessions: dict[str, tuple[ConversationSession, float]] = {}

    def add(self, session: ConversationSession) -> None:
        self.purge_expired()
        self._sessions[session.session_id] = (session, time.monotonic())

    def get(self, session_id: str) -> ConversationSession | None:
        """Return the session and refresh its idle timer, or None if unknown/expired."""
        entry = self._sessions.get(session_id)
        if entry is None:
            return None

        session, last_seen = entry
        now = time.monotonic()
        if now - last_seen > self.ttl_seconds:
            del self._sessions[session_id]
            logger.info(f"Session {session_id} expired")
            return None

        self._sessions[session_id] = (session, now)
        return session

    def remove(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def purge_expired(self) -> int:
        now = time.monotonic()
        expired = [
            sid for sid, (_, last_seen) in self._sessions.items()
            if now - last_seen > self.ttl_seconds
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Purged {len(expired)} expired sessions")
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
