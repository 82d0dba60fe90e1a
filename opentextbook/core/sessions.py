"""In-process session store.

Sessions are keyed by an opaque random id and carry an absolute expiry fixed
at creation time. Besides the authenticated user id a session holds the
pending flash messages, which are handed out exactly once.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple
import logging
import secrets
import threading

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionData:
    id: str
    expires_at: datetime
    user_id: Optional[int] = None
    flashes: List[Tuple[str, str]] = field(default_factory=list)


class SessionStore:
    def __init__(
        self,
        max_age_seconds: int = 86400,
        check_period_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.max_age = timedelta(seconds=max_age_seconds)
        self.check_period = timedelta(seconds=check_period_seconds or max_age_seconds)
        self._clock = clock
        self._sessions: Dict[str, SessionData] = {}
        self._lock = threading.Lock()
        self._last_prune = clock()

    def now(self) -> datetime:
        return self._clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, user_id: Optional[int] = None) -> SessionData:
        now = self._clock()
        session = SessionData(id=secrets.token_urlsafe(32), expires_at=now + self.max_age, user_id=user_id)
        with self._lock:
            self._maybe_prune(now)
            self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[SessionData]:
        now = self._clock()
        with self._lock:
            self._maybe_prune(now)
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if session.expires_at <= now:
                del self._sessions[session_id]
                return None
            return session

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def add_flash(self, session_id: str, category: str, message: str) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                session.flashes.append((category, message))

    def pop_flashes(self, session_id: str) -> List[Tuple[str, str]]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return []
            flashes, session.flashes = session.flashes, []
            return flashes

    def prune(self) -> int:
        with self._lock:
            return self._prune(self._clock())

    def _maybe_prune(self, now: datetime) -> None:
        if now - self._last_prune >= self.check_period:
            self._prune(now)

    def _prune(self, now: datetime) -> int:
        expired = [sid for sid, s in self._sessions.items() if s.expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        self._last_prune = now
        if expired:
            logger.debug("Pruned %d expired sessions", len(expired))
        return len(expired)
