"""Server-side session storage.

A session maps an opaque cookie token to the identity captured at login.
``InMemorySessionStore`` is a single-process store; ``DatabaseSessionStore``
keeps sessions in the ``sessions`` table so several app instances can share
them.
"""
import logging
import threading
from abc import ABC, abstractmethod
import time
from typing import Callable, Dict, NamedTuple, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session, sessionmaker

from . import models
from .auth import new_session_token

logger = logging.getLogger(__name__)


class SessionData(NamedTuple):
    user_id: int
    email: str
    is_admin: bool
    expires_at: float

    def expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


class SessionStore(ABC):
    """Interface shared by the session backends."""

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def create(self, user_id: int, email: str, is_admin: bool) -> str:
        token = new_session_token()
        data = SessionData(
            user_id=user_id,
            email=email,
            is_admin=bool(is_admin),
            expires_at=self.clock() + self.ttl_seconds,
        )
        self.set(token, data)
        return token

    @abstractmethod
    def get(self, token: str) -> Optional[SessionData]:
        raise NotImplementedError

    @abstractmethod
    def set(self, token: str, data: SessionData) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, token: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def expire(self) -> int:
        """Drop every expired session and return how many were removed."""
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.time):
        super().__init__(ttl_seconds, clock)
        self._sessions: Dict[str, SessionData] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, token: str) -> Optional[SessionData]:
        with self._lock:
            data = self._sessions.get(token)
            if data is None:
                return None
            if data.expired(self.clock()):
                del self._sessions[token]
                return None
            return data

    def set(self, token: str, data: SessionData) -> None:
        with self._lock:
            self._sessions[token] = data

    def delete(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def expire(self) -> int:
        now = self.clock()
        with self._lock:
            stale = [t for t, d in self._sessions.items() if d.expired(now)]
            for token in stale:
                del self._sessions[token]
        if stale:
            logger.info("Expired %d in-memory sessions", len(stale))
        return len(stale)


class DatabaseSessionStore(SessionStore):
    def __init__(
        self,
        session_factory: sessionmaker,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(ttl_seconds, clock)
        self.session_factory = session_factory

    def _open(self) -> Session:
        return self.session_factory()

    def get(self, token: str) -> Optional[SessionData]:
        with self._open() as db:
            row = db.get(models.SessionRecord, token)
            if row is None:
                return None
            data = SessionData(row.user_id, row.email, bool(row.is_admin), row.expires_at)
            if data.expired(self.clock()):
                db.delete(row)
                db.commit()
                return None
            return data

    def set(self, token: str, data: SessionData) -> None:
        with self._open() as db:
            db.merge(
                models.SessionRecord(
                    token=token,
                    user_id=data.user_id,
                    email=data.email,
                    is_admin=data.is_admin,
                    expires_at=data.expires_at,
                )
            )
            db.commit()

    def delete(self, token: str) -> bool:
        with self._open() as db:
            result = db.execute(delete(models.SessionRecord).where(models.SessionRecord.token == token))
            removed = result.rowcount
            db.commit()
        return removed > 0

    def expire(self) -> int:
        with self._open() as db:
            result = db.execute(
                delete(models.SessionRecord).where(models.SessionRecord.expires_at <= self.clock())
            )
            removed = result.rowcount
            db.commit()
        if removed:
            logger.info("Expired %d stored sessions", removed)
        return removed
