"""In-memory registry of download tokens.

A token is an unguessable capability for one generated file.  It stays
valid for the retention window and may be used any number of times during
that window.  Once expired, it is remembered for a while longer so that a
late download is answered with *expired* rather than *unknown*.
"""
from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict

from lmnp.artifacts import ArtifactKind
from lmnp.errors import TokenExpired, TokenNotFound
from lmnp.timers import start_timer

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DownloadToken:
    token: str
    file_path: str
    kind: ArtifactKind
    expires_at: datetime


class DownloadTokenRegistry:
    def __init__(
        self,
        retention: timedelta,
        *,
        expired_ttl: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = utcnow,
        scheduler: Callable = start_timer,
    ):
        self.retention = retention
        self.expired_ttl = expired_ttl
        self._clock = clock
        self._schedule = scheduler
        self._lock = threading.Lock()
        self._active: Dict[str, DownloadToken] = {}
        self._expired: Dict[str, datetime] = {}

    def register(self, file_path: str, kind: ArtifactKind) -> str:
        """Store *file_path* under a fresh token and schedule its expiry."""
        with self._lock:
            token = secrets.token_urlsafe(TOKEN_BYTES)
            while token in self._active or token in self._expired:
                token = secrets.token_urlsafe(TOKEN_BYTES)
            now = self._clock()
            self._active[token] = DownloadToken(token, file_path, kind, now + self.retention)
            self._forget_old(now)
        self._schedule(self.retention.total_seconds(), self.expire, token)
        logger.info("Registered %s token %s...", kind.value, token[:6])
        return token

    def lookup(self, token: str) -> DownloadToken:
        """Return the record for *token*.

        Raises :class:`TokenExpired` when the token existed but its window is
        over, :class:`TokenNotFound` otherwise.
        """
        with self._lock:
            now = self._clock()
            record = self._active.get(token)
            if record is not None:
                if now <= record.expires_at:
                    return record
                self._retire(token, record.expires_at)
            if token in self._expired:
                raise TokenExpired()
            raise TokenNotFound()

    def expire(self, token: str) -> None:
        """Remove *token* from the active set; no-op if already gone."""
        with self._lock:
            record = self._active.get(token)
            if record is None:
                return
            self._retire(token, min(record.expires_at, self._clock()))
            self._forget_old(self._clock())
        logger.info("Expired token %s...", token[:6])

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)

    # lock held by callers

    def _retire(self, token: str, expired_at: datetime) -> None:
        del self._active[token]
        self._expired[token] = expired_at

    def _forget_old(self, now: datetime) -> None:
        horizon = now - self.expired_ttl
        for token in [t for t, at in self._expired.items() if at < horizon]:
            del self._expired[token]
