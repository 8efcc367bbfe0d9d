"""Session registry - live relay connections keyed by session id."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Protocol

from dasher_automate.models.messages import now_ms
from dasher_automate.models.session import Session, SessionStatus

log = logging.getLogger(__name__)


class Socket(Protocol):
    """The part of a websocket the registry needs."""

    @property
    def closed(self) -> bool: ...

    async def send_str(self, data: str) -> None: ...

    async def close(self) -> bool: ...


class Connection:
    """Ordered outbound channel for one live socket.

    Frames are queued and written by a single writer task, so a session sees
    them in enqueue order. close() cancels the writer and discards whatever is
    still queued; a frame is written whole or not at all.
    """

    def __init__(self, session_id: str, socket: Socket) -> None:
        self.session_id = session_id
        self.socket = socket
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._closed = False
        self._writer = asyncio.create_task(self._drain())

    @property
    def open(self) -> bool:
        return not self._closed and not self.socket.closed

    def send(self, text: str) -> bool:
        if not self.open:
            return False
        self._queue.put_nowait(text)
        return True

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def _drain(self) -> None:
        while True:
            text = await self._queue.get()
            try:
                await self.socket.send_str(text)
            except (ConnectionError, RuntimeError) as exc:
                log.warning("Send to %s failed: %s", self.session_id, exc)
                self._closed = True
                return

    async def close(self) -> None:
        self._closed = True
        dropped = self._queue.qsize()
        self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass
        if dropped:
            log.debug("Discarded %d pending frame(s) for %s", dropped, self.session_id)
        if not self.socket.closed:
            await self.socket.close()


class SessionRegistry:
    """Maps session id -> live Connection plus a retained Session record.

    Records are frozen and replaced with one dict assignment per change, so a
    concurrent reader never observes a half-updated session. At most one live
    connection exists per session id.
    """

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._sessions: dict[str, Session] = {}

    # ── Mutation ──────────────────────────────────────────

    async def register(self, session_id: str, socket: Socket) -> Connection:
        """Register a new live socket, closing any connection it supersedes."""
        self._sessions[session_id] = Session(
            session_id=session_id,
            status=SessionStatus.CONNECTING.value,
            connected=False,
            last_seen_at=now_ms(),
        )
        # Loop: another connect for this id may land while we await close().
        while (previous := self._connections.pop(session_id, None)) is not None:
            log.info("Session %s superseded by a new connection", session_id)
            await previous.close()

        conn = Connection(session_id, socket)
        self._connections[session_id] = conn
        self._sessions[session_id] = Session(
            session_id=session_id,
            status=SessionStatus.CONNECTED.value,
            connected=True,
            last_seen_at=now_ms(),
        )
        return conn

    async def unregister(self, session_id: str, conn: Connection) -> bool:
        """Drop ``conn`` if it is still the live connection for the session.

        A superseded connection closing late must not evict its successor.
        Returns True if the session went offline.
        """
        await conn.close()
        if self._connections.get(session_id) is not conn:
            return False
        del self._connections[session_id]
        self._sessions[session_id] = Session(
            session_id=session_id,
            status=SessionStatus.DISCONNECTED.value,
            connected=False,
            last_seen_at=now_ms(),
        )
        return True

    def touch(self, session_id: str, status: str | None = None) -> None:
        """Refresh last_seen_at and optionally record a reported status."""
        current = self._sessions.get(session_id)
        if current is None or not current.connected:
            return
        self._sessions[session_id] = replace(
            current,
            status=status if status is not None else current.status,
            last_seen_at=now_ms(),
        )

    async def close_all(self) -> None:
        for session_id, conn in list(self._connections.items()):
            await self.unregister(session_id, conn)

    # ── Queries ───────────────────────────────────────────

    def get(self, session_id: str) -> Connection | None:
        conn = self._connections.get(session_id)
        if conn is None or not conn.open:
            return None
        return conn

    def is_connected(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def send(self, session_id: str, text: str) -> bool:
        conn = self.get(session_id)
        if conn is None:
            return False
        return conn.send(text)

    def session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())
