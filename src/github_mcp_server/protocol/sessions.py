"""
Session store for MCP clients.

Tracks, per session id, the queue of envelopes waiting for a subscriber and
the live push channel (if any). All operations on one session are
serialized by that session's lock; different sessions never contend.
Each channel write is bounded by ``push_timeout``; a channel that stalls past
it is closed and detached.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

import structlog

from .schemas import MCPResponse

logger = structlog.get_logger(__name__)

DEFAULT_PUSH_TIMEOUT_SECONDS = 5.0


class PushChannel(ABC):
    """Long-lived connection used for asynchronous delivery."""

    @abstractmethod
    async def send(self, envelope: MCPResponse) -> None:
        """
        Write one envelope to the connection.

        Raises:
            ConnectionError: If the peer is gone
        """

    def close(self) -> None:
        """Tear down the connection; called when a write has stalled."""


@dataclass
class Session:
    """Server-side state for one session id."""

    session_id: str
    pending: Deque[MCPResponse] = field(default_factory=deque)
    channel: Optional[PushChannel] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)


class SessionStore:
    """
    Process-wide mapping from session id to ``Session``.

    Sessions are created on first reference and live for the lifetime of
    the process.
    """

    def __init__(self, push_timeout: float = DEFAULT_PUSH_TIMEOUT_SECONDS) -> None:
        self._sessions: Dict[str, Session] = {}
        self.push_timeout = push_timeout

    def get_or_create(self, session_id: str) -> Session:
        """Return the session for ``session_id``, creating it if needed."""
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id=session_id)
            self._sessions[session_id] = session
            logger.debug("Created session", session_id=session_id)
        return session

    async def enqueue(self, session_id: str, envelope: MCPResponse) -> None:
        """
        Deliver to the live channel, or queue until a subscriber attaches.

        A failed live write detaches the channel and queues the envelope.
        """
        session = self.get_or_create(session_id)
        async with session.lock:
            if session.channel is not None:
                if await self._send(session, envelope):
                    return
            session.pending.append(envelope)
            logger.debug(
                "Queued envelope",
                session_id=session_id,
                pending=len(session.pending),
            )

    async def publish(self, session_id: str, envelope: MCPResponse) -> bool:
        """
        Push to the live channel if one is attached; never queues.

        Returns:
            Whether the envelope was written to a channel
        """
        session = self.get_or_create(session_id)
        async with session.lock:
            if session.channel is None:
                return False
            return await self._send(session, envelope)

    async def attach(self, session_id: str, channel: PushChannel) -> None:
        """
        Make ``channel`` the session's live channel and flush the queue.

        Replaces any previously attached channel. Queued envelopes are
        written in FIFO order and removed only once written.
        """
        session = self.get_or_create(session_id)
        async with session.lock:
            if session.channel is not None and session.channel is not channel:
                logger.info("Superseding push channel", session_id=session_id)
            session.channel = channel

            flushed = 0
            while session.pending:
                if not await self._send(session, session.pending[0]):
                    break
                session.pending.popleft()
                flushed += 1

            logger.info(
                "Attached push channel",
                session_id=session_id,
                flushed=flushed,
                pending=len(session.pending),
            )

    async def detach(self, session_id: str, channel: Optional[PushChannel] = None) -> None:
        """
        Clear the live channel; the queue is left untouched.

        When ``channel`` is given, the session is only detached if that
        channel is still the attached one.
        """
        session = self.get_or_create(session_id)
        async with session.lock:
            if channel is not None and session.channel is not channel:
                return
            session.channel = None
            logger.info("Detached push channel", session_id=session_id)

    def pending(self, session_id: str) -> List[MCPResponse]:
        session = self._sessions.get(session_id)
        return list(session.pending) if session else []

    def has_channel(self, session_id: str) -> bool:
        session = self._sessions.get(session_id)
        return session is not None and session.channel is not None

    def session_ids(self) -> List[str]:
        return list(self._sessions.keys())

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    async def _send(self, session: Session, envelope: MCPResponse) -> bool:
        """Write to the attached channel; drop the channel if it failed. Caller holds the lock."""
        channel = session.channel
        try:
            await asyncio.wait_for(channel.send(envelope), timeout=self.push_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                "Push channel write timed out, closing",
                session_id=session.session_id,
                timeout=self.push_timeout,
            )
            channel.close()
        except ConnectionError as e:
            logger.warning(
                "Push channel write failed, detaching",
                session_id=session.session_id,
                error=str(e),
            )
        if session.channel is channel:
            session.channel = None
        return False
