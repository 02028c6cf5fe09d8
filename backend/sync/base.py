from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
from urllib.parse import urlsplit, urlunsplit

from core.state import GameState

from .messages import GameMessage, state_message

logger = logging.getLogger(__name__)

MessageHandler = Callable[[GameMessage], Awaitable[None]]


class SyncError(RuntimeError):
    """A message could not be handed to the transport."""


@dataclass(frozen=True, slots=True)
class LinkedGame:
    """What a shared page link points at."""

    game_id: Optional[str]
    state: Optional[GameState] = None


class Subscription:
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"

    def __init__(self, game_id: Optional[str], on_cancel: Optional[Callable[[], None]] = None) -> None:
        self.game_id = game_id
        self.status = self.CONNECTING
        self.task: Optional[asyncio.Task[None]] = None
        self._on_cancel = on_cancel

    @property
    def closed(self) -> bool:
        return self.status == self.CLOSED

    def cancel(self) -> None:
        if self.closed:
            return
        self.status = self.CLOSED
        if self.task is not None and not self.task.done():
            self.task.cancel()
        if self._on_cancel is not None:
            self._on_cancel()


def with_fragment(page_url: str, fragment: str) -> str:
    scheme, netloc, path, query, _ = urlsplit(page_url)
    return urlunsplit((scheme, netloc, path, query, fragment))


def fragment_of(url: str) -> str:
    return urlsplit(url).fragment


class SyncStrategy(ABC):
    """Carries game snapshots (and, for relays, join and chat messages)
    between the two participants of one game.
    """

    # join announcements and chat lines travel through the transport
    relays_messages = True
    # continuation plies are transmitted, not just completed turns
    publishes_partial_turns = False

    def __init__(self, page_url: str) -> None:
        self.page_url = page_url
        self._deliveries: set[asyncio.Task[None]] = set()

    @abstractmethod
    async def send(self, game_id: Optional[str], message: GameMessage) -> None:
        """Transmit ``message``; raises ``SyncError`` when it cannot."""

    @abstractmethod
    async def subscribe(self, game_id: Optional[str], on_receive: MessageHandler) -> Subscription:
        ...

    async def publish(self, game_id: Optional[str], state: GameState) -> None:
        await self.send(game_id, state_message(game_id, state))

    def share_link(self, game_id: Optional[str], state: Optional[GameState]) -> str:
        return with_fragment(self.page_url, game_id or "")

    def read_link(self, url: str) -> Optional[LinkedGame]:
        game_id = fragment_of(url).strip()
        if not game_id:
            return None
        return LinkedGame(game_id)

    async def open_link(self, url: str) -> Optional[LinkedGame]:
        return self.read_link(url)

    def _deliver(self, handler: MessageHandler, message: GameMessage) -> None:
        """Schedule a local delivery instead of running it inside the sender."""
        task = asyncio.ensure_future(handler(message))
        self._deliveries.add(task)
        task.add_done_callback(self._delivery_done)

    def _delivery_done(self, task: asyncio.Task[None]) -> None:
        self._deliveries.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Message handler failed", exc_info=task.exception())

    async def flush(self) -> None:
        while self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    async def reset(self) -> None:
        """Drop local deliveries that were scheduled but not handled yet."""
        pending = list(self._deliveries)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        await self.reset()
