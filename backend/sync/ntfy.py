"""Push-topic transport backed by an ntfy-compatible notification service.

Publishing is a plain ``POST`` of the JSON message to the game's topic.
Subscribing keeps a streaming ``GET {topic}/json`` open; the service writes
one JSON event envelope per line and only ``message`` events carry payloads.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import httpx

from .base import MessageHandler, Subscription, SyncError, SyncStrategy
from .messages import GameMessage, dump_message, parse_message

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://ntfy.sh"
TOPIC_PREFIX = "checkers-game-"
RETRY_DELAY = 3.0


def topic_for(game_id: str) -> str:
    return f"{TOPIC_PREFIX}{game_id}"


def read_event(line: str) -> tuple[Optional[str], Optional[GameMessage]]:
    """Unwrap one event envelope into its message id and message.

    Both are ``None`` for non-message events; a message event that cannot be
    parsed keeps its id so the stream can resume after it.
    """
    event_id: Optional[str] = None
    try:
        envelope = json.loads(line)
        if not isinstance(envelope, dict):
            raise ValueError("event envelope is not an object")
        if envelope.get("event") != "message":
            return None, None
        if isinstance(envelope.get("id"), str):
            event_id = envelope["id"]
        return event_id, parse_message(envelope["message"])
    except (ValueError, KeyError, TypeError, RecursionError) as exc:
        logger.warning("Skipping malformed frame %r: %s", line[:200], exc)
        return event_id, None


def decode_event(line: str) -> Optional[GameMessage]:
    """Unwrap one event envelope; ``None`` for non-message or malformed lines."""
    return read_event(line)[1]


class NtfyMessenger(SyncStrategy):
    relays_messages = True
    publishes_partial_turns = False

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        page_url: str = "http://localhost:8000/",
        retry_delay: float = RETRY_DELAY,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(page_url)
        self.base_url = base_url.rstrip("/")
        self.retry_delay = retry_delay
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))

    def _require_game(self, game_id: Optional[str]) -> str:
        if not game_id:
            raise SyncError("A game id is required to reach a topic.")
        return game_id

    async def send(self, game_id: Optional[str], message: GameMessage) -> None:
        topic = topic_for(self._require_game(game_id))
        try:
            response = await self.client.post(f"{self.base_url}/{topic}", content=dump_message(message))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send %s to %s: %s", message.type, topic, exc)
            raise SyncError(f"Could not send {message.type} message.") from exc

    async def subscribe(self, game_id: Optional[str], on_receive: MessageHandler) -> Subscription:
        game_id = self._require_game(game_id)
        subscription = Subscription(game_id)
        subscription.task = asyncio.create_task(self._listen(subscription, on_receive))
        logger.info("Subscribed to %s", topic_for(game_id))
        return subscription

    async def _listen(self, subscription: Subscription, on_receive: MessageHandler) -> None:
        url = f"{self.base_url}/{topic_for(subscription.game_id or '')}/json"
        last_id: Optional[str] = None
        while not subscription.closed:
            # resume after the last message seen
            params = {"since": last_id} if last_id else None
            try:
                async with self.client.stream("GET", url, params=params) as response:
                    response.raise_for_status()
                    subscription.status = Subscription.CONNECTED
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        event_id, message = read_event(line)
                        if event_id is not None:
                            last_id = event_id
                        if message is not None:
                            await on_receive(message)
                logger.info("Stream for %s ended, reconnecting", url)
            except httpx.HTTPError as exc:
                logger.warning("Connection error on %s, retrying in %.1fs: %s", url, self.retry_delay, exc)
            if subscription.closed:
                break
            subscription.status = Subscription.RECONNECTING
            await asyncio.sleep(self.retry_delay)

    async def aclose(self) -> None:
        await super().aclose()
        if self._owns_client:
            await self.client.aclose()
