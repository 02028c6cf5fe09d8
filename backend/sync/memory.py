from __future__ import annotations

from collections import defaultdict
from typing import Optional

from .base import MessageHandler, Subscription, SyncError, SyncStrategy
from .messages import GameMessage, dump_message, parse_message


class MemoryRelay:
    """In-process stand-in for the notification service.

    Every sent message is serialized and parsed back, then delivered to all
    subscribers of the topic including the sender.
    """

    def __init__(self) -> None:
        self.topics: defaultdict[str, list[tuple["MemorySync", MessageHandler]]] = defaultdict(list)
        self.sent: list[tuple[str, str]] = []
        self.fail_next = False

    def deliver(self, game_id: str, raw: str) -> None:
        if self.fail_next:
            self.fail_next = False
            raise SyncError("Relay unavailable.")
        self.sent.append((game_id, raw))
        for strategy, handler in list(self.topics[game_id]):
            strategy._deliver(handler, parse_message(raw))


class MemorySync(SyncStrategy):
    relays_messages = True
    publishes_partial_turns = False

    def __init__(self, relay: Optional[MemoryRelay] = None, *, page_url: str = "http://localhost:8000/") -> None:
        super().__init__(page_url)
        self.relay = relay or MemoryRelay()

    async def send(self, game_id: Optional[str], message: GameMessage) -> None:
        if not game_id:
            raise SyncError("A game id is required to reach a topic.")
        self.relay.deliver(game_id, dump_message(message))

    async def subscribe(self, game_id: Optional[str], on_receive: MessageHandler) -> Subscription:
        if not game_id:
            raise SyncError("A game id is required to reach a topic.")
        entry = (self, on_receive)
        self.relay.topics[game_id].append(entry)

        def _remove() -> None:
            if entry in self.relay.topics[game_id]:
                self.relay.topics[game_id].remove(entry)

        subscription = Subscription(game_id, on_cancel=_remove)
        subscription.status = Subscription.CONNECTED
        return subscription
