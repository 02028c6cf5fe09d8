from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass
from typing import Any, Optional

from core.game import AnnounceWinner, Publish, Render, TurnState, click
from core.player import Player
from core.state import GameState
from sync.base import Subscription, SyncError, SyncStrategy
from sync.messages import (
    ChatMessage,
    GameMessage,
    GameStateMessage,
    PlayerJoinMessage,
    chat_message,
    join_message,
)

from .serializers import serialize_session

logger = logging.getLogger(__name__)

SCREEN_LOBBY = "lobby"
SCREEN_WAITING = "waiting"
SCREEN_GAME = "game"

SEND_FAILED = "Connection error! Can't send move."
_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def new_game_id(length: int = 6) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def _require_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValueError("A player name is required.")
    return cleaned


@dataclass(frozen=True, slots=True)
class ChatLine:
    sender: str
    text: str


class GameSession:
    """One participant's side of a game.

    Local clicks and inbound transport messages are the only two things that
    change the session, and the lock keeps them from interleaving.
    """

    def __init__(self, strategy: SyncStrategy) -> None:
        self.lock = asyncio.Lock()
        self.strategy = strategy
        self._clear()

    def _clear(self) -> None:
        self.turn: Optional[TurnState] = None
        self.role: Optional[Player] = None
        self.local_name: Optional[str] = None
        self.game_id: Optional[str] = None
        self.invite: Optional[str] = None
        self.screen = SCREEN_LOBBY
        self.status_override: Optional[str] = None
        self.announcement: Optional[Player] = None
        self.subscription: Optional[Subscription] = None
        self.chat: list[ChatLine] = []
        self.revision = 0

    @property
    def game(self) -> Optional[GameState]:
        return self.turn.game if self.turn is not None else None

    # public API ---------------------------------------------------------

    async def view(self) -> dict[str, Any]:
        async with self.lock:
            return self._view_locked()

    async def create_game(self, name: str) -> dict[str, Any]:
        name = _require_name(name)
        async with self.lock:
            await self._leave_locked()
            self.role = Player.PLAYER_1
            self.local_name = name
            self.game_id = new_game_id()
            self.turn = TurnState.from_game(GameState.new(name))
            self.subscription = await self.strategy.subscribe(self.game_id, self.handle_message)
            self.screen = SCREEN_WAITING
            await self._publish_locked(self.turn.game)
            logger.info("Created game %s as %s", self.game_id, name)
            return self._view_locked()

    async def join_game(self, name: str, link: Optional[str] = None) -> dict[str, Any]:
        name = _require_name(name)
        async with self.lock:
            link = link or self.invite
            linked = self.strategy.read_link(link) if link else None
            if linked is None:
                raise ValueError("That link does not point at a game.")
            if not self.strategy.relays_messages and linked.state is None:
                raise ValueError("That link does not carry a game.")

            await self._leave_locked()
            self.role = Player.PLAYER_2
            self.local_name = name
            self.game_id = linked.game_id
            self.subscription = await self.strategy.subscribe(self.game_id, self.handle_message)
            self.screen = SCREEN_GAME

            if self.strategy.relays_messages:
                self.status_override = "Joining game..."
                await self._send_locked(join_message(name))
            else:
                assert linked.state is not None
                state = linked.state
                if not state.has_opponent:
                    state = state.with_player2(name)
                self.turn = TurnState.from_game(state)
                await self._publish_locked(state)
            logger.info("Joined game %s as %s", self.game_id or "from link", name)
            return self._view_locked()

    async def open_link(self, link: str) -> dict[str, Any]:
        """Load a link shared by the other participant."""
        async with self.lock:
            linked = await self.strategy.open_link(link)
            if linked is None:
                await self._leave_locked()
                self.status_override = "No active game in that link."
                return self._view_locked()
            joined = self.subscription is not None
            if not joined or (linked.state is None and linked.game_id != self.game_id):
                # the name entry screen decides how to use the invitation
                await self._leave_locked()
                self.invite = link
            return self._view_locked()

    async def click(self, row: int, col: int) -> dict[str, Any]:
        async with self.lock:
            if self.turn is None or self.screen != SCREEN_GAME or self.game is None or not self.game.has_opponent:
                return self._view_locked()
            turn, effects = click(self.turn, (row, col), actor=self.role)
            self.turn = turn
            for effect in effects:
                if isinstance(effect, Render):
                    self.revision += 1
                elif isinstance(effect, Publish):
                    if effect.partial and not self.strategy.publishes_partial_turns:
                        continue
                    await self._publish_locked(effect.state)
                elif isinstance(effect, AnnounceWinner):
                    self.announcement = effect.winner
                    logger.info("Game %s won by %s", self.game_id, effect.winner.label)
            return self._view_locked()

    async def send_chat(self, text: str) -> dict[str, Any]:
        text = text.strip()
        async with self.lock:
            if not text:
                return self._view_locked()
            if not self.strategy.relays_messages:
                raise ValueError("Chat needs a message relay transport.")
            if self.role is None or self.local_name is None:
                raise ValueError("No game in progress.")
            await self._send_locked(chat_message(self.local_name, text))
            return self._view_locked()

    async def reset(self) -> dict[str, Any]:
        async with self.lock:
            await self._leave_locked()
            logger.info("Session reset")
            return self._view_locked()

    async def handle_message(self, message: GameMessage) -> None:
        async with self.lock:
            if isinstance(message, GameStateMessage):
                self._receive_state_locked(message)
            elif isinstance(message, PlayerJoinMessage):
                await self._receive_join_locked(message)
            elif isinstance(message, ChatMessage):
                if self.role is not None:
                    self.chat.append(ChatLine(message.payload.senderName, message.payload.text))
                    self.revision += 1

    # helpers ------------------------------------------------------------

    def _view_locked(self) -> dict[str, Any]:
        return serialize_session(self)

    def _receive_state_locked(self, message: GameStateMessage) -> None:
        if self.role is None:
            return
        payload = message.payload
        if payload.gameId and self.game_id and payload.gameId != self.game_id:
            logger.warning("Ignoring snapshot for game %s while in %s", payload.gameId, self.game_id)
            return
        try:
            state = payload.to_state()
        except ValueError as exc:
            logger.warning("Ignoring inconsistent snapshot: %s", exc)
            return
        self.turn = TurnState.from_game(state)
        self.status_override = None
        self.announcement = state.winner
        if self.screen != SCREEN_GAME and state.has_opponent:
            self.screen = SCREEN_GAME
        self.revision += 1

    async def _receive_join_locked(self, message: PlayerJoinMessage) -> None:
        if self.role is not Player.PLAYER_1 or self.turn is None or self.turn.game.has_opponent:
            return
        state = self.turn.game.with_player2(message.payload.playerName)
        self.turn = TurnState(state, self.turn.phase)
        self.screen = SCREEN_GAME
        self.revision += 1
        logger.info("%s joined game %s", message.payload.playerName, self.game_id)
        await self._publish_locked(state)

    async def _publish_locked(self, state: GameState) -> None:
        try:
            await self.strategy.publish(self.game_id, state)
        except SyncError as exc:
            logger.warning("Publish failed for game %s: %s", self.game_id, exc)
            self.status_override = SEND_FAILED

    async def _send_locked(self, message: GameMessage) -> None:
        try:
            await self.strategy.send(self.game_id, message)
        except SyncError as exc:
            logger.warning("Send failed for game %s: %s", self.game_id, exc)
            self.status_override = SEND_FAILED

    async def _leave_locked(self) -> None:
        if self.subscription is not None:
            self.subscription.cancel()
        await self.strategy.reset()
        self._clear()
