"""Play-by-link transport: the whole game lives in the page URL fragment.

The snapshot is packed into a fixed-order record::

    [cells, player1Name, player2Name, currentPlayer, gameOver, continuation]

``cells`` is 64 digits (0 empty, 1/2 men of player one/two, 3/4 kings),
``currentPlayer`` is 1 or 2, ``gameOver`` is 0 or 1 and ``continuation`` is
``[row, col]`` or null. The record is compact JSON wrapped in URL-safe base64
without padding. The winner is not stored: a finished game always has the
loser on move.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Optional

from core.board import BOARD_SIZE, Board
from core.pieces import CODE_TO_PIECE, Piece
from core.player import Player
from core.state import GameState

from .base import LinkedGame, MessageHandler, Subscription, SyncError, SyncStrategy, fragment_of, with_fragment
from .messages import GameMessage, GameStateMessage, state_message

logger = logging.getLogger(__name__)

CELL_COUNT = BOARD_SIZE * BOARD_SIZE
RECORD_FIELDS = 6


def encode_state(state: GameState) -> str:
    cells = "".join(
        str(piece.code if piece else 0) for row in state.board.squares for piece in row
    )
    continuation = list(state.continuation) if state.continuation is not None else None
    record = [
        cells,
        state.player1_name,
        state.player2_name,
        state.current_player.code,
        int(state.is_game_over),
        continuation,
    ]
    raw = json.dumps(record, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _decode_record(token: str) -> list[Any]:
    padded = token + "=" * (-len(token) % 4)
    raw = base64.urlsafe_b64decode(padded.encode("ascii"))
    record = json.loads(raw.decode("utf-8"))
    if not isinstance(record, list) or len(record) != RECORD_FIELDS:
        raise ValueError("record has the wrong shape")
    return record


def _decode_board(cells: Any) -> Board:
    if not isinstance(cells, str) or len(cells) != CELL_COUNT or not cells.isascii() or not cells.isdigit():
        raise ValueError("board cells are malformed")
    rows = []
    for row in range(BOARD_SIZE):
        rows.append([_decode_cell(cells[row * BOARD_SIZE + col]) for col in range(BOARD_SIZE)])
    return Board.from_rows(rows)


def _decode_cell(digit: str) -> Optional[Piece]:
    code = int(digit)
    if code == 0:
        return None
    return CODE_TO_PIECE[code]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def decode_state(token: str) -> Optional[GameState]:
    """Inverse of ``encode_state``; ``None`` when the token cannot be a game."""
    if not token:
        return None
    try:
        cells, player1, player2, current, over, continuation = _decode_record(token)
        if not isinstance(player1, str) or not (player2 is None or isinstance(player2, str)):
            raise ValueError("player names are malformed")
        if not _is_int(over) or over not in (0, 1) or not _is_int(current):
            raise ValueError("player code or game-over flag is malformed")
        board = _decode_board(cells)
        current_player = Player.from_code(current)
        if continuation is not None:
            if not isinstance(continuation, list) or len(continuation) != 2 or not all(map(_is_int, continuation)):
                raise ValueError("continuation is malformed")
            continuation = (continuation[0], continuation[1])
        return GameState(
            board=board,
            current_player=current_player,
            player1_name=player1,
            player2_name=player2,
            winner=current_player.opponent if over else None,
            continuation=continuation,
        )
    except (ValueError, KeyError, TypeError, OverflowError, RecursionError, UnicodeError, binascii.Error) as exc:
        logger.warning("Ignoring undecodable game link: %s", exc)
        return None


class PageLocation:
    """The page address whose fragment carries the game."""

    def __init__(self, page_url: str) -> None:
        self.page_url = with_fragment(page_url, "")
        self.fragment = fragment_of(page_url)

    @property
    def href(self) -> str:
        return with_fragment(self.page_url, self.fragment)

    def replace_fragment(self, fragment: str) -> None:
        self.fragment = fragment

    def navigate(self, url: str) -> None:
        self.fragment = fragment_of(url)


class FragmentSync(SyncStrategy):
    relays_messages = False
    publishes_partial_turns = True

    def __init__(self, page_url: str = "http://localhost:8000/") -> None:
        super().__init__(page_url)
        self.location = PageLocation(page_url)
        self._listeners: list[MessageHandler] = []

    async def send(self, game_id: Optional[str], message: GameMessage) -> None:
        if not isinstance(message, GameStateMessage):
            raise SyncError(f"Link play cannot carry {message.type} messages.")
        state = message.payload.to_state()
        self.location.replace_fragment(encode_state(state))
        self._notify(message)

    async def subscribe(self, game_id: Optional[str], on_receive: MessageHandler) -> Subscription:
        self._listeners.append(on_receive)

        def _remove() -> None:
            if on_receive in self._listeners:
                self._listeners.remove(on_receive)

        subscription = Subscription(game_id, on_cancel=_remove)
        subscription.status = Subscription.CONNECTED
        return subscription

    def _notify(self, message: GameMessage) -> None:
        for listener in list(self._listeners):
            self._deliver(listener, message)

    def share_link(self, game_id: Optional[str], state: Optional[GameState]) -> str:
        if state is None:
            return self.location.href
        return with_fragment(self.location.page_url, encode_state(state))

    def read_link(self, url: str) -> Optional[LinkedGame]:
        state = decode_state(fragment_of(url))
        if state is None:
            return None
        return LinkedGame(None, state)

    async def reset(self) -> None:
        await super().reset()
        self.location.replace_fragment("")

    async def open_link(self, url: str) -> Optional[LinkedGame]:
        self.location.navigate(url)
        linked = self.read_link(url)
        if linked is not None and linked.state is not None:
            self._notify(state_message(None, linked.state))
        return linked
