from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from core.board import BOARD_SIZE, Board
from core.pieces import SYMBOL_TO_PIECE
from core.player import Player
from core.state import GameState


PieceSymbol = Literal["r", "b", "R", "B"]
PlayerSymbol = Literal["r", "b"]


class GameStatePayload(BaseModel):
    gameId: Optional[str] = None
    board: list[list[Optional[PieceSymbol]]]
    currentPlayer: PlayerSymbol
    player1Name: str
    player2Name: Optional[str] = None
    isGameOver: bool = False
    winner: Optional[PlayerSymbol] = None
    pendingJump: Optional[tuple[int, int]] = None

    @field_validator("board")
    @classmethod
    def _check_dimensions(cls, value: list[list[Optional[str]]]) -> list[list[Optional[str]]]:
        if len(value) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in value):
            raise ValueError(f"board must be {BOARD_SIZE}x{BOARD_SIZE}")
        return value

    @classmethod
    def from_state(cls, game_id: Optional[str], state: GameState) -> "GameStatePayload":
        return cls(
            gameId=game_id,
            board=[[piece.symbol if piece else None for piece in row] for row in state.board.squares],
            currentPlayer=state.current_player.value,
            player1Name=state.player1_name,
            player2Name=state.player2_name,
            isGameOver=state.is_game_over,
            winner=state.winner.value if state.winner else None,
            pendingJump=state.continuation,
        )

    def to_state(self) -> GameState:
        if self.isGameOver != (self.winner is not None):
            raise ValueError("isGameOver must be set exactly when a winner is named.")
        board = Board.from_rows(
            [[SYMBOL_TO_PIECE[symbol] if symbol else None for symbol in row] for row in self.board]
        )
        return GameState(
            board=board,
            current_player=Player(self.currentPlayer),
            player1_name=self.player1Name,
            player2_name=self.player2Name,
            winner=Player(self.winner) if self.winner else None,
            continuation=tuple(self.pendingJump) if self.pendingJump is not None else None,
        )


class PlayerJoinPayload(BaseModel):
    playerName: str = Field(..., min_length=1)


class ChatPayload(BaseModel):
    senderName: str
    text: str = Field(..., min_length=1)


class GameStateMessage(BaseModel):
    type: Literal["game_state"] = "game_state"
    payload: GameStatePayload


class PlayerJoinMessage(BaseModel):
    type: Literal["player_join"] = "player_join"
    payload: PlayerJoinPayload


class ChatMessage(BaseModel):
    type: Literal["chat_message"] = "chat_message"
    payload: ChatPayload


GameMessage = Annotated[
    Union[GameStateMessage, PlayerJoinMessage, ChatMessage],
    Field(discriminator="type"),
]

_MESSAGE_ADAPTER: TypeAdapter[GameMessage] = TypeAdapter(GameMessage)


def parse_message(raw: Union[str, bytes]) -> GameMessage:
    """Validate a JSON message; raises ``pydantic.ValidationError`` (a ``ValueError``)."""
    return _MESSAGE_ADAPTER.validate_json(raw)


def dump_message(message: GameMessage) -> str:
    return message.model_dump_json()


def state_message(game_id: Optional[str], state: GameState) -> GameStateMessage:
    return GameStateMessage(payload=GameStatePayload.from_state(game_id, state))


def join_message(name: str) -> PlayerJoinMessage:
    return PlayerJoinMessage(payload=PlayerJoinPayload(playerName=name))


def chat_message(sender: str, text: str) -> ChatMessage:
    return ChatMessage(payload=ChatPayload(senderName=sender, text=text))
