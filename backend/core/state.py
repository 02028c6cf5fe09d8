from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .board import Board, MoveSet
from .move import Coordinate
from .player import Player


@dataclass(frozen=True, slots=True)
class GameState:
    """Canonical snapshot exchanged between the two participants.

    ``continuation`` names the piece that owes another jump before the turn
    can pass; it always belongs to ``current_player``.
    """

    board: Board
    current_player: Player
    player1_name: str
    player2_name: Optional[str] = None
    winner: Optional[Player] = None
    continuation: Optional[Coordinate] = None

    def __post_init__(self) -> None:
        if self.continuation is None:
            return
        if self.winner is not None:
            raise ValueError("A finished game cannot owe a continuation jump.")
        piece = self.board.getPiece(*self.continuation)
        if piece is None or piece.owner is not self.current_player:
            raise ValueError("Continuation square must hold a piece of the player on move.")
        if not self.board.jumpsFor(*self.continuation):
            raise ValueError("Continuation piece has no jump left to make.")

    @classmethod
    def new(cls, player1_name: str) -> "GameState":
        return cls(board=Board.initial(), current_player=Player.PLAYER_1, player1_name=player1_name)

    @property
    def is_game_over(self) -> bool:
        return self.winner is not None

    @property
    def has_opponent(self) -> bool:
        return self.player2_name is not None

    def name_of(self, player: Player) -> Optional[str]:
        return self.player1_name if player is Player.PLAYER_1 else self.player2_name

    def with_player2(self, name: str) -> "GameState":
        return replace(self, player2_name=name)

    def legal_moves(self) -> MoveSet:
        if self.is_game_over:
            return frozenset()
        if self.continuation is not None:
            return self.board.jumpsFor(*self.continuation)
        return self.board.getAllValidMoves(self.current_player)
