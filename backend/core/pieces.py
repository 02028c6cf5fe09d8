from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .player import Player


Direction = tuple[int, int]
ALL_DIRECTIONS: tuple[Direction, ...] = ((-1, -1), (-1, 1), (1, -1), (1, 1))


class Rank(Enum):
    MAN = "man"
    KING = "king"


@dataclass(frozen=True, slots=True)
class Piece:
    owner: Player
    rank: Rank = Rank.MAN

    @classmethod
    def man(cls, owner: Player) -> "Piece":
        return cls(owner, Rank.MAN)

    @classmethod
    def king(cls, owner: Player) -> "Piece":
        return cls(owner, Rank.KING)

    @property
    def is_king(self) -> bool:
        return self.rank is Rank.KING

    @property
    def directions(self) -> tuple[Direction, ...]:
        if self.is_king:
            return ALL_DIRECTIONS
        forward = self.owner.forward
        return ((forward, -1), (forward, 1))

    def promote(self) -> "Piece":
        return Piece(self.owner, Rank.KING)

    def isOpponent(self, other: "Piece | None") -> bool:
        return other is not None and other.owner is not self.owner

    @property
    def symbol(self) -> str:
        return PIECE_TO_SYMBOL[self]

    @property
    def code(self) -> int:
        return PIECE_TO_CODE[self]

    def __repr__(self) -> str:
        piece_type = "K" if self.is_king else "M"
        return f"{piece_type}({self.owner.name})"


# Wire symbols used by the relay messages, and fragment cell codes (0 is empty).
PIECE_TO_SYMBOL: dict[Piece, str] = {
    Piece.man(Player.PLAYER_1): "r",
    Piece.man(Player.PLAYER_2): "b",
    Piece.king(Player.PLAYER_1): "R",
    Piece.king(Player.PLAYER_2): "B",
}
SYMBOL_TO_PIECE: dict[str, Piece] = {symbol: piece for piece, symbol in PIECE_TO_SYMBOL.items()}

PIECE_TO_CODE: dict[Piece, int] = {
    Piece.man(Player.PLAYER_1): 1,
    Piece.man(Player.PLAYER_2): 2,
    Piece.king(Player.PLAYER_1): 3,
    Piece.king(Player.PLAYER_2): 4,
}
CODE_TO_PIECE: dict[int, Piece] = {code: piece for piece, code in PIECE_TO_CODE.items()}
