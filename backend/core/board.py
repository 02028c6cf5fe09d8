from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence

from .move import Coordinate, Move
from .pieces import Piece
from .player import Player


BOARD_SIZE = 8
Square = Optional[Piece]
Grid = tuple[tuple[Square, ...], ...]
MoveSet = frozenset[Move]


@dataclass(frozen=True, slots=True)
class Board:
    """Immutable 8x8 checkers board.

    Row 0 is player two's home edge and row 7 is player one's. Every update
    returns a new board; the receiver is never modified.
    """

    squares: Grid

    def __post_init__(self) -> None:
        if len(self.squares) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in self.squares):
            raise ValueError(f"Board must be exactly {BOARD_SIZE}x{BOARD_SIZE}.")

    @classmethod
    def initial(cls) -> "Board":
        rows: list[list[Square]] = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
        for row in range(BOARD_SIZE):
            for col in range(BOARD_SIZE):
                if (row + col) % 2 == 0:
                    continue
                if row < 3:
                    rows[row][col] = Piece.man(Player.PLAYER_2)
                elif row >= BOARD_SIZE - 3:
                    rows[row][col] = Piece.man(Player.PLAYER_1)
        return cls.from_rows(rows)

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[Square]]) -> "Board":
        return cls(tuple(tuple(row) for row in rows))

    @classmethod
    def with_pieces(cls, pieces: dict[Coordinate, Piece]) -> "Board":
        rows: list[list[Square]] = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
        for (row, col), piece in pieces.items():
            if not cls._is_within_bounds(row, col):
                raise ValueError(f"Square ({row}, {col}) is off the board.")
            rows[row][col] = piece
        return cls.from_rows(rows)

    def to_rows(self) -> list[list[Square]]:
        return [list(row) for row in self.squares]

    @staticmethod
    def _is_within_bounds(row: int, col: int) -> bool:
        return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE

    def getPiece(self, row: int, col: int) -> Square:
        if self._is_within_bounds(row, col):
            return self.squares[row][col]
        return None

    def getAllPieces(self, player: Optional[Player] = None) -> Iterator[tuple[Coordinate, Piece]]:
        for row in range(BOARD_SIZE):
            for col in range(BOARD_SIZE):
                piece = self.squares[row][col]
                if piece is None:
                    continue
                if player is None or piece.owner is player:
                    yield (row, col), piece

    def _replace(self, changes: dict[Coordinate, Square]) -> "Board":
        rows = self.to_rows()
        for (row, col), square in changes.items():
            rows[row][col] = square
        return Board.from_rows(rows)

    # move generation ----------------------------------------------------

    def jumpsFor(self, row: int, col: int) -> MoveSet:
        piece = self.getPiece(row, col)
        if piece is None:
            return frozenset()
        jumps: set[Move] = set()
        for dr, dc in piece.directions:
            mid_r, mid_c = row + dr, col + dc
            end_r, end_c = row + 2 * dr, col + 2 * dc
            if (
                self._is_within_bounds(end_r, end_c)
                and piece.isOpponent(self.getPiece(mid_r, mid_c))
                and self.getPiece(end_r, end_c) is None
            ):
                jumps.add(Move((row, col), (end_r, end_c)))
        return frozenset(jumps)

    def movesFor(self, row: int, col: int) -> MoveSet:
        """Simple (non-capturing) steps for the piece on ``(row, col)``."""
        piece = self.getPiece(row, col)
        if piece is None:
            return frozenset()
        moves: set[Move] = set()
        for dr, dc in piece.directions:
            new_r, new_c = row + dr, col + dc
            if self._is_within_bounds(new_r, new_c) and self.getPiece(new_r, new_c) is None:
                moves.add(Move((row, col), (new_r, new_c)))
        return frozenset(moves)

    def getAllValidMoves(self, player: Player) -> MoveSet:
        """Legal moves for ``player``; jumps only whenever any jump exists."""
        origins = [coord for coord, _ in self.getAllPieces(player)]

        capture_moves: set[Move] = set()
        for row, col in origins:
            capture_moves |= self.jumpsFor(row, col)
        if capture_moves:
            return frozenset(capture_moves)

        quiet_moves: set[Move] = set()
        for row, col in origins:
            quiet_moves |= self.movesFor(row, col)
        return frozenset(quiet_moves)

    def has_captures(self, player: Player) -> bool:
        return any(self.jumpsFor(row, col) for (row, col), _ in self.getAllPieces(player))

    # move application ---------------------------------------------------

    def apply_move(self, move: Move) -> "Board":
        start_row, start_col = move.start
        end_row, end_col = move.end
        piece = self.getPiece(start_row, start_col)
        if piece is None:
            raise ValueError(f"No piece at row {start_row}, col {start_col}.")
        if not self._is_within_bounds(end_row, end_col):
            raise ValueError("Move destination must stay within the board.")
        if self.getPiece(end_row, end_col) is not None:
            raise ValueError("Destination square must be empty.")

        changes: dict[Coordinate, Square] = {move.start: None, move.end: piece}
        if move.is_jump:
            captured = move.captured
            assert captured is not None
            if not piece.isOpponent(self.getPiece(*captured)):
                raise ValueError("Jump must pass over an opponent piece.")
            changes[captured] = None

        if not piece.is_king and end_row == piece.owner.promotion_row:
            changes[move.end] = piece.promote()

        return self._replace(changes)

    def __str__(self) -> str:
        lines = []
        for row in self.squares:
            lines.append(" ".join(piece.symbol if piece else "." for piece in row))
        return "\n".join(lines)
