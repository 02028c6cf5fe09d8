"""Turn state machine driven by board clicks.

``click`` is a pure function: it never mutates the snapshot it is given and
returns the next ``TurnState`` together with the side effects the caller has
to carry out (re-render, publish the snapshot, announce the winner).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Union

from .board import MoveSet
from .move import Coordinate, Move
from .player import Player
from .state import GameState


# phases ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AwaitingSelection:
    pass


@dataclass(frozen=True, slots=True)
class PieceSelected:
    origin: Coordinate
    moves: MoveSet

    def move_to(self, coord: Coordinate) -> Optional[Move]:
        for move in self.moves:
            if move.end == coord:
                return move
        return None

    @property
    def destinations(self) -> list[Coordinate]:
        return sorted(move.end for move in self.moves)


@dataclass(frozen=True, slots=True)
class AwaitingContinuation(PieceSelected):
    """The selected piece just jumped and must jump again."""


@dataclass(frozen=True, slots=True)
class GameOver:
    winner: Player


Phase = Union[AwaitingSelection, PieceSelected, AwaitingContinuation, GameOver]


# effects -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Render:
    pass


@dataclass(frozen=True, slots=True)
class Publish:
    state: GameState
    partial: bool = False


@dataclass(frozen=True, slots=True)
class AnnounceWinner:
    winner: Player


Effect = Union[Render, Publish, AnnounceWinner]


@dataclass(frozen=True, slots=True)
class TurnState:
    game: GameState
    phase: Phase = field(default_factory=AwaitingSelection)

    @classmethod
    def from_game(cls, game: GameState) -> "TurnState":
        return cls(game, phase_for(game))

    @property
    def selected(self) -> Optional[Coordinate]:
        if isinstance(self.phase, PieceSelected):
            return self.phase.origin
        return None

    @property
    def destinations(self) -> list[Coordinate]:
        if isinstance(self.phase, PieceSelected):
            return self.phase.destinations
        return []


def phase_for(game: GameState) -> Phase:
    """Phase a freshly received snapshot starts in."""
    if game.winner is not None:
        return GameOver(game.winner)
    if game.continuation is not None:
        return AwaitingContinuation(game.continuation, game.board.jumpsFor(*game.continuation))
    return AwaitingSelection()


def check_for_winner(game: GameState) -> Optional[Player]:
    if game.board.getAllValidMoves(game.current_player):
        return None
    return game.current_player.opponent


def apply_move(game: GameState, move: Move) -> tuple[GameState, Phase]:
    """Play ``move`` for the player on turn and settle whose turn it is next."""
    board = game.board.apply_move(move)
    if move.is_jump:
        further = board.jumpsFor(*move.end)
        if further:
            continued = replace(game, board=board, continuation=move.end)
            return continued, AwaitingContinuation(move.end, further)

    passed = replace(game, board=board, current_player=game.current_player.opponent, continuation=None)
    winner = check_for_winner(passed)
    if winner is not None:
        passed = replace(passed, winner=winner)
        return passed, GameOver(winner)
    return passed, AwaitingSelection()


def click(turn: TurnState, coord: Coordinate, actor: Optional[Player] = None) -> tuple[TurnState, list[Effect]]:
    game, phase = turn.game, turn.phase
    if isinstance(phase, GameOver):
        return turn, []
    if actor is not None and actor is not game.current_player:
        return turn, []

    if isinstance(phase, PieceSelected):
        move = phase.move_to(coord)
        if move is not None:
            next_game, next_phase = apply_move(game, move)
            partial = isinstance(next_phase, AwaitingContinuation)
            effects: list[Effect] = [Render(), Publish(next_game, partial=partial)]
            if isinstance(next_phase, GameOver):
                effects.append(AnnounceWinner(next_phase.winner))
            return TurnState(next_game, next_phase), effects

    if isinstance(phase, AwaitingContinuation):
        return turn, []

    piece = game.board.getPiece(*coord)
    if piece is not None and piece.owner is game.current_player:
        own_moves = frozenset(move for move in game.legal_moves() if move.start == coord)
        if own_moves:
            return TurnState(game, PieceSelected(coord, own_moves)), [Render()]
        return TurnState(game, AwaitingSelection()), [Render()]

    if isinstance(phase, PieceSelected):
        return TurnState(game, AwaitingSelection()), [Render()]
    return turn, []
