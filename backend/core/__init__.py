"""Core checkers engine package."""

from .board import BOARD_SIZE, Board
from .game import (
	AnnounceWinner,
	AwaitingContinuation,
	AwaitingSelection,
	GameOver,
	PieceSelected,
	Publish,
	Render,
	TurnState,
	click,
	phase_for,
)
from .move import Coordinate, Move
from .pieces import Piece, Rank
from .player import Player
from .state import GameState

__all__ = [
	"BOARD_SIZE",
	"Board",
	"Move",
	"Coordinate",
	"Player",
	"Piece",
	"Rank",
	"GameState",
	"TurnState",
	"AwaitingSelection",
	"PieceSelected",
	"AwaitingContinuation",
	"GameOver",
	"Render",
	"Publish",
	"AnnounceWinner",
	"click",
	"phase_for",
]
