from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any, Optional

from core.board import Board
from core.move import Coordinate
from core.player import Player
from core.state import GameState

if TYPE_CHECKING:
    from .session import GameSession


def _coord_tuple_to_dict(coord: Coordinate) -> dict[str, int]:
    row, col = coord
    return {"row": row, "col": col}


def serialize_board(board: Board) -> list[list[Optional[str]]]:
    return [[piece.symbol if piece else None for piece in row] for row in board.squares]


def serialize_state(state: GameState) -> dict[str, Any]:
    pieces = [piece for _, piece in state.board.getAllPieces()]
    total_counts = Counter(piece.owner for piece in pieces)
    king_counts = Counter(piece.owner for piece in pieces if piece.is_king)
    return {
        "board": serialize_board(state.board),
        "currentPlayer": state.current_player.value,
        "player1Name": state.player1_name,
        "player2Name": state.player2_name,
        "isGameOver": state.is_game_over,
        "winner": state.winner.value if state.winner else None,
        "pendingJump": _coord_tuple_to_dict(state.continuation) if state.continuation else None,
        "mandatoryCapture": not state.is_game_over and state.board.has_captures(state.current_player),
        "pieceCounts": {
            player.value: {"total": total_counts.get(player, 0), "kings": king_counts.get(player, 0)}
            for player in Player
        },
    }


def opponent_name(session: "GameSession") -> str:
    game = session.game
    if game is None or session.role is None:
        return "Opponent"
    return game.name_of(session.role.opponent) or "Opponent"


def status_text(session: "GameSession") -> str:
    if session.status_override:
        return session.status_override
    game = session.game
    if game is None:
        return "Join Game" if session.invite else "Enter your name to play."
    if game.player2_name is None:
        return "Waiting for an opponent to join..."
    if game.winner is not None:
        if game.winner is session.role:
            return "You Win!"
        return f"{opponent_name(session)} Wins!"
    if game.current_player is session.role:
        return "Your Turn"
    return f"Waiting for {opponent_name(session)}'s move..."


def serialize_session(session: "GameSession") -> dict[str, Any]:
    game = session.game
    turn = session.turn
    subscription = session.subscription
    share_link = None
    if session.role is not None:
        share_link = session.strategy.share_link(session.game_id, game)
    return {
        "screen": session.screen,
        "revision": session.revision,
        "gameId": session.game_id,
        "role": session.role.value if session.role else None,
        "playerName": session.local_name,
        "invite": session.invite,
        "shareLink": share_link,
        "status": status_text(session),
        "connection": subscription.status if subscription else None,
        "isMyTurn": bool(game and not game.is_game_over and game.current_player is session.role),
        "game": serialize_state(game) if game else None,
        "selected": _coord_tuple_to_dict(turn.selected) if turn and turn.selected else None,
        "destinations": [_coord_tuple_to_dict(coord) for coord in turn.destinations] if turn else [],
        "announcement": session.announcement.value if session.announcement else None,
        "chat": [{"senderName": line.sender, "text": line.text} for line in session.chat],
    }
