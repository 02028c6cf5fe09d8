from __future__ import annotations

from enum import Enum


class Player(str, Enum):
    PLAYER_1 = "r"
    PLAYER_2 = "b"

    @property
    def opponent(self) -> "Player":
        return Player.PLAYER_2 if self is Player.PLAYER_1 else Player.PLAYER_1

    @property
    def forward(self) -> int:
        """Row step of this player's men (player one advances towards row 0)."""
        return -1 if self is Player.PLAYER_1 else 1

    @property
    def promotion_row(self) -> int:
        return 0 if self is Player.PLAYER_1 else 7

    @property
    def label(self) -> str:
        return "Red" if self is Player.PLAYER_1 else "Black"

    @property
    def code(self) -> int:
        return 1 if self is Player.PLAYER_1 else 2

    @classmethod
    def from_code(cls, code: int) -> "Player":
        for player in cls:
            if player.code == code:
                return player
        raise ValueError(f"Unknown player code {code!r}.")
