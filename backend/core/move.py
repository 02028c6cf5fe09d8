from __future__ import annotations

from dataclasses import dataclass

Coordinate = tuple[int, int]


@dataclass(frozen=True, slots=True)
class Move:
    start: Coordinate
    end: Coordinate

    @property
    def is_jump(self) -> bool:
        return abs(self.end[0] - self.start[0]) == 2

    @property
    def captured(self) -> Coordinate | None:
        if not self.is_jump:
            return None
        return ((self.start[0] + self.end[0]) // 2, (self.start[1] + self.end[1]) // 2)

    def __str__(self) -> str:
        connector = " x " if self.is_jump else " - "
        return f"{self.start[0]},{self.start[1]}{connector}{self.end[0]},{self.end[1]}"
