from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from core.board import BOARD_SIZE


class ClickRequest(BaseModel):
    row: int = Field(..., ge=0, lt=BOARD_SIZE)
    col: int = Field(..., ge=0, lt=BOARD_SIZE)


class CreateGameRequest(BaseModel):
    playerName: str = Field(..., min_length=1, max_length=40)


class JoinGameRequest(BaseModel):
    playerName: str = Field(..., min_length=1, max_length=40)
    link: Optional[str] = Field(
        default=None, description="Shared page link; defaults to the last opened invitation."
    )


class OpenLinkRequest(BaseModel):
    link: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)
