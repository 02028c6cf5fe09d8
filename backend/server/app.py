from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from sync.base import SyncStrategy

from .config import Settings, build_strategy
from .schemas import ChatRequest, ClickRequest, CreateGameRequest, JoinGameRequest, OpenLinkRequest
from .session import GameSession


def create_app(settings: Optional[Settings] = None, strategy: Optional[SyncStrategy] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    strategy = strategy or build_strategy(settings)
    session = GameSession(strategy)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await session.reset()
        await strategy.aclose()

    app = FastAPI(title="Checkers Relay", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    app.state.session = session

    def get_session() -> GameSession:
        return session

    @app.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/state")
    async def read_state(session: GameSession = Depends(get_session)):
        return await session.view()

    @app.post("/games")
    async def create_game(payload: CreateGameRequest, session: GameSession = Depends(get_session)):
        try:
            return await session.create_game(payload.playerName)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/games/join")
    async def join_game(payload: JoinGameRequest, session: GameSession = Depends(get_session)):
        try:
            return await session.join_game(payload.playerName, payload.link)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/link")
    async def open_link(payload: OpenLinkRequest, session: GameSession = Depends(get_session)):
        return await session.open_link(payload.link)

    @app.post("/click")
    async def click_square(payload: ClickRequest, session: GameSession = Depends(get_session)):
        return await session.click(payload.row, payload.col)

    @app.post("/chat")
    async def send_chat(payload: ChatRequest, session: GameSession = Depends(get_session)):
        try:
            return await session.send_chat(payload.text)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/reset")
    async def reset_game(session: GameSession = Depends(get_session)):
        return await session.reset()

    return app
