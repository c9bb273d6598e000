"""
DevConnector API — application entry point.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from api.auth import router as auth_router
from api.errors import register_exception_handlers
from api.middleware import register_middleware
from api.post import router as post_router
from api.profile import router as profile_router
from api.users import router as users_router
from auth.jwt import TokenService
from config.settings import Settings
from connectors.github import GitHubClient
from database.session import build_engine, build_session_factory, init_models

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("httpcore", "httpx", "aiosqlite", "asyncio"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="DevConnector API",
        version="1.0.0",
        description="Developer profiles, posts and GitHub repos.",
    )

    # Components shared by every request, built from one settings object
    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.tokens = TokenService(settings)
    app.state.github = GitHubClient(settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(users_router)
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(post_router)

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "API Running..."

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.on_event("startup")
    async def on_startup():
        logger.info("Creating missing tables…")
        await init_models(engine)
        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        await engine.dispose()
        logger.info("Application shutdown")

    return app


settings = Settings()
configure_logging(settings)
app = create_app(settings)

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
