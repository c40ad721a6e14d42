"""FastAPI web application for the debate tab engine."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import get_default_config
from web.endpoints.system import router as system_router
from web.endpoints.tournaments import get_tournament_api, router as tournaments_router

logger: logging.Logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the tab database before serving requests."""
    if get_tournament_api not in app.dependency_overrides:
        get_tournament_api()
    yield


def get_allowed_origins() -> list[str]:
    """CORS origins from ALLOWED_ORIGINS, falling back to the config file."""
    env_origins: str | None = os.environ.get("ALLOWED_ORIGINS")
    if env_origins:
        return [origin.strip() for origin in env_origins.split(",")]
    return get_default_config().system.cors_origins


app: FastAPI = FastAPI(
    title="Debate Tab Engine",
    description="Draws, judge allocation, ballots, standings and elimination brackets",
    version="1.0.0",
    lifespan=lifespan,
)

allowed_origins = get_allowed_origins()
logger.info(f"Setting CORS allowed origins: {allowed_origins}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials="*" not in allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system_router)
app.include_router(tournaments_router)
