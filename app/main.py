import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.routers import ws
from app.services.game.coordinator import get_game_coordinator
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Snakes & Ladders API")
    logger.debug("Debug mode: %s", settings.DEBUG)

    # Start the periodic sweep of expired sessions
    coordinator = get_game_coordinator()
    await coordinator.start()
    logger.info("Game coordinator initialized")

    # Initialize WebSocket connection manager and start cleanup task
    connection_manager = get_connection_manager()
    await connection_manager.start_cleanup_task()
    logger.info("WebSocket connection manager initialized")

    yield

    # Shutdown: stop cleanup task, close all connections, stop session timers
    logger.info("Shutting down Snakes & Ladders API")
    await connection_manager.stop_cleanup_task()
    await connection_manager.close_all_connections()
    await coordinator.close()
    logger.info("WebSocket and session cleanup complete")


app = FastAPI(
    title="Snakes & Ladders API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.debug("CORS configured with origins: %s", settings.CORS_ORIGINS)

app.include_router(ws.router, prefix="/api/v1")
logger.debug("Routers registered: /api/v1/ws")


@app.get("/")
def root():
    return {"message": "Snakes & Ladders API"}


@app.get("/health")
def health():
    coordinator = get_game_coordinator()
    return {
        "status": "healthy",
        "active_sessions": len(coordinator.registry),
        "waiting_players": len(coordinator.queue),
    }
