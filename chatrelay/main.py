# chatrelay/main.py

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatrelay.core.config import Settings, settings as default_settings
from chatrelay.core.logging import setup_logging, get_logger
from chatrelay.core.state import build_state
from chatrelay.api.routes import root, health, metrics, rooms
from chatrelay.api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build a relay app with its own, empty room directory."""
    settings = settings or default_settings

    app = FastAPI(title="chatrelay")
    app.state.settings = settings
    app.state.relay = build_state()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # REST routes
    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(rooms.router)

    # WebSocket routes
    app.include_router(websocket_module.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info("🚀 Relay starting on %s:%s", settings.HOST, settings.PORT)

    @app.on_event("shutdown")
    async def shutdown_event():
        relay = app.state.relay
        logger.info(
            "Relay stopping: %d connections, %d rooms",
            len(relay.registry),
            len(relay.directory),
        )

    return app


app = create_app()


def run() -> None:
    import uvicorn
    uvicorn.run("chatrelay.main:app", host=default_settings.HOST, port=default_settings.PORT)


if __name__ == "__main__":
    run()
