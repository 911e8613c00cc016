from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from projectx_backend.api.chat import chat_router
from projectx_backend.api.limiter import limiter
from projectx_backend.api.notifications import notifications_router
from projectx_backend.database import get_engine
from projectx_backend.exceptions import register_exception_handlers
from projectx_backend.model import Base
from projectx_backend.settings import settings
from projectx_backend.websocket.connection_manager import manager
from projectx_backend.websocket.router import ws_router

logger = logging.getLogger(__name__)


def startup_logic():
    """Create missing tables outside production; production schemas come from alembic."""
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables ensured")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DEBUG_MODE != "production":
        startup_logic()

    await manager.start()

    yield

    await manager.stop()


app = FastAPI(lifespan=lifespan)
app.state.limiter = limiter

# Register custom exception handlers for structured error responses
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(
    chat_router,
    tags=["chat"]
)

app.include_router(
    notifications_router,
    tags=["notifications"]
)

# WebSocket endpoints (/ws, /ws/chat) and the public status query
app.include_router(
    ws_router,
    tags=["websocket"]
)


@app.get("/health", tags=["system"])
async def health():
    return {
        "status": "ok",
        "websocket": {
            "running": manager.running,
            "connections": manager.get_connection_count(),
            "rooms": manager.get_room_count(),
        },
    }


@app.get("/api/ws/metrics", tags=["websocket"])
async def websocket_metrics():
    return manager.get_metrics()
