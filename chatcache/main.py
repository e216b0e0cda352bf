import argparse
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chatcache.api import chat, health, sessions
from chatcache.core.chat import ChatHandler
from chatcache.core.ratelimit import RateLimiter
from chatcache.core.settings import Settings, get_settings
from chatcache.core.store import Clock, SessionStore
from chatcache.core.sweeper import ExpirySweeper
from chatcache.llm.client import OllamaClient
from chatcache.llm.engine import OllamaReasoningEngine, ReasoningEngine

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    settings: Settings = app.state.settings
    app.state.sweeper.start()
    client = app.state.ollama_client
    if client is not None:
        detection = client.get_detection_status()
        logger.info(
            "Ollama selection at startup: "
            f"ollama_up={detection.ollama_up} "
            f"model_available={detection.model_available} "
            f"selected_model={detection.selected_model} "
            f"fallback_used={detection.fallback_used} "
            f"reason={detection.reason}"
        )
    logger.info(
        "Routes: POST /api/chat | DELETE /api/session/{id} | GET /api/sessions | GET /health"
    )
    logger.info(
        f"Session TTL: {settings.session_ttl_sec // 60} min | Max: {settings.max_sessions} | "
        f"Cleanup: {settings.cleanup_interval_sec // 60} min"
    )
    logger.info("Application startup complete.")
    yield
    app.state.sweeper.stop()
    if client is not None:
        client.close()
    logger.info("Application shut down.")


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid request body"})


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[ReasoningEngine] = None,
    clock: Clock = time.time,
) -> FastAPI:
    """
    Builds the application with its own session store, sweeper and engine.
    Passing `engine` skips construction of the Ollama client.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="ZenGuard Chat API",
        description="Stateful chat API backed by a bounded, self-expiring session cache.",
        version="1.0.0",
        lifespan=lifespan,
    )

    store = SessionStore(
        ttl_seconds=settings.session_ttl_sec,
        max_sessions=settings.max_sessions,
        clock=clock,
    )
    ollama_client = None
    if engine is None:
        ollama_client = OllamaClient(settings)
        engine = OllamaReasoningEngine(ollama_client)

    app.state.settings = settings
    app.state.store = store
    app.state.sweeper = ExpirySweeper(store, settings.cleanup_interval_sec)
    app.state.ollama_client = ollama_client
    app.state.chat_handler = ChatHandler(store, engine)
    app.state.rate_limiter = RateLimiter(settings.rate_limit_max, settings.rate_limit_window_sec)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Include API routers
    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(sessions.router)

    @app.get("/", tags=["Root"])
    def read_root():
        return {"message": "Welcome to the ZenGuard Chat API. See /docs for details."}

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the ZenGuard chat API server.")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    args = parser.parse_args()

    uvicorn.run(create_app(settings), host=args.host, port=args.port, reload=False)


if __name__ == "__main__":
    run()
