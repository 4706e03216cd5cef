from __future__ import annotations

import logging
import time

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from ..config import DEFAULT_CONFIG_PATH
from .api import router as api_router
from .container import DEFAULT_STATE_PATH, ServiceContainer

load_dotenv()

logger = logging.getLogger("crewboard.webapp")


def create_app(
    *,
    config_path: str | None = None,
    state_path: str | None = None,
    auto_save: bool = True,
) -> FastAPI:
    """Build a FastAPI app bound to one crew board state file."""

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title="Crewboard API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        description="Crew and date grid scheduling with free-time and pairing synchronisation",
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.time()
        response = await call_next(request)
        logger.info(
            "[HTTP] %s %s -> %d (%.3fs)",
            request.method,
            request.url.path,
            response.status_code,
            time.time() - started,
        )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    container = ServiceContainer(
        config_path=config_path or str(DEFAULT_CONFIG_PATH),
        state_path=state_path or str(DEFAULT_STATE_PATH),
        auto_save=auto_save,
    )
    app.state.container = container
    logger.info("[INIT] config=%s state=%s auto_save=%s", container.config_path, container.state_path, auto_save)

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


# default instance for "uvicorn crewboard_core.webapp.app:app"
app = create_app()
