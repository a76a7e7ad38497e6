"""
User accounts service — application entry point.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import register_exception_handlers
from api.middleware import register_middleware
from auth.encryption import is_encryption_enabled
from auth.routes import router as users_router
from config.settings import config
from database.session import engine, init_models

logging.basicConfig(
    level=config.log_level or (logging.DEBUG if config.debug else logging.INFO),
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "urllib3", "sqlalchemy.engine", "aiosqlite"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Creating database tables…")
    await init_models()
    logger.info(
        "Refresh-token encryption: %s",
        "enabled" if is_encryption_enabled() else "disabled",
    )
    logger.info("Application ready to accept requests.")
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="User Accounts Service",
        version="1.0.0",
        description="Registration with avatar upload, login and token rotation.",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(users_router, prefix="/api/v1/users")

    @app.get("/", tags=["root"])
    async def root():
        return {"name": app.title, "version": app.version, "docs": "/docs"}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
