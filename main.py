"""
OAuth2 delegation broker — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.apps import router as apps_router
from api.dependencies import get_delegation_service
from api.errors import register_exception_handlers
from api.middleware import register_middleware
from api.tokens import router as tokens_router
from config.settings import config
from database.session import engine, init_models

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="OAuth2 Delegation Broker",
        version="1.0.0",
        description="Authorization-code delegation and token lifecycle for third-party providers.",
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
    app.include_router(apps_router, prefix=f"{config.api_prefix}/apps")
    app.include_router(tokens_router, prefix=f"{config.api_prefix}/tokens")

    @app.on_event("startup")
    async def on_startup():
        if config.auto_create_tables:
            logger.info("Ensuring database tables exist…")
            await init_models(engine)

        # Drop exchanges abandoned by users who never finished the provider flow
        purged = await get_delegation_service().exchanges.purge_expired()
        if purged:
            logger.info("Purged %d expired exchanges", purged)

        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        await engine.dispose()

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
