"""
FastAPI application factory for castcompat
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import CastCompatConfig, get_config, set_config
from ..service import CompatService, get_service, set_service
from .middleware import api_key_middleware
from .routes import health, library, stream

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[CastCompatConfig] = None,
    service: Optional[CompatService] = None
) -> FastAPI:
    """
    Build the application.

    A service passed in is used as-is (tests inject one with a fake prober);
    otherwise one is constructed at startup from the active configuration.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config is not None:
            set_config(config)
        set_service(service or CompatService(get_config()))
        health.set_start_time(time.time())

        active = get_service()
        logger.info(
            f"castcompat v{__version__} started, media root: {active.media_root}"
        )

        yield

        logger.info(f"Shutting down castcompat, {active.cache.clear()} cached probes dropped")
        set_service(None)

    app = FastAPI(
        title="castcompat",
        description="Chromecast compatibility checks and on-demand transcoding",
        version=__version__,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(api_key_middleware)

    app.include_router(health.router)
    app.include_router(library.router)
    app.include_router(stream.router)

    return app


app = create_app()
