# api/main.py

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from netflow import create_indexer
from netflow.core.logging import NetflowLogger, log_with_context, INFO
from netflow.database import ReadCache

from .routers import transfers, netflow
from .dependencies import set_dependencies

SERVICE_NAME = "netflow-indexer"


def create_app(read_cache: Optional[ReadCache] = None) -> FastAPI:
    """
    Build the read API. Without a ``read_cache`` the app wires its own
    indexer from the environment at startup and only uses its read side.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = NetflowLogger.get_logger('api.main')
        cache = read_cache
        if cache is None:
            cache = create_indexer().get(ReadCache)

        set_dependencies(cache)
        log_with_context(logger, INFO, "API startup completed")

        yield

        set_dependencies(None)
        logger.info("API shutting down")

    app = FastAPI(
        title="Netflow Indexer API",
        description="Exchange netflow of ERC-20 tokens",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(transfers.router, tags=["transfers"])
    app.include_router(netflow.router, tags=["netflow"])

    @app.get("/")
    def root():
        return {"service": SERVICE_NAME, "status": "running"}

    return app
