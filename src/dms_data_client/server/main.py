# src/dms_data_client/server/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from dms_data_client import DataClient, create_data_client
from dms_data_client.exceptions import DataClientError
from dms_data_client.logging import configure as configure_logging
from .routers import files, permissions, workspaces, members

logger = logging.getLogger(__name__)


def create_app(data_client: Optional[DataClient] = None) -> FastAPI:
    """
    Собирает FastAPI-приложение. Если клиент не передан, он создается из
    настроек окружения при старте и закрывается при остановке.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = data_client is None
        app.state.data_client = data_client or create_data_client()
        try:
            yield
        finally:
            if owned:
                await app.state.data_client.aclose()

    app = FastAPI(title="DMS Backend API", version="1.0.0", description="Document Management System API", lifespan=lifespan)
    if data_client is not None:
        app.state.data_client = data_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
        return response

    @app.exception_handler(DataClientError)
    async def data_client_error_handler(request: Request, exc: DataClientError):
        if exc.status_code >= 500:
            logger.error(f"{exc.name} on {request.url.path}: {exc.message}")
            return JSONResponse(status_code=exc.status_code, content={"name": exc.name, "message": "Internal server error"})
        return JSONResponse(status_code=exc.status_code, content={"name": exc.name, "message": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"{type(exc).__name__} on {request.url.path} (500): {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"name": "InternalError", "message": "Internal server error"})

    @app.get("/health", response_class=PlainTextResponse, tags=["default"])
    async def health():
        return "OK"

    app.include_router(files.router)
    app.include_router(members.router)
    app.include_router(workspaces.router)
    app.include_router(permissions.router)
    return app


def run():
    """Точка входа `dms-server`."""
    import uvicorn
    import os

    configure_logging()
    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.environ.get("PORT", 8000)))
