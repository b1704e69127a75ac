#!/usr/bin/env python3
"""
Sessionstore - Example Application

Thin wiring layer that:
1. Loads configuration from the environment
2. Builds the session manager and installs the session middleware
3. Serves a few routes that read, write and clear the session

All session logic lives in the modules.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from sessionstore.config import SessionOptions
from sessionstore.errors import SessionError
from sessionstore.logging_config import COMPONENT_LOGGERS, configure_logging
from sessionstore.modules.middleware import create_session_middleware, get_session
from sessionstore.modules.session import Session, SessionManager

logger = logging.getLogger(__name__)


def create_app(manager: Optional[SessionManager] = None) -> FastAPI:
    """
    Build the example application.

    Args:
        manager: SessionManager to use (built from environment if not provided)
    """
    manager = manager or SessionManager(SessionOptions.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Serving sessions from Redis at {manager.options.address}")
        yield
        logger.info("Closing session connection pool...")
        await manager.close()

    app = FastAPI(
        title="Sessionstore Example",
        description="Cookie sessions backed by Redis",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.session_manager = manager

    session_middleware = create_session_middleware(manager)

    @app.middleware("http")
    async def bind_session(request: Request, call_next):
        return await session_middleware(request, call_next)

    @app.exception_handler(SessionError)
    async def session_error_handler(request: Request, exc: SessionError):
        logger.error(f"Session error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"err": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/hello")
    async def hello():
        return {"hello": "world"}

    @app.get("/s")
    async def remember_name(
        name: str = Query("", description="Value to store under 'name'"),
        session: Session = Depends(get_session),
    ):
        """Return the previously stored name and store the new one."""
        previous = session.get("name")
        session.set("name", name)
        await session.save()
        return {"s": previous}

    @app.get("/out")
    async def logout(session: Session = Depends(get_session)):
        session.clear()
        await session.save()
        return {"s": "success"}

    return app


def main() -> None:
    component_levels = {
        component: os.environ[f"LOG_LEVEL_{component.upper()}"]
        for component in COMPONENT_LOGGERS
        if os.getenv(f"LOG_LEVEL_{component.upper()}")
    }
    configure_logging(
        os.getenv("LOG_LEVEL", "INFO"),
        component_levels=component_levels,
        access_log=os.getenv("ACCESS_LOG", "true").lower() == "true",
    )
    uvicorn.run(
        create_app(),
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
