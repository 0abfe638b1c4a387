from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reviewmap.core.config import settings
from reviewmap.core.errors import register_error_handlers
from reviewmap.core.logging_config import configure_logging
from reviewmap.db.session import create_store
from reviewmap.routers import places, profiles, reviews, routes

configure_logging(log_dir=settings.log_dir, level=settings.log_level)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Review Map", version="0.1.0")
    app.state.store = None
    app.state.engagement_cache = None
    app.state.mutation_gate = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        if app.state.store is not None:
            return
        try:
            app.state.store = await create_store()
        except Exception:
            logger.exception("Supabase client setup failed")

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        # The engagement cache lives for one session only.
        if app.state.engagement_cache is not None:
            app.state.engagement_cache.invalidate()
            app.state.engagement_cache = None

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error")
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        duration_ms = int((time.time() - start) * 1000)
        logger.info("%s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration_ms)
        return response

    @app.get("/health", tags=["health"])
    def health() -> dict:
        return {"status": "ok", "data_service": app.state.store is not None}

    register_error_handlers(app)

    app.include_router(reviews.router)
    app.include_router(places.router)
    app.include_router(routes.router)
    app.include_router(profiles.router)

    return app


app = create_app()
