import logging
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response

from mailing_list import __version__
from mailing_list.api.deps import AppContext
from mailing_list.api.routes import subscriptions

logger = logging.getLogger(__name__)


def create_app(context: AppContext) -> FastAPI:
    """
    Build the HTTP application around an already-created context.

    The context (pool, email client, settings) is owned by the app from
    here on and released on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Serving subscriptions at %s", context.settings.application.base_url)
        yield
        context.close()

    app = FastAPI(
        title="Mailing List API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    app.include_router(subscriptions.router, tags=["Subscriptions"])

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_id=%s %s %s failed", request_id, request.method, request.url.path
            )
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "request_id=%s %s %s -> %s (%.1fms)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/health_check", tags=["Health"])
    def health_check() -> Response:
        """Liveness probe; empty 200."""
        return Response(status_code=200)

    return app
