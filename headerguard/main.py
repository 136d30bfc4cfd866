from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from headerguard.api.router import api_router
from headerguard.core.config import Settings, settings
from headerguard.core.logging import configure_logging
from headerguard.middleware.request_log import RequestLogMiddleware
from headerguard.middleware.security_headers import SecurityHeadersMiddleware
from headerguard.security.chain import build_policy_chain

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    app_settings: Settings = app.state.settings
    logger.info(
        "Security headers active",
        policies=app.state.security_chain.names,
        environment=app_settings.APP_ENV,
    )
    logger.info(f"Your app is listening on port {app_settings.PORT}")

    yield

    logger.info("Shutdown complete")


def create_application(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings
    # Raises PolicyConfigurationError on invalid toggle options.
    chain = build_policy_chain(app_settings)

    application = FastAPI(
        title=app_settings.APP_NAME,
        description="Static site and API served behind hardened HTTP response headers.",
        version=app_settings.APP_VERSION,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    application.state.settings = app_settings
    application.state.security_chain = chain

    application.add_middleware(SecurityHeadersMiddleware, chain=chain)
    application.add_middleware(
        RequestLogMiddleware,
        quiet_paths={f"{app_settings.API_PREFIX}/health", "/favicon.ico"},
    )

    index_page = app_settings.VIEWS_DIR / "index.html"

    @application.api_route("/", methods=["GET", "HEAD"], include_in_schema=False)
    async def index() -> FileResponse:
        return FileResponse(index_page, media_type="text/html")

    application.include_router(api_router, prefix=app_settings.API_PREFIX)
    application.mount(
        "/",
        StaticFiles(directory=app_settings.STATIC_DIR),
        name="static",
    )

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            exc_type=type(exc).__name__,
            exc_message=str(exc),
            path=str(request.url),
        )
        request_id = getattr(request.state, "request_id", None) or request.headers.get(
            "X-Request-ID", "unknown"
        )
        response = JSONResponse(
            status_code=500,
            content={
                "detail": "An internal server error occurred.",
                "request_id": request_id,
            },
        )
        # Starlette sends this response outside the user middleware stack.
        request.app.state.security_chain.apply(request, response.headers)
        response.headers["X-Request-ID"] = request_id
        return response

    return application


app = create_application()


def run() -> None:
    """Start the HTTP listener on the configured port."""
    uvicorn.run(
        app,
        host=settings.API_HOST,
        port=settings.PORT,
        server_header=False,
        log_config=None,
    )


if __name__ == "__main__":
    run()
