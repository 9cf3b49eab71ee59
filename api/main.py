"""ASGI entrypoint: ``uvicorn main:app``."""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from core.config import Settings, get_settings
from core.database import create_engine, create_session_maker, dispose_engine, init_db
from core.logger import configure_logging, get_logger
from core.middleware import RequestTimingMiddleware, SecurityHeadersMiddleware
from core.ratelimit import limiter, rate_limit_exceeded_handler
from routes import (
    achievements_router,
    catalog_router,
    certificates_router,
    certifications_router,
    events_router,
    health_router,
)

configure_logging()
logger = get_logger(__name__)

STARTUP_TIMEOUT_SECONDS = 60


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors minus pydantic's ``ctx``, which may hold exceptions."""
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    if not isinstance(exc, RequestValidationError):
        return await unhandled_exception_handler(request, exc)
    logger.warning(
        "request.validation_error",
        path=request.url.path,
        method=request.method,
        error_count=len(exc.errors()),
    )
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled.exception",
        exc_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again."},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the engine for the process lifetime.

    Migrations are not run here; use ``python cli.py migrate``.
    """
    engine = create_engine()
    app.state.engine = engine
    app.state.session_maker = create_session_maker(engine)
    app.state.init_done = False
    app.state.init_error = None

    try:
        async with asyncio.timeout(STARTUP_TIMEOUT_SECONDS):
            await init_db(engine)
    except TimeoutError as e:
        logger.error("init.timeout", timeout_s=STARTUP_TIMEOUT_SECONDS)
        raise RuntimeError("Application startup timed out") from e
    except Exception as e:
        app.state.init_error = str(e)
        logger.error("init.failed", error=str(e), exc_info=True)
        raise

    app.state.init_done = True
    logger.info("init.complete")
    try:
        yield
    finally:
        await dispose_engine(engine)


def create_app(settings: Settings) -> FastAPI:
    show_docs = settings.enable_docs or settings.debug
    application = FastAPI(
        title="Dogmania Certification API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
    )

    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    application.add_exception_handler(
        RequestValidationError, validation_exception_handler
    )
    application.add_exception_handler(Exception, unhandled_exception_handler)

    application.add_middleware(SecurityHeadersMiddleware)
    if settings.allowed_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
            expose_headers=["X-Request-Id"],
            max_age=600,
        )
    # Added last so it wraps everything above.
    application.add_middleware(RequestTimingMiddleware)

    for router in (
        health_router,
        events_router,
        certifications_router,
        certificates_router,
        achievements_router,
        catalog_router,
    ):
        application.include_router(router)

    return application


app = create_app(get_settings())
