import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.middleware.cors import CORSMiddleware

from shapescript.api.main import api_router
from shapescript.core.config import settings
from shapescript.core.jobs import get_job_registry
from shapescript.engines.script.executor import watchdog_available

logging.basicConfig(level=settings.LOG_LEVEL)
_logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    if settings.SCRIPT_EXEC_TIMEOUT and not watchdog_available():
        # Sync routes run in worker threads where SIGALRM cannot be armed
        _logger.info(
            "SCRIPT_EXEC_TIMEOUT=%ss only applies to scripts run on the main thread",
            settings.SCRIPT_EXEC_TIMEOUT,
        )
    yield
    registry = get_job_registry()
    _logger.info("Releasing %d job(s)", len(registry))
    registry.clear_all()


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 with one readable line per invalid field, e.g. "script: String should have at least 1 character"."""
    parts = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        text = err.get("msg", "Invalid value")
        parts.append(f"{where}: {text}" if where else text)
    return JSONResponse(status_code=422, content={"detail": "; ".join(parts)})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Script faults never get here; they are returned in the EvalResponse body.
    _logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    detail = f"Internal server error: {exc}" if settings.ENVIRONMENT == "local" else "Internal server error"
    return JSONResponse(status_code=500, content={"detail": detail})


def create_app() -> FastAPI:
    if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
        sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)

    application = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )
    application.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    application.add_exception_handler(Exception, unhandled_error_handler)

    if settings.all_cors_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=settings.all_cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    application.include_router(api_router, prefix=settings.API_V1_STR)
    return application


app = create_app()
