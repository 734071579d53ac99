from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from microcrm.api.routes import (
    auth,
    clients,
    export,
    health,
    invoices,
    portal,
    projects,
    recurring_invoices,
    tasks,
    timelogs,
)
from microcrm.core.config import settings
from microcrm.core.errors import ServiceError
from microcrm.core.logging_setup import logger
from microcrm.db.session import init_db, storage_scope
from microcrm.services.billing_scheduler import RecurringInvoiceScheduler
from microcrm.services.recurring import RecurringInvoiceGenerator


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    settings.check_production_secrets()
    init_db()

    scheduler: RecurringInvoiceScheduler | None = None
    if settings.recurring_scheduler_enabled:
        generator = RecurringInvoiceGenerator(storage_factory=storage_scope)
        scheduler = RecurringInvoiceScheduler(generator, settings.recurring_interval_seconds)
        scheduler.start()
    application.state.scheduler = scheduler

    yield

    if scheduler is not None:
        await scheduler.stop()


def _normalize_origin(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = value.strip().rstrip("/")
    return cleaned or None


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    error = errors[0]
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    message = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{'.'.join(location)}: {message}" if location else message


def _install_error_handlers(application: FastAPI) -> None:
    @application.exception_handler(ServiceError)
    async def service_error_handler(_: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @application.exception_handler(StarletteHTTPException)
    async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)

    @application.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": _validation_message(exc)})

    @application.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Internal server error"}
        )


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.project_name,
        debug=settings.debug,
        lifespan=lifespan,
    )

    origins: list[str] = []
    for item in settings.allowed_origins:
        normalized = _normalize_origin(item)
        if normalized and normalized not in origins:
            origins.append(normalized)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _install_error_handlers(application)

    application.include_router(health.router, prefix="/health")
    for module in (auth, clients, projects, tasks, timelogs, invoices, recurring_invoices, export, portal):
        application.include_router(module.router, prefix=settings.api_prefix)

    @application.get("/")
    def root():
        return {"service": settings.project_name}

    logger.info("%s initialised", settings.project_name)
    return application


app = create_app()
