"""coursestream API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursestream.certificates.router import admin_router as certificates_admin_router
from coursestream.certificates.router import public_router as certificates_public_router
from coursestream.certificates.service import CertificateService
from coursestream.config import Settings, get_settings
from coursestream.core.context import get_request_id
from coursestream.core.logging import configure_structlog, get_logger
from coursestream.core.middleware import RequestContextMiddleware
from coursestream.courses.catalog import CourseCatalog
from coursestream.enrollments.router import admin_router as enrollments_admin_router
from coursestream.enrollments.router import router as enrollments_router
from coursestream.enrollments.service import EnrollmentService
from coursestream.health import router as health_router
from coursestream.player.router import router as player_router
from coursestream.progress.repository import ProgressRepository
from coursestream.progress.router import router as progress_router
from coursestream.progress.service import ProgressService
from coursestream.store import InMemoryRecordStore, RecordStore


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, to_files=not settings.is_testing)

logger = get_logger(__name__)


async def _open_store(settings: Settings) -> RecordStore:
    if settings.storage_backend == "cassandra":
        from coursestream.core.database import init_async_cassandra
        from coursestream.store.cassandra import CassandraRecordStore

        session = await init_async_cassandra(settings)
        return CassandraRecordStore(session, settings.cassandra_keyspace)
    return InMemoryRecordStore()


def install_services(app: FastAPI, store: RecordStore, settings: Settings) -> None:
    """Build every service over ``store`` and expose them on ``app.state``."""
    catalog = CourseCatalog(store)
    enrollments = EnrollmentService(store)
    repository = ProgressRepository(store)

    app.state.settings = settings
    app.state.store = store
    app.state.course_catalog = catalog
    app.state.enrollment_service = enrollments
    app.state.progress_repository = repository
    app.state.progress_service = ProgressService(
        catalog,
        enrollments,
        repository,
        completion_write_retries=settings.completion_write_retries,
    )
    app.state.certificate_service = CertificateService(
        store, enrollments, code_prefix=settings.certificate_code_prefix
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        store_backend=settings.storage_backend,
    )

    if getattr(app.state, "store", None) is None:
        try:
            store = await _open_store(settings)
        except ConnectionError as e:
            logger.warning(
                "database_init_skipped",
                error=str(e),
                message="Running without database connection",
            )
        else:
            install_services(app, store, settings)
            logger.info("services_initialized", store_backend=settings.storage_backend)

    yield

    logger.info("shutting_down_application")
    if settings.storage_backend == "cassandra":
        from coursestream.core.database import shutdown_async_cassandra

        await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Always debug=False so Starlette never renders stack traces in responses
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course playback, progress and certificates API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler: log the full exception, return a generic body."""
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    app.include_router(health_router)
    app.include_router(player_router)
    app.include_router(progress_router)
    app.include_router(enrollments_router)
    app.include_router(enrollments_admin_router)
    app.include_router(certificates_admin_router)
    app.include_router(certificates_public_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "coursestream API",
            "version": settings.app_version,
        }

    return app


app = create_app()
