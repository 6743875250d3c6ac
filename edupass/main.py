"""edupass API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from edupass.catalog.router import admin_router as catalog_admin_router
from edupass.catalog.router import student_router as catalog_student_router
from edupass.catalog.service import LessonService, MaterialService, TeacherService, UnitService
from edupass.codes.redemption import RedemptionService
from edupass.codes.router import admin_router as codes_admin_router
from edupass.codes.router import student_router as codes_student_router
from edupass.codes.service import CodeBatchService
from edupass.config import Settings, get_settings
from edupass.content.router import router as content_router
from edupass.content.service import PaidContentService
from edupass.core.context import get_request_id
from edupass.core.database import init_async_cassandra, shutdown_async_cassandra
from edupass.core.exceptions import AppError
from edupass.core.logging import configure_structlog, get_logger
from edupass.core.middleware import RequestContextMiddleware
from edupass.core.redis import init_redis, shutdown_redis
from edupass.courses.router import admin_router as courses_admin_router
from edupass.courses.router import student_router as courses_student_router
from edupass.courses.service import CourseFileService, CourseService, VideoService
from edupass.entitlements.resolver import EntitlementResolver
from edupass.favorites.router import router as favorites_router
from edupass.favorites.service import FavoriteService
from edupass.health import router as health_router
from edupass.questions.router import admin_router as questions_admin_router
from edupass.questions.router import student_router as questions_student_router
from edupass.questions.service import FreeQuestionService, QuestionGroupService
from edupass.storage.bunny import BunnyStorageClient
from edupass.students.router import admin_router as students_admin_router
from edupass.students.router import router as students_router
from edupass.students.service import StudentService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def build_services(
    app: FastAPI,
    session: Any,
    settings: Settings,
    storage: BunnyStorageClient,
    redis_client: Any = None,
) -> None:
    """Wire every service onto ``app.state`` for ``request.app.state`` lookups."""
    keyspace = settings.cassandra_keyspace
    state = app.state

    state.material_service = MaterialService(session, keyspace)
    state.unit_service = UnitService(session, keyspace, state.material_service)
    state.lesson_service = LessonService(session, keyspace, state.unit_service)
    state.teacher_service = TeacherService(session, keyspace)

    state.question_group_service = QuestionGroupService(
        session, keyspace, state.lesson_service, storage
    )
    state.free_question_service = FreeQuestionService(
        session, keyspace, state.question_group_service, state.lesson_service
    )

    state.course_service = CourseService(
        session, keyspace, state.material_service, state.teacher_service, storage
    )
    state.video_service = VideoService(
        session, keyspace, state.course_service, state.unit_service, storage
    )
    state.course_file_service = CourseFileService(session, keyspace, state.course_service, storage)

    state.code_batch_service = CodeBatchService(
        session, keyspace, redis_client=redis_client, settings=settings
    )
    state.redemption_service = RedemptionService(session, keyspace, state.code_batch_service)

    state.entitlement_resolver = EntitlementResolver(
        redemptions=state.redemption_service,
        batches=state.code_batch_service,
        materials=state.material_service,
        question_groups=state.question_group_service,
        courses=state.course_service,
        videos=state.video_service,
        redis_client=redis_client,
        settings=settings,
    )
    state.favorite_service = FavoriteService(
        session, keyspace, state.question_group_service, state.entitlement_resolver
    )
    state.paid_content_service = PaidContentService(
        resolver=state.entitlement_resolver,
        materials=state.material_service,
        lessons=state.lesson_service,
        question_groups=state.question_group_service,
        courses=state.course_service,
        videos=state.video_service,
        course_files=state.course_file_service,
        favorites=state.favorite_service,
    )
    state.student_service = StudentService(
        session,
        keyspace,
        state.redemption_service,
        state.favorite_service,
        redis_client=redis_client,
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
    )

    # Redis is non-critical: without it every access check reads Cassandra
    app.state.redis = None
    if settings.redis_enabled:
        try:
            app.state.redis = await init_redis()
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running without Redis - entitlement cache disabled",
            )

    storage = BunnyStorageClient(settings)
    if not settings.bunny_configured:
        logger.warning("bunny_not_configured", message="Remote cleanup will be skipped")

    app.state.cassandra_session = None
    try:
        app.state.cassandra_session = await init_async_cassandra()
        build_services(app, app.state.cassandra_session, settings, storage, app.state.redis)
        logger.info("services_initialized", redis_enabled=app.state.redis is not None)
    except Exception as e:
        app.state.cassandra_session = None
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def _get_request_id_safe(request: Request) -> str | None:
    """Get request_id from request state or context."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return get_request_id()


def register_exception_handlers(app: FastAPI) -> None:
    """Map errors to ``{"error": true, "message", "status_code", "request_id"}``.

    Stack traces are never returned; unexpected errors are logged in full
    and answered with a generic 500.
    """

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> ORJSONResponse:
        request_id = _get_request_id_safe(request)
        is_server_error = exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
        log = logger.error if is_server_error else logger.info
        log(
            "app_error",
            error_code=exc.code,
            status_code=exc.status_code,
            path=request.url.path,
            method=request.method,
        )
        content: dict[str, Any] = {
            "error": True,
            "message": exc.message,
            "code": exc.code,
            "status_code": exc.status_code,
            "request_id": request_id,
        }
        if exc.details:
            content["details"] = exc.details
        return ORJSONResponse(status_code=exc.status_code, content=content)

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
            headers=getattr(exc, "headers", None),
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)
        logger.warning(
            "validation_error",
            errors=len(exc.errors()),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": True,
                "message": "Validation error",
                "code": "validation_error",
                "status_code": status.HTTP_400_BAD_REQUEST,
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
    async def global_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions."""
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
                "code": "internal_error",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "request_id": request_id,
            },
        )


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    ``use_lifespan=False`` builds the app without connecting to Cassandra or
    Redis; callers then populate ``app.state`` themselves.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Educational content platform with redeemable access codes",
        debug=False,  # Never expose stack traces in responses
        lifespan=lifespan if use_lifespan else None,
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

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(codes_student_router)
    app.include_router(content_router)
    app.include_router(favorites_router)
    app.include_router(catalog_student_router)
    app.include_router(questions_student_router)
    app.include_router(courses_student_router)
    app.include_router(students_router)
    app.include_router(catalog_admin_router)
    app.include_router(questions_admin_router)
    app.include_router(courses_admin_router)
    app.include_router(codes_admin_router)
    app.include_router(students_admin_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "edupass API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
