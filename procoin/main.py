"""FastAPI application initialization."""

import asyncio
from contextlib import asynccontextmanager
from uuid import uuid4

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from procoin import database
from procoin.api.auth import router as auth_router
from procoin.api.courses import router as courses_router
from procoin.api.health import router as health_router
from procoin.api.middleware import CORRELATION_HEADER, CorrelationIdMiddleware
from procoin.api.transactions import router as transactions_router
from procoin.config import get_settings, validate_runtime_config
from procoin.errors import ApiError, ErrorCode
from procoin.services.logging_service import configure_logging, get_logger
from procoin.services.template_service import build_template_registry


async def _retry_failed_emails_loop(app: FastAPI, interval: int) -> None:
    """Periodically resend failed transaction emails."""
    from procoin.services.transaction_service import TransactionService

    logger = get_logger("mail_retry")
    while True:
        try:
            await asyncio.sleep(interval)
            service = TransactionService(app.state.template_registry)
            await service.retry_failed()
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.warning("mail_retry_cycle_error", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level)
    validate_runtime_config(settings)
    logger = get_logger("main")

    app.state.template_registry = build_template_registry()

    database_ready = False
    try:
        await database.init_database()
        await database.run_migrations()
        database_ready = True
        logger.info("database_initialized")
    except Exception as e:
        logger.warning(
            "database_initialization_failed",
            error=str(e),
            note="Continuing without database - every data endpoint will fail until it is reachable",
        )

    retry_task = None
    if database_ready and settings.mail_retry_interval_seconds > 0:
        retry_task = asyncio.create_task(
            _retry_failed_emails_loop(app, settings.mail_retry_interval_seconds)
        )
        logger.info("mail_retry_loop_started", interval=settings.mail_retry_interval_seconds)

    logger.info("application_started", log_level=settings.log_level, app_env=settings.app_env)

    yield

    if retry_task is not None:
        retry_task.cancel()
        try:
            await retry_task
        except asyncio.CancelledError:
            pass
        logger.info("mail_retry_loop_stopped")

    await database.close_database()
    logger.info("application_shutdown")


app = FastAPI(
    title="procoin API",
    description="Course catalog with JWT auth, and transaction email delivery",
    version="0.1.0",
    lifespan=lifespan,
)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid4())


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render ApiError as {"message", "code"}."""
    correlation_id = _correlation_id(request)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={CORRELATION_HEADER: correlation_id},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors as 400 VALIDATION_ERROR.

    The detail names the first offending field, e.g.
    "Field 'body.title': Field required".
    """
    correlation_id = _correlation_id(request)
    logger = structlog.get_logger()

    errors = exc.errors()
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", ["unknown"]))
        message = first_error.get("msg", "Validation failed")
        detail = f"Field '{field}': {message}"
    else:
        detail = "Request validation failed"

    logger.warning("validation_error", detail=detail)

    return JSONResponse(
        status_code=400,
        content={
            "message": "Validation error",
            "code": ErrorCode.VALIDATION_ERROR.value,
            "detail": detail,
        },
        headers={CORRELATION_HEADER: correlation_id},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and return a generic 500."""
    structlog.get_logger().exception("unhandled_exception", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "code": ErrorCode.INTERNAL_ERROR.value},
        headers={CORRELATION_HEADER: _correlation_id(request)},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-User-Email", CORRELATION_HEADER],
)

app.add_middleware(CorrelationIdMiddleware)

app.include_router(auth_router, prefix=get_settings().api_prefix)
app.include_router(courses_router, prefix=get_settings().api_prefix)
app.include_router(transactions_router, prefix=get_settings().api_prefix)
app.include_router(health_router)
