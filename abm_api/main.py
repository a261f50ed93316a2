import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from abm_api.api.v1.router import api_router
from abm_api.config import settings
from abm_api.core.exceptions import (
    UnauthenticatedException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
    ServerConfigurationException,
)
from abm_api.core.logging_config import setup_logging, cleanup_old_logs
from abm_api.core.logging_utils import get_client_ip, sanitize_log_message
from abm_api.database import init_db, close_db
from abm_api.middleware.logging_middleware import LoggingMiddleware
from abm_api.middleware.rate_limit import setup_rate_limiting
from abm_api.middleware.security import setup_security_middleware

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)


@app.on_event("startup")
async def startup_event():
    """Initialize logging, cleanup old logs and create tables for local sqlite databases."""
    setup_logging()
    cleanup_old_logs()

    if settings.DATABASE_URL.startswith("sqlite"):
        await init_db()

    if not settings.ELEVENLABS_WEBHOOK_SECRET:
        if settings.allow_unsigned_webhooks():
            logger.warning(
                sanitize_log_message(
                    "ELEVENLABS_WEBHOOK_SECRET is empty: webhook signatures will NOT be verified",
                    Environment=settings.ENVIRONMENT
                )
            )
        else:
            logger.error(
                sanitize_log_message(
                    "ELEVENLABS_WEBHOOK_SECRET is empty: webhook calls will be rejected",
                    Environment=settings.ENVIRONMENT
                )
            )

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    await close_db()


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID", "Accept", "Origin"],
)

# Security middleware (request size limit + security headers)
setup_security_middleware(app, max_request_size=settings.MAX_REQUEST_SIZE)

# Logging middleware (after CORS, before routes)
if settings.LOG_ENABLE_REQUEST_LOGGING:
    app.add_middleware(LoggingMiddleware)

# Rate limiting
setup_rate_limiting(app)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


def _error_response(status_code: int, detail, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": detail}, headers=headers)


# Exception handlers with logging
@app.exception_handler(UnauthenticatedException)
async def unauthenticated_handler(request: Request, exc: UnauthenticatedException):
    logger.warning(
        sanitize_log_message(
            "Authentication failed",
            Path=request.url.path,
            Method=request.method,
            IP=get_client_ip(request),
            Detail=exc.detail
        )
    )
    return _error_response(exc.status_code, exc.detail, exc.headers)


@app.exception_handler(ForbiddenException)
async def forbidden_handler(request: Request, exc: ForbiddenException):
    logger.warning(
        sanitize_log_message(
            "Access denied",
            Path=request.url.path,
            Method=request.method,
            IP=get_client_ip(request),
            Detail=exc.detail
        )
    )
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(NotFoundException)
async def not_found_handler(request: Request, exc: NotFoundException):
    logger.info(
        sanitize_log_message(
            "Resource not found",
            Path=request.url.path,
            Method=request.method,
            Detail=exc.detail
        )
    )
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(ValidationException)
async def validation_handler(request: Request, exc: ValidationException):
    logger.info(
        sanitize_log_message(
            "Invalid request",
            Path=request.url.path,
            Method=request.method,
            Detail=exc.detail
        )
    )
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(ServerConfigurationException)
async def server_configuration_handler(request: Request, exc: ServerConfigurationException):
    logger.error(
        sanitize_log_message(
            "Server configuration error",
            Path=request.url.path,
            Method=request.method,
            Detail=exc.detail
        )
    )
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info(
        sanitize_log_message(
            "Request validation failed",
            Path=request.url.path,
            Method=request.method,
            Errors=len(errors)
        )
    )
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        f"{location}: {message}" if location else message
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        sanitize_log_message(
            "HTTP error",
            Path=request.url.path,
            Method=request.method,
            StatusCode=exc.status_code,
            Detail=exc.detail
        )
    )
    return _error_response(exc.status_code, exc.detail, getattr(exc, "headers", None))


# Generic exception handler for unhandled exceptions
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(
        sanitize_log_message(
            f"Unhandled exception: {type(exc).__name__}",
            Path=request.url.path,
            Method=request.method,
            IP=get_client_ip(request),
            ExceptionType=type(exc).__name__,
            ExceptionMessage=str(exc)
        )
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error" if settings.ENVIRONMENT == "production" else str(exc)
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.VERSION}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": f"{settings.API_V1_STR}/docs"
    }
