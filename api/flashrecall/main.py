from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import os
import traceback
from flashrecall.core.config import settings
from flashrecall.core.database import init_db
from flashrecall.core.exceptions import (
    FlashRecallException,
    ValidationError,
    NotFoundError,
    AuthenticationError,
    QuotaExceededError,
    PersistenceError,
    DraftingError
)

# Import models to register them with SQLModel
from flashrecall.models import models  # noqa: F401

# Import API router
from flashrecall.api.v1 import api_router

logger = logging.getLogger(__name__)

# Check if we're in development mode
IS_DEVELOPMENT = os.getenv("ENVIRONMENT", "production").lower() in ("development", "dev", "local")

# Seconds a client should wait before retrying a failed write
PERSISTENCE_RETRY_AFTER = "1"

app = FastAPI(title="FlashRecall API", version="1.0.0")


def status_code_for(exc: FlashRecallException) -> int:
    """HTTP status for an application exception."""
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, QuotaExceededError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, (PersistenceError, DraftingError)):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# Add exception handler for validation errors to log details
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors and answer 400 with the field errors."""
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Invalid request",
            "type": "ValidationError",
            "code": ValidationError.code,
            "errors": jsonable_encoder(exc.errors()),
        },
    )


# Add exception handler for custom application exceptions
@app.exception_handler(FlashRecallException)
async def flashrecall_exception_handler(request: Request, exc: FlashRecallException):
    """Handle custom application exceptions."""
    status_code = status_code_for(exc)
    headers = {"Retry-After": PERSISTENCE_RETRY_AFTER} if isinstance(exc, PersistenceError) else None

    logger.warning(f"Application exception on {request.method} {request.url.path}: {type(exc).__name__}: {str(exc)}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "type": type(exc).__name__, "code": exc.code, **exc.details},
        headers=headers,
    )


# Add global exception handler for unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and answer with a generic 500."""
    # Log full traceback
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)

    # In development, show full error details
    if IS_DEVELOPMENT:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": str(exc),
                "type": type(exc).__name__,
                "code": FlashRecallException.code,
                "traceback": traceback.format_exc()
            },
        )
    else:
        # In production, return generic message
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An internal server error occurred. Please try again later.",
                "type": "InternalServerError",
                "code": FlashRecallException.code
            },
        )

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    init_db()


@app.get("/")
async def root():
    return {
        "message": "FlashRecall API",
        "status": "running",
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc"
        }
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}


# Include API router
app.include_router(api_router, prefix=settings.api_v1_prefix)
