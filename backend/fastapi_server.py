"""
FastAPI Server for the Character Builder
- Build session surface over the reconciliation engine
- Consistent JSON error bodies for engine and session failures
"""

import logging
import sys
import time
import uuid
from pathlib import Path

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
import uvicorn

# Add the backend directory to Python path for imports
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from fastapi_core.exceptions import (
    CharacterBuilderException,
    SessionNotFoundException,
    BuildSessionException,
    ValidationException
)
from character.exceptions import BuildEngineError
from config.build_settings import get_build_settings

# Configure Loguru logging
from config.logging_config import logger, configure_logging

# Keep standard logging for compatibility with libraries that use it
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

ALLOWED_ORIGINS = [
    "http://localhost:3000",      # Dev mode
    "http://localhost:5173",      # Vite dev server
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup and shutdown events"""
    logger.info("Character builder API starting up...")

    yield

    # Shutdown
    from fastapi_core.session_registry import close_all_sessions
    closed = close_all_sessions()
    logger.info(f"Character builder API shutting down ({closed} sessions closed)")


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """Add request ID and timing for better error tracking"""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        logger.info(f"Request {request_id}: {request.method} {request.url.path} - {response.status_code} ({duration:.3f}s)")
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response


def session_not_found_handler(request: Request, exc: SessionNotFoundException):
    """Handle unknown session ids"""
    logger.warning(f"Build session not found: {exc.session_id}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "session_not_found",
            "detail": exc.message,
            "session_id": exc.session_id
        }
    )


def build_session_handler(request: Request, exc: BuildSessionException):
    """Handle session creation/usage errors"""
    logger.error(f"Build session error: {exc.message} (session_id: {exc.session_id})")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "build_session_error",
            "detail": exc.message,
            "session_id": exc.session_id
        }
    )


def validation_exception_handler(request: Request, exc: ValidationException):
    """Handle requests rejected by the engine"""
    logger.warning(f"Rejected request on {request.url}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "validation_error",
            "detail": exc.message,
            "field": exc.field
        }
    )


def builder_exception_handler(request: Request, exc: CharacterBuilderException):
    """Handle any other API exception"""
    logger.error(f"Character builder error on {request.url}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "character_builder_error",
            "detail": exc.message
        }
    )


def build_contract_handler(request: Request, exc: BuildEngineError):
    """Engine contract violations (e.g. choosing from a type without pools)"""
    logger.warning(f"Build contract violation on {request.url}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "build_contract_violation",
            "detail": exc.message,
            "details": exc.details
        }
    )


def request_validation_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    logger.warning(f"Validation error on {request.url}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": "Invalid request data",
            "errors": exc.errors()
        }
    )


def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with consistent format"""
    logger.warning(f"HTTP {exc.status_code} on {request.url}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "detail": exc.detail
        }
    )


def global_exception_handler(request: Request, exc: Exception):
    """Handle all other unhandled exceptions"""
    logger.error(f"Unhandled exception on {request.url}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_server_error",
            "detail": "An unexpected error occurred",
            "request_id": getattr(request.state, 'request_id', 'unknown')
        }
    )


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware, handlers and routers"""
    app = FastAPI(
        title="Character Builder API",
        description="Build-state reconciliation engine for tabletop character creation",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan
    )

    app.add_middleware(RequestTrackingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Most specific first; handlers are looked up along the exception MRO
    app.add_exception_handler(SessionNotFoundException, session_not_found_handler)
    app.add_exception_handler(BuildSessionException, build_session_handler)
    app.add_exception_handler(ValidationException, validation_exception_handler)
    app.add_exception_handler(CharacterBuilderException, builder_exception_handler)
    app.add_exception_handler(BuildEngineError, build_contract_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    @app.get("/api/health/")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "character-builder-fastapi"}

    from fastapi_routers import build
    app.include_router(build.router, prefix="/api", tags=["build"])
    logger.info("✓ Routers loaded: build")

    return app


app = create_app()


def main():
    """Main entry point for FastAPI server"""
    configure_logging()
    settings = get_build_settings()
    logger.info("Starting Character Builder FastAPI backend...")
    logger.info(f"Server configuration: {settings.host}:{settings.port} (debug={settings.debug})")

    config = uvicorn.Config(
        app=app,
        host=settings.host,
        port=settings.port,
        log_level="info" if settings.debug else "warning",
        reload=False
    )
    server = uvicorn.Server(config)

    try:
        server.run()
    except Exception as e:
        logger.error(f"Failed to start FastAPI server: {e}")
        raise


if __name__ == "__main__":
    main()
