"""
FastAPI application factory
"""
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

from finledger.config import get_settings
from finledger.infrastructure.db.session import check_db_connection
from finledger.application.errors import (
    LedgerError, ValidationError, NotFoundError, ConflictError,
)
from finledger.api.responses import failure
from finledger.api.v1 import accounts, movements, goals

logger = logging.getLogger(__name__)

# Taxonomy -> HTTP status. Anything not listed is a 500.
ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
}


def _validation_message(exc: RequestValidationError) -> str:
    """First pydantic error as 'field: message'"""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.EXPIRY_SWEEP_ENABLED:
        from finledger.application.scheduler import start_scheduler, shutdown_scheduler
        start_scheduler()
        try:
            yield
        finally:
            shutdown_scheduler()
    else:
        yield


def create_app() -> FastAPI:
    """
    Application factory - builds and configures the FastAPI app

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(
        title="finledger",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # Error-logging middleware: catches exceptions the handlers below don't
    from starlette.middleware.base import BaseHTTPMiddleware

    class ErrorLoggingMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            try:
                return await call_next(request)
            except Exception:
                logger.error(
                    "Unhandled error on %s %s\n%s",
                    request.method, request.url.path, traceback.format_exc(),
                )
                return failure(500, "Internal server error")

    app.add_middleware(ErrorLoggingMiddleware)

    # Error envelope
    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        status_code = ERROR_STATUS.get(type(exc), 500)
        return failure(status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.warning("Rejected request to %s: %s", request.url.path, message)
        return failure(400, message)

    # Routers
    app.include_router(accounts.router)
    app.include_router(movements.router)
    app.include_router(goals.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (database reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "finledger.main:app",
        host="127.0.0.1",
        port=8000,
        reload=get_settings().DEBUG,
    )
