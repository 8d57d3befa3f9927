"""FastAPI application entry point."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.logging import RequestLog, current_log, get_client_ip, log_request
from api.models.responses import ErrorCodes, ErrorResponse
from api.routes import (
    alt_requests_router,
    analytics_router,
    compensation_router,
    health_router,
    livestreams_router,
    periods_router,
    reconciliation_router,
)
from core.config import API_DEBUG, API_VERSION, DB_PATH, LOG_LEVEL
from core.database import get_connection, init_schema
from core.errors import (
    ConflictError,
    ForbiddenError,
    FrozenStateError,
    InternalError,
    NotFoundError,
    RosterError,
    ValidationError,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STATUS_BY_ERROR = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ForbiddenError, 403),
    (FrozenStateError, 423),
    (InternalError, 500),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup: make sure the database and its tables exist
    db_path = Path(app.state.db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    try:
        init_schema(conn)
    finally:
        conn.close()

    yield


app = FastAPI(
    title="Livestream Roster API",
    description="Scheduling, reconciliation and payroll for livestream staff",
    version=API_VERSION,
    debug=API_DEBUG,
    lifespan=lifespan,
)
app.state.db_path = DB_PATH

# CORS middleware (for development)
if API_DEBUG:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Record every request into api_requests, whatever its outcome."""
    start_time = time.time()
    request_log = RequestLog(
        endpoint=request.url.path,
        method=request.method,
        client_ip=get_client_ip(request),
    )
    request.state.request_log = request_log

    try:
        response = await call_next(request)
        request_log.status_code = response.status_code
        return response
    except Exception as e:
        request_log.status_code = 500
        request_log.error_code = ErrorCodes.INTERNAL_ERROR
        request_log.error_message = str(e)
        raise
    finally:
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)
        try:
            await asyncio.to_thread(log_request, request_log, request.app.state.db_path)
        except Exception:
            # Don't fail the request if logging fails
            logger.exception("Failed to write request log %s", request_log.request_id)


def _error_response(request: Request, status_code: int, error: str, code: str, details: list[str]):
    request_log = current_log(request)
    if request_log is not None:
        request_log.error_code = code
        request_log.error_message = error
        for detail in details:
            request_log.details.append(("validation_error", detail))
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, code=code, details=details).model_dump(),
    )


@app.exception_handler(RosterError)
async def roster_error_handler(request: Request, exc: RosterError):
    """Map domain errors to HTTP statuses with the standard error body."""
    status_code = next((code for cls, code in STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status_code == 500:
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
        return _error_response(request, 500, "Internal server error", ErrorCodes.INTERNAL_ERROR, [])
    return _error_response(request, status_code, exc.message, exc.code, exc.details)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    ]
    return _error_response(request, 422, "Invalid request", ErrorCodes.INVALID_REQUEST, details)


# Global exception handler for unexpected errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with standard error format."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            code=ErrorCodes.INTERNAL_ERROR,
            details=[],
        ).model_dump(),
    )


# Include routers
app.include_router(health_router)
app.include_router(periods_router)
app.include_router(livestreams_router)
app.include_router(alt_requests_router)
app.include_router(reconciliation_router)
app.include_router(compensation_router)
app.include_router(analytics_router)


# Entry point for uvicorn
if __name__ == "__main__":
    import uvicorn

    from core.config import API_HOST, API_PORT

    uvicorn.run(
        "api.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_DEBUG,
    )
