"""
Student Roster Service - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Maps service exceptions to the {success, message, data} envelope
5. Registers the students routes and a health check endpoint

Layout:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: record store, soft-delete policy, query engine,
  mutation workflow, field validation
- logging_config.py: Structured logging configuration
- database.py: Database connection management

Run with the `roster-server` console script (or `python -m roster.main`);
HOST and PORT choose the listening address, default 0.0.0.0:8000.
"""

import os
import time

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from roster.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id, elapsed_ms
)
from roster.routes import students
from roster.database import DATABASE_URL, create_tables
from roster.exceptions import (
    NotFound, NoOpUpdate, ValidationFailure, ConcurrentUpdate
)
from roster.schemas import error_response
from roster.services.validation import field_errors

# Import models so they are registered with Base.metadata
from roster.models.student import Student  # noqa: F401

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")

# Auto-create tables for SQLite
if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite, creating tables directly")
    create_tables()

# ──────────────────────────────────────────────────────────────
# Create FastAPI application
# ──────────────────────────────────────────────────────────────
app = FastAPI(
    title="Student Roster Service",
    description=(
        "Create, look up, update and soft-delete student records, "
        "with free-text search and consistent sorted pagination."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


# ──────────────────────────────────────────────────────────────
# Request ID Middleware
#
# Assigns a UUID to every request, exposes it to all log entries
# through a context variable, returns it as X-Request-ID and logs
# start/completion with latency.
# ──────────────────────────────────────────────────────────────
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID") or generate_request_id()
    request_id_var.set(req_id)

    start_time = time.perf_counter()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": elapsed_ms(start_time),
            "status_code": response.status_code
        })

    return response


# ──────────────────────────────────────────────────────────────
# Exception handlers
# ──────────────────────────────────────────────────────────────
@app.exception_handler(NotFound)
@app.exception_handler(NoOpUpdate)
async def not_found_handler(request: Request, exc):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND,
                        content=error_response(str(exc)))


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                        content=error_response(str(exc), exc.errors))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = field_errors(exc.errors())
    log_with_context(logger, "INFO", "Rejected invalid input",
                     extra_data={"errors": errors})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                        content=error_response("Validation failed", errors))


@app.exception_handler(ConcurrentUpdate)
async def concurrent_update_handler(request: Request, exc: ConcurrentUpdate):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT,
                        content=error_response(str(exc)))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    log_with_context(get_logger("db"), "ERROR",
                     "Database error: {}".format(exc.__class__.__name__),
                     extra_data={"path": request.url.path})
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        content=error_response("Database operation failed"))


# ──────────────────────────────────────────────────────────────
# Register API routes
# ──────────────────────────────────────────────────────────────
app.include_router(students.router, tags=["Students"])


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness endpoint for container health checks."""
    return {"status": "healthy", "service": "student-roster", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Student Roster Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "list": "GET /api/students",
            "list_paged": "GET /api/students/page",
            "detail": "GET /api/students/{id}",
            "create": "POST /api/students",
            "update": "PUT /api/students/{id}",
            "delete": "DELETE /api/students/{id}",
            "search": "GET /api/students/search[/page]",
            "by_name": "GET /api/students/by-name[/page]",
            "by_phone": "GET /api/students/by-phone[/page]"
        }
    }


def run():
    """Serve the app with uvicorn on HOST:PORT."""
    uvicorn.run(
        "roster.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    run()
