"""
Campus Catalog — Multi-Tenant Course & Student Management Backend
FastAPI entry point.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.exceptions import CatalogError, Unexpected, ValidationFailed
from app.core.logging_config import get_logger, setup_logging
from app.core.middleware import RequestLoggingMiddleware
from app.routers import academics, auth, courses, student, students
from app.utils.response import catalog_error_response

setup_logging()
logger = get_logger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Tenant-scoped course catalog and student management",
    version="1.0.0",
    debug=settings.DEBUG,
)

# Request ids + access log
app.add_middleware(RequestLoggingMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(students.router)
app.include_router(academics.router)
app.include_router(student.router)

# ═══════════════════════════════════════════════════════════
# ERROR HANDLERS
# ═══════════════════════════════════════════════════════════

@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return catalog_error_response(exc)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "request"
        errors.setdefault(field, error.get("msg", "Invalid value"))
    return catalog_error_response(ValidationFailed("Validation failed", errors=errors))

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    message = str(exc) if settings.DEBUG else "An unexpected error occurred"
    return catalog_error_response(Unexpected(message))

@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "status": "running",
    }

@app.get("/api/health")
async def health():
    return {"status": "healthy"}
