from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from healthinfo.core.config import get_settings
from healthinfo.core.errors import ServiceError
from healthinfo.core.middleware import AuthMiddleware
from healthinfo.routers.auth import router as auth_router
from healthinfo.routers.clients import router as clients_router
from healthinfo.routers.enrollments import router as enrollments_router
from healthinfo.routers.health import router as health_router
from healthinfo.routers.programs import router as programs_router

# Fails fast when JWT_SECRET_KEY or ENCRYPTION_KEY is missing or invalid
settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Health information API - client registry, health programs and enrollments with field-level encryption.",
    version="0.1.0",
    debug=settings.DEBUG,
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Map service errors to their status code and a {detail, errors} body."""
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    content = {"detail": exc.message}
    if exc.errors:
        content["errors"] = exc.errors
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed input as 400 with messages grouped by field."""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path")) or "body"
        errors.setdefault(field, []).append(error["msg"])
    return JSONResponse(status_code=400, content={"detail": "Validation failed", "errors": errors})


# Global exception handler for unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected server errors with structured response."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": request.headers.get("X-Request-ID"),
        }
    )

# Added first so it runs inside CORS
app.add_middleware(AuthMiddleware, settings=settings)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router)
app.include_router(auth_router, prefix="/api")
app.include_router(clients_router, prefix="/api")
app.include_router(programs_router, prefix="/api")
app.include_router(enrollments_router, prefix="/api")


@app.get("/")
def read_root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "docs": "/docs",
        "health": "/health"
    }
