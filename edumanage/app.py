"""
FastAPI application for the EduManage back office API.

Features:
- Loads environment variables from a `.env` file if present.
- Configures logging and CORS middleware.
- Turns service errors into JSON responses with their HTTP status.
- Handles request validation errors with a custom 400 response.
- Mounts the resource routers under `/api` and health at the root.

API:
    Title: EduManage API
    Version: 0.1.0
"""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env before any module reads its configuration
load_dotenv(Path(__file__).parent.parent / ".env")

import fastapi  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.requests import Request  # noqa: E402

from edumanage import __version__  # noqa: E402
from edumanage.api.routes import API_ROUTERS, health  # noqa: E402
from edumanage.middleware.logging import setup_logging  # noqa: E402
from edumanage.middleware.rate_limit import setup_rate_limit  # noqa: E402
from edumanage.services.errors import ServiceError  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_PREFIX = "/api"
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

app = fastapi.FastAPI(
    title="EduManage API",
    description="Back office API for leads, students, courses, payments and content",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,  # Must stay False with wildcard origins
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    """Map a service-layer error to its HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"Service error on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.status_code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    """
    Handle request validation errors.

    Returns a 400 JSON response when the incoming request is malformed
    or missing required fields. Field-level details are logged only.
    """
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")

    return JSONResponse(
        status_code=400,
        content={"detail": "Bad request. There are missing field(s), or a field is malformed or invalid."}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors.

    Keeps stack traces and storage details out of the response; the full
    exception is logged.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {type(exc).__name__}: {str(exc)}",
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error. Please contact support if this persists.",
            "error_type": "internal_error"
        }
    )


app.include_router(health.router)
for router in API_ROUTERS:
    app.include_router(router, prefix=API_PREFIX)


@app.get("/")
def read_root():
    """
    Root endpoint of the API.

    Returns the service name and version.
    """
    return {"message": "EduManage API", "version": __version__}


app = setup_logging(app)  # type: ignore[assignment]
app = setup_rate_limit(app)  # type: ignore[assignment]
