"""Main FastAPI application module.

This module initializes the FastAPI application, registers all route handlers
and the error handlers, and seeds default data on startup.
"""

import logging
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.logging_config import setup_logging
from config import (
    API_HOST,
    API_PORT,
    CORS_ALLOWED_ORIGINS,
    SEED_ON_STARTUP,
)
from core.database import SessionLocal
from api.routes import auth, user_management, role_management, permission_management
from api.routes import employee, question, question_status, vote, feature_request
from api.routes import logging_route, question_category, question_tag, review
from utils.seed import seed_defaults

# Setup logging
setup_logging()

logger = logging.getLogger(__name__)

API_NAME = "EmployDEX Base API"
API_VERSION = "1.0.0"
API_DESCRIPTION = "Role-based administration backend: users, roles, employees and a question bank."

# Initialize FastAPI application
app = FastAPI(
    title=API_NAME,
    description=API_DESCRIPTION,
    version=API_VERSION,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route handlers
app.include_router(auth.router)
app.include_router(user_management.router)
app.include_router(role_management.router)
app.include_router(permission_management.router)
app.include_router(logging_route.router)
app.include_router(employee.router)
app.include_router(question.router)
app.include_router(question_status.router)
app.include_router(question_category.router)
app.include_router(question_tag.router)
app.include_router(review.router)
app.include_router(vote.router)
app.include_router(feature_request.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation failures as 400 with one entry per field."""
    errors = []
    for error in exc.errors():
        # Drop the "body"/"query"/"path" prefix from the location
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(location), "message": error.get("msg", "Invalid value")})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    error_id = uuid.uuid4().hex
    logger.exception("Unhandled error %s on %s %s", error_id, request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"message": "An unexpected error occurred", "id": error_id}},
    )


@app.on_event("startup")
def startup_tasks() -> None:
    """Seed default roles, permissions, statuses and the admin account."""
    if not SEED_ON_STARTUP:
        return
    db = SessionLocal()
    try:
        seed_defaults(db)
    finally:
        db.close()


@app.get("/", summary="API root", tags=["Info"])
def root() -> dict:
    """API root, returns API information and documentation links.

    Returns:
        Dictionary with API information and documentation links.
    """
    return {
        "name": API_NAME,
        "version": API_VERSION,
        "description": API_DESCRIPTION,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": "/api/health",
    }


@app.get("/api/health", summary="Health check", tags=["Health"])
def health() -> dict:
    """Health check endpoint.

    Returns:
        Dictionary with status "ok".
    """
    return {"status": "ok"}


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    server_url = f"http://{API_HOST}:{API_PORT}"
    logger.info("Starting %s at %s (docs: %s/docs)", API_NAME, server_url, server_url)

    # reload=True enables auto-reload on code changes
    uvicorn.run("app:app", host=API_HOST, port=API_PORT, reload=True)
