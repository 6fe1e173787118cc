"""ASGI entry point.

Builds the FastAPI app: logging, CORS, request logging, routes and the
JSON error handlers. Run with ``uvicorn linkgate.main:app``.
"""

import time

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from linkgate.api import api_router
from linkgate.core.config import settings
from linkgate.core.logging import setup_logging
from linkgate.core.visit_logger import setup_visit_logging
from linkgate.db.base import create_db_and_tables, engine
from linkgate.middleware.logging import add_logging_middleware

logger = setup_logging()

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET"],
    allow_headers=["*"],
)

if settings.REQUEST_LOGGING_ENABLED:
    add_logging_middleware(app)

app.include_router(api_router)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected request to {request.url.path}: {exc}")
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "errors": exc.errors()},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log unexpected failures with an id the client can quote back."""
    error_id = f"error-{time.time()}"

    logger.opt(exception=exc).error(
        f"Unhandled exception in {request.method} {request.url.path}",
        error_id=error_id,
        host=request.headers.get("host"),
        query_params=dict(request.query_params),
        client_host=request.client.host if request.client else None,
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error occurred",
            "error_id": error_id,
            "message": str(exc) if settings.DEBUG else "Internal server error",
        },
    )


@app.on_event("startup")
async def startup_event():
    logger.info(
        f"Starting {settings.APP_NAME} v{settings.APP_VERSION}",
        environment=settings.ENVIRONMENT.value,
        debug=settings.DEBUG,
        object_store=settings.OBJECT_STORE_ENABLED,
    )

    setup_visit_logging()

    if settings.DB_CREATE_TABLES:
        await create_db_and_tables()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.APP_NAME}")
    await engine.dispose()
