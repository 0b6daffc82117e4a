import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from starlette import status
from slowapi import _rate_limit_exceeded_handler

from app.config import settings
from app.database import engine, init_db
from app.exceptions import (
    CatalogError,
    ConflictError,
    NotFoundError,
    StorageIOError,
    ValidationError,
)
from app.limits import limiter, RateLimitExceeded, SlowAPIMiddleware
from app.routers import admin, cars

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Space Motors catalog ready (uploads in %s)", settings.UPLOADS_DIR)
    yield
    engine.dispose()


app = FastAPI(title="Space Motors", lifespan=lifespan)

# Rate limiting middleware and handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

_ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StorageIOError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    """Map catalog errors to HTTP responses"""
    status_code = next(
        (code for error_cls, code in _ERROR_STATUS if isinstance(exc, error_cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error(f"Catalog error on {request.url.path}: {exc.message}", exc_info=exc)
    content = {"detail": exc.message}
    if exc.details is not None:
        content["errors"] = exc.details
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(OperationalError)
async def database_operational_error_handler(request: Request, exc: OperationalError):
    """Handle database connection/operation errors"""
    logger.error(f"Database operational error: {exc}", exc_info=True)
    if "locked" in str(exc).lower():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Database busy. Please try again.", "error": "database_busy"},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error occurred", "error": "database_error"},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Handle general SQLAlchemy errors"""
    logger.error(f"Database error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error occurred", "error": "database_error"},
    )


@app.get("/healthy", status_code=status.HTTP_200_OK)
def health_check():
    return {"status": "Healthy"}


app.include_router(cars.router)
app.include_router(admin.router)

os.makedirs(settings.UPLOADS_DIR, exist_ok=True)
app.mount("/images", StaticFiles(directory=settings.UPLOADS_DIR), name="images")
