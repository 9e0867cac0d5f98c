"""Bike-share economics service entry point."""

import logging
import uuid

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CORS_ALLOWED_ORIGINS, LOG_LEVEL, PORT
from core.api import status_for_exception
from core.exceptions import BikeshareException
from core.http.session import cleanup_session
from core.redis import close_shared_redis
from db import db_manager, init_database
from stations import router as stations_router
from trips import router as trips_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Bikeshare Economics",
    description="Trip normalization, ride economics and ride-history sync",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
logger.info("CORS origins: %s", CORS_ALLOWED_ORIGINS)

app.include_router(trips_router)
app.include_router(stations_router)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}


@app.on_event("startup")
async def on_startup():
    """Connect to MongoDB and bind the document models."""
    try:
        await init_database()
    except Exception:
        logger.critical("Database initialization failed; aborting startup", exc_info=True)
        raise
    logger.info("Bikeshare service started")


@app.on_event("shutdown")
async def on_shutdown():
    await cleanup_session()
    await close_shared_redis()
    await db_manager.cleanup_connections()
    logger.info("Bikeshare service stopped")


@app.exception_handler(BikeshareException)
async def bikeshare_error_handler(request: Request, exc: BikeshareException):
    """Errors raised outside an ``api_route`` handler (middleware, dependencies)."""
    status_code, level = status_for_exception(exc)
    logger.log(
        level,
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    error_id = uuid.uuid4().hex
    logger.error(
        "Unhandled error %s on %s %s",
        error_id,
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "error_id": error_id},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=PORT, log_level=LOG_LEVEL.lower())
