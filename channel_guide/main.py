from contextlib import asynccontextmanager
import logging

import httpx
from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from channel_guide.config import settings, setup_logging
from channel_guide.dependencies import get_service_locator, reset_service_locator
from channel_guide.services import (
    GuideState,
    InMemoryPlaylistLookup,
    ScheduleResolver,
    directory_scheduler
)

from channel_guide.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("="*60)
    logger.info("Starting Channel Guide Service...")
    logger.info("="*60)

    client = httpx.AsyncClient(follow_redirects=True)

    try:
        # Build shared state and register services
        logger.info("Initializing guide services...")
        state = GuideState.from_settings(settings)
        playlist = InMemoryPlaylistLookup()
        resolver = ScheduleResolver(state, client, playlist, settings)

        locator = get_service_locator()
        locator.register_singleton(InMemoryPlaylistLookup, playlist)
        locator.register_singleton(ScheduleResolver, resolver)
        logger.info("Guide services initialized successfully")

        # Start scheduler
        logger.info("Starting scheduler...")
        directory_scheduler.start(resolver)
        logger.info("Scheduler started successfully")

        logger.info("="*60)
        logger.info("Channel Guide Service started successfully")
        logger.info("="*60)
    except Exception as e:
        logger.error("="*60)
        logger.error(f"Failed to start Channel Guide Service: {e}", exc_info=True)
        logger.error("="*60)
        await client.aclose()
        raise

    yield

    logger.info("="*60)
    logger.info("Shutting down Channel Guide Service...")
    logger.info("="*60)

    try:
        directory_scheduler.shutdown()
        logger.info("Scheduler stopped")
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)

    await client.aclose()
    reset_service_locator()

    logger.info("="*60)
    logger.info("Channel Guide Service stopped")
    logger.info("="*60)


app = FastAPI(
    title="Channel Guide Service",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation details: {exc.errors()}")

    try:
        body = await request.body()
        logger.error(f"Request body: {body.decode('utf-8')}")

    except (ValueError, UnicodeDecodeError, RuntimeError):
        logger.error("Could not read request body")

    errors = []
    for error in exc.errors():
        error_dict = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        }
        errors.append(error_dict)

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors
        }
    )
