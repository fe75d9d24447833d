"""ASGI entry point for the driver route tracking API."""

import logging
import os
import time
import uuid
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.http.session import cleanup_session
from core.redis import close_shared_redis
from db import db_manager
from sessions import router as sessions_router

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

DEV_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
)


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    origins = [item.strip() for item in raw.split(",") if item.strip()]
    if origins:
        logger.info("CORS origins: %s", origins)
        return origins
    logger.warning("CORS_ALLOWED_ORIGINS is empty, allowing dev origins %s", DEV_ORIGINS)
    return list(DEV_ORIGINS)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    try:
        await db_manager.init_beanie()
    except Exception:
        logger.critical("MongoDB setup failed, refusing to start", exc_info=True)
        raise
    logger.info("Route tracker ready")
    yield
    # Shared clients are closed in reverse order of first use.
    await close_shared_redis()
    await cleanup_session()
    await db_manager.cleanup_connections()
    logger.info("Route tracker stopped")


app = FastAPI(title="Driver Route Tracker", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.include_router(sessions_router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "uptimeSeconds": round(time.monotonic() - STARTED_AT, 1)}


@app.exception_handler(500)
async def unhandled_error(request: Request, exc: Exception):
    error_id = uuid.uuid4().hex
    logger.error(
        "Unhandled error %s on %s %s: %s",
        error_id,
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "error_id": error_id},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        reload=os.getenv("RELOAD", "").lower() in {"1", "true", "yes"},
    )
