import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import models so they're registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS
from .database import Base, engine
from .domain.slots.router import router as slots_router
from .domain.swaps.router import router as swaps_router
from .errors import InconsistentState, SlotSwapError
from .routes.realtime import router as realtime_router
from .routes.users import router as users_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
SLOW_REQUEST_THRESHOLD = float(os.getenv("SLOW_REQUEST_THRESHOLD", "2.0"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 SlotSwap API starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("✅ Slot and swap tables ready")
    except Exception as e:
        # Several workers may race to create the same tables
        if "already exists" in str(e) or "duplicate key" in str(e):
            logger.info("Tables were created by another worker")
        else:
            logger.error(f"❌ Failed to create tables: {e}")
            raise

    yield
    logger.info("SlotSwap API shutting down...")


app = FastAPI(title="SlotSwap API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(SlotSwapError)
async def slot_swap_exception_handler(request: Request, exc: SlotSwapError):
    """Map domain errors to their HTTP status with a readable message"""
    if isinstance(exc, InconsistentState):
        logger.error(f"🚨 {request.method} {request.url.path} hit an inconsistent state: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.kind},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters, e.g. a non-boolean ``accept``"""
    errors = jsonable_errors(exc)
    logger.warning(f"⚠️ Validation error for {request.method} {request.url.path}: {errors}")
    return JSONResponse(status_code=422, content={"detail": errors, "error": "invalid_request"})


def jsonable_errors(exc: RequestValidationError) -> list:
    # Pydantic may put exception objects under "ctx", which JSON can't encode
    return [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"💥 {request.method} {request.url.path} - Error: {e}")
        raise
    elapsed = time.perf_counter() - started
    if elapsed > SLOW_REQUEST_THRESHOLD:
        logger.warning(f"🐌 {request.method} {request.url.path} took {elapsed:.2f}s")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/docs", "/openapi.json"])
else:
    logger.warning("Security headers DISABLED - only use in development!")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(users_router)
app.include_router(slots_router)
app.include_router(swaps_router)
app.include_router(realtime_router)


@app.get("/")
def root():
    return {
        "message": "SlotSwap API",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "users": "/users/me",
            "events": "/events",
            "swaps": "/swaps",
            "notifications": "/ws/notifications",
        },
    }


@app.get("/health")
def health():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
