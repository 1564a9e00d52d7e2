import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import all models to ensure they're registered with SQLAlchemy Base
from . import (
    models,  # noqa: F401
    models_whatsapp,  # noqa: F401
)
from .config import (
    ALLOWED_ORIGINS,
    APP_NAME,
    ENABLE_BACKGROUND_SCHEDULERS,
    PIX_EXPIRATION_SCHEDULER,
    SLOW_REQUEST_THRESHOLD_SECONDS,
)
from .database import Base, engine
from .routes.checkout import router as checkout_router
from .routes.checkout_webhooks import router as checkout_webhooks_router
from .routes.email import router as email_router
from .routes.notification_templates import router as notification_templates_router
from .routes.notifications import router as notifications_router
from .services.email_retry_queue import email_retry_queue
from .workers.pix_expiration_worker import pix_expiration_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_tables() -> None:
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("✅ Database tables ready")
    except Exception as e:
        # Two API workers booting together can race on CREATE TABLE
        if "already exists" in str(e) or "duplicate key" in str(e):
            logger.info("ℹ️ Database tables already created by another worker")
        else:
            logger.error(f"❌ Failed to create database tables: {e}")
            raise


def start_background_jobs() -> None:
    if not ENABLE_BACKGROUND_SCHEDULERS:
        logger.warning("⚠️ Background schedulers disabled: failed emails will not be retried")
        return

    email_retry_queue.start()
    if PIX_EXPIRATION_SCHEDULER == "in_process":
        pix_expiration_scheduler.start()
    else:
        logger.info(f"⏭️ PIX expiration sweep left to the '{PIX_EXPIRATION_SCHEDULER}' scheduler")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 {APP_NAME} API starting")
    create_tables()
    start_background_jobs()

    yield

    logger.info(f"👋 {APP_NAME} API shutting down")
    await pix_expiration_scheduler.stop()
    await email_retry_queue.stop()


app = FastAPI(title=f"{APP_NAME} API", version="1.0.0", lifespan=lifespan)


def jsonable_errors(exc: RequestValidationError) -> list:
    # Validator exceptions land in ctx and are not JSON serializable
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"⚠️ Invalid payload for {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"❌ {request.method} {request.url.path} failed: {e}")
        raise

    elapsed = time.perf_counter() - started
    if elapsed > SLOW_REQUEST_THRESHOLD_SECONDS:
        logger.warning(
            f"🐌 Slow request {request.method} {request.url.path}: "
            f"{elapsed:.2f}s -> {response.status_code}"
        )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(checkout_router)
app.include_router(checkout_webhooks_router)
app.include_router(notification_templates_router)
app.include_router(notifications_router)
app.include_router(email_router)


@app.get("/")
def root():
    return {"message": f"{APP_NAME} API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
