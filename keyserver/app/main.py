# keyserver/app/main.py
import logging
import time
from contextlib import asynccontextmanager
from datetime import timedelta
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from keyserver.core.clock import utcnow
from keyserver.core.config import settings
from keyserver.core.database import engine, init_db, wait_for_db
from keyserver.core.exceptions import KeyServerError
from keyserver.core.rate_limit import init_rate_limiter
from keyserver.app.exception_handlers import (
    keyserver_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from keyserver.app.routers import admin, bind, keys
from keyserver.services.session_manager import SessionManager

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    redis_client = None

    # 1. Database
    await wait_for_db()
    await init_db()

    # 2. Rate limiter (Redis) only when enabled
    if settings.RATE_LIMIT_ENABLED:
        redis_client = await init_rate_limiter()
        logger.info("Rate limiter initialized")

    # 3. Admin login is impossible without configured passwords
    if not settings.admin_passwords:
        logger.warning("No admin password configured (ADMIN_DEFAULT_PASSWORD / ADMIN_TEMP_PASSWORD); admin login is disabled")

    yield

    if redis_client is not None:
        await redis_client.aclose()
    await engine.dispose()
    logger.info("Shutdown complete")

tags_metadata = [
    {"name": "keys", "description": "Access key lifecycle"},
    {"name": "bind", "description": "Script-based key binding"},
    {"name": "admin-auth", "description": "Admin login / logout"},
    {"name": "admin", "description": "Admin sessions & statistics"},
]

app = FastAPI(
    title="Keyserver API",
    description="Time-limited access keys bound to user identifiers",
    version=settings.VERSION,
    lifespan=lifespan,
    openapi_tags=tags_metadata
)

# Built once per process; sessions vanish on restart
app.state.session_manager = SessionManager(ttl=timedelta(hours=settings.ADMIN_SESSION_TTL_HOURS))

# Prometheus Metrics (Expose /metrics)
Instrumentator().instrument(app).expose(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    client_ip = request.client.host if request.client else "unknown"
    logger.info(
        f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms {client_ip}"
    )
    return response

app.add_exception_handler(KeyServerError, keyserver_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

@app.get("/")
def read_root():
    return {
        "msg": "Keyserver API",
        "code": 200,
        "version": settings.VERSION,
        "endpoints": {
            "POST /api/keys/create": "Create new access key",
            "GET /api/keys/validate/{key_id}": "Validate a key",
            "GET /api/keys/info/{key_id}": "Get key information",
            "GET /api/keys/user/{user_id}": "Get all keys for user",
            "GET /bind/{key_id}.js": "Get validation JS file",
            "GET /health": "Health check",
        },
    }

@app.get("/health")
def health_check():
    return {
        "msg": "Keyserver API is running",
        "code": 200,
        "timestamp": utcnow().isoformat(timespec="milliseconds") + "Z",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
    }

app.include_router(keys.router)
app.include_router(bind.router)
app.include_router(admin.auth_router)
app.include_router(admin.router)
