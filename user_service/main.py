"""FastAPI application entry point"""
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from user_service.api import auth, health, profiles, users
from user_service.cache import create_store
from user_service.config import settings
from user_service.database import dispose_engine, init_db
from user_service.errors import AppError, EmailDeliveryError
from user_service.middleware.rate_limit import limiter
from user_service.utils.logger import logger, setup_logging

# Setup logging
setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler: open the store pools once, close them at shutdown"""
    # Startup
    logger.info("User service starting up", extra={
        "version": health.VERSION,
        "log_level": settings.LOG_LEVEL,
        "rate_limiting": settings.RATE_LIMIT_ENABLED,
        "monitoring": settings.METRICS_ENABLED
    })
    if settings.DATABASE_AUTO_CREATE:
        init_db()
    app.state.cache = create_store(
        settings.REDIS_URL,
        connect_timeout=settings.REDIS_CONNECT_TIMEOUT,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
    )
    yield
    # Shutdown
    app.state.cache.close()
    dispose_engine()
    logger.info("User service shutting down")


# Create FastAPI app
app = FastAPI(
    title="User Service",
    description="Accounts, authentication and profiles for the laundry delivery marketplace",
    version=health.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ===== Middleware Setup =====

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Monitoring middleware
if settings.METRICS_ENABLED:
    from user_service.middleware.monitoring import MonitoringMiddleware
    app.add_middleware(MonitoringMiddleware)

    # Prometheus metrics
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health", "/health/ready", "/health/live"],
        inprogress_name="user_service_requests_inprogress",
        inprogress_labels=True
    )
    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint=settings.METRICS_PATH, include_in_schema=False)

# Rate limiting (the limiter is a no-op when RATE_LIMIT_ENABLED is false)
app.state.limiter = limiter

# ===== Route Setup =====

app.include_router(health.router)
app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(profiles.router, prefix=settings.API_PREFIX)
app.include_router(users.router, prefix=settings.API_PREFIX)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "service": health.SERVICE_NAME,
        "version": health.VERSION,
        "status": "operational",
        "docs": "/docs",
        "health": "/health",
        "metrics": settings.METRICS_PATH if settings.METRICS_ENABLED else None
    }


# ===== Error Handlers =====

def _error(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message}, headers=headers)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Expected failures: the message is already safe to show the client"""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _error(exc.status_code, exc.message, headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed input maps to 400 with every field message joined"""
    messages = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return _error(400, ", ".join(messages) or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors"""
    logger.warning(
        "Rate limit exceeded",
        extra={
            "path": request.url.path,
            "method": request.method,
        }
    )
    return _error(429, "Too many requests. Please try again later.")


@app.exception_handler(EmailDeliveryError)
@app.exception_handler(SQLAlchemyError)
@app.exception_handler(redis.RedisError)
async def store_error_handler(request: Request, exc: Exception):
    """Store and mail relay failures: log the detail, return a generic 500"""
    logger.error(
        f"{exc.__class__.__name__} while handling request",
        extra={"path": request.url.path, "method": request.method},
        exc_info=exc,
    )
    return _error(500, "An unexpected error occurred. Please try again later.")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for uncaught errors"""
    logger.error(
        f"Unhandled exception: {exc.__class__.__name__}",
        extra={
            "path": request.url.path,
            "method": request.method
        },
        exc_info=exc
    )
    return _error(500, "An unexpected error occurred. Please try again later.")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("user_service.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
