"""
User Service - FastAPI Application
Authentication, user management and log access for the App Starter Kit
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from contextlib import asynccontextmanager

from shared.applog import AppLogger, LoggerConfig
from shared.services import InMemoryDataSource, PostgresDataSource, UserService
from shared.utils.logger import setup_logging
from shared.utils.security import SecurityUtils

from app.config import settings
from app.routes import auth, logs, users
from app.services.auth_service import AuthService
from app.utils.database import close_database, init_database
from app.utils.notification_client import create_notifier
from app.utils.redis_session import create_session_store

logger = logging.getLogger(__name__)


async def create_data_source():
    """Storage selected by DATA_SOURCE"""
    if settings.data_source == "postgres":
        pool = await init_database(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size
        )
        data_source = PostgresDataSource(pool)
        await data_source.ensure_schema()
        return data_source

    if settings.data_source != "memory":
        raise ValueError(f"Unknown DATA_SOURCE: {settings.data_source}")

    logger.warning("Using in-memory user storage; data is lost on restart")
    return InMemoryDataSource()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    setup_logging(settings.log_config_path or None, settings.log_level, settings.log_format)
    logger.info("User Service starting up...")

    app_logger = AppLogger(LoggerConfig.from_settings(settings)).open()
    data_source = await create_data_source()
    sessions = await create_session_store(settings.redis_url)
    notifier = create_notifier(settings.notification_service_url, settings.frontend_url)

    security = SecurityUtils(
        jwt_secret=settings.jwt_secret,
        jwt_algorithm=settings.jwt_algorithm,
        access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
        refresh_token_expire_days=settings.jwt_refresh_token_expire_days
    )
    user_service = UserService(data_source, logger=app_logger)

    app.state.app_logger = app_logger
    app.state.security = security
    app.state.sessions = sessions
    app.state.notifier = notifier
    app.state.user_service = user_service
    app.state.auth_service = AuthService(
        user_service,
        sessions,
        security,
        app_logger,
        notifier=notifier,
        verification_ttl_hours=settings.email_verification_expire_hours,
        reset_ttl_hours=settings.password_reset_expire_hours
    )

    app_logger.info("User Service started", data={'data_source': settings.data_source})

    yield

    # Shutdown
    logger.info("User Service shutting down...")
    await sessions.close()
    await notifier.close()
    await close_database()
    app_logger.close()


# Create FastAPI application
app = FastAPI(
    title="User Service",
    description="Authentication and user management for the App Starter Kit",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Custom HTTP exception handler"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "message": exc.detail,
            "status_code": exc.status_code
        },
        headers=exc.headers
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Service health check"""
    return {
        "status": "healthy",
        "service": "user-service",
        "version": "1.0.0"
    }


# Include routers
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/v1/users", tags=["User Management"])
app.include_router(logs.router, prefix="/admin", tags=["Logs"])


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "User Service",
        "version": "1.0.0",
        "description": "Authentication and user management",
        "docs": "/docs"
    }
