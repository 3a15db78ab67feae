"""Identity Service

Main FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from identity_service.api.routes import auth, secrets
from identity_service.config.settings import Settings, get_settings
from identity_service.core.auth.factory import build_gateway
from identity_service.core.gateway import AuthGateway
from identity_service.infrastructure.redis.client import RedisClient

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_app(settings: Optional[Settings] = None, gateway: Optional[AuthGateway] = None) -> FastAPI:
    """Create the FastAPI application

    Args:
        settings: Application settings (defaults to environment configuration)
        gateway: Pre-built gateway; when given, startup does not touch Redis

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        # Startup
        logger.info(f"Starting {settings.service_name} v{settings.service_version}")
        logger.info(f"Environment: {settings.environment}")

        redis_client = None
        if gateway is not None:
            app.state.gateway = gateway
        else:
            if settings.store_backend == "redis":
                redis_client = RedisClient(settings)
                try:
                    await redis_client.connect()
                    logger.info("Redis connection established")
                except Exception as e:
                    logger.error(f"Failed to connect to Redis: {e}")
                    raise
                app.state.redis = redis_client
            app.state.gateway = build_gateway(
                settings, redis_client.get_client() if redis_client else None
            )

        yield

        # Shutdown
        logger.info("Shutting down Identity Service")
        if redis_client:
            await redis_client.disconnect()
            logger.info("Redis connection closed")

    app = FastAPI(
        title="Identity Service",
        version=settings.service_version,
        description="Local and delegated authentication with server-side sessions",
        lifespan=lifespan,
    )
    app.state.settings = settings
    if gateway is not None:
        app.state.gateway = gateway

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    @app.get("/health")
    async def root_health_check():
        """Root health check endpoint"""
        return {
            "status": "healthy",
            "service": settings.service_name,
            "version": settings.service_version,
            "environment": settings.environment,
        }

    app.include_router(auth.router)
    app.include_router(secrets.router)

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """Global exception handler for unhandled errors"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
            },
        )

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )
