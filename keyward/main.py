"""Keyward - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from . import __version__
from .api.auth import ApiKeyAuthenticationMiddleware, init_dependencies
from .api.errors import format_timestamp, register_exception_handlers
from .api.routes import api_router, auth_router
from .api.security import SecurityHeadersMiddleware, SecurityLoggingMiddleware
from .audit.logger import SecurityLogger
from .audit.redaction import install_log_redaction
from .auth.passwords import PasswordHasher
from .auth.providers import build_key_registry
from .auth.service import IdentityService
from .auth.store import CredentialStore
from .config.settings import Settings, get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
install_log_redaction()
logger = logging.getLogger("keyward")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application for the given settings."""
    settings = settings or get_settings()
    logging.getLogger("keyward").setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        logger.info(f"Starting {settings.app_name} v{__version__}")

        store = CredentialStore(settings.database_path, timeout=settings.database_timeout)
        store.initialize()
        logger.info(f"Credential store ready at {settings.database_path}")

        service = IdentityService(store, PasswordHasher(rounds=settings.bcrypt_rounds))
        registry = build_key_registry(settings, store)
        logger.info(f"Key registry: {registry.name}")

        init_dependencies(app, registry, service)

        yield

        # Shutdown
        logger.info(f"Shutting down {settings.app_name}")

    app = FastAPI(
        title="Keyward",
        description="API key authentication and identity service",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Added last runs first: headers, then security logging, then authentication
    app.add_middleware(ApiKeyAuthenticationMiddleware, public_paths=settings.public_path_list)
    app.add_middleware(
        SecurityLoggingMiddleware,
        security_logger=SecurityLogger(enabled=settings.security_log_enabled),
    )
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(api_router)

    @app.get("/")
    async def home():
        """Public welcome endpoint."""
        return {
            "message": f"Welcome to {settings.app_name}!",
            "status": "Application is running",
            "version": __version__,
            "timestamp": format_timestamp(),
        }

    @app.get("/health")
    async def health():
        """Simple health check endpoint."""
        return {
            "status": "UP",
            "application": settings.app_name,
            "version": __version__,
            "timestamp": format_timestamp(),
        }

    return app


app = create_app()


def run():
    """Run the application (entry point for CLI)."""
    settings = get_settings()

    logger.info(f"Starting server on {settings.api_host}:{settings.api_port}")

    uvicorn.run(
        "keyward.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
