import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dashboard.api.api import api_router
from dashboard.core.config import settings
from dashboard.core.error_handlers import register_settings_error_handlers
from dashboard.db.init_db import init_db

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title=f"{settings.PROJECT_NAME} API", version=settings.APP_VERSION)
    register_settings_error_handlers(app)

    # CORS
    # With the default wildcard origin the API middleware answers every request
    # itself; an explicit origin list also needs credentialed preflights handled.
    if settings.BACKEND_CORS_ORIGINS and "*" not in settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type"],
        )

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.on_event("startup")
    def on_startup():
        init_db()
        logger.info("%s API %s started", settings.PROJECT_NAME, settings.APP_VERSION)

    @app.get("/")
    def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    return app


app = create_app()
