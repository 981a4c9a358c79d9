import logging
import time

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from dashboard.api.endpoints.settings import ALLOWED_METHODS
from dashboard.core.config import settings
from dashboard.services.settings_store import SettingsError

logger = logging.getLogger("dashboard.middleware")

CORS_HEADERS = {
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _is_api_request(request: Request) -> bool:
    return request.url.path.startswith(settings.API_PREFIX)


def _is_settings_collection(request: Request) -> bool:
    return request.url.path.rstrip("/") == f"{settings.API_PREFIX}/settings"


def _allowed_origin(request: Request):
    origins = settings.BACKEND_CORS_ORIGINS
    if "*" in origins:
        return "*"
    origin = request.headers.get("origin")
    return origin if origin in origins else None


def _error_message(detail) -> str:
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        first = detail[0]
        if isinstance(first, dict) and first.get("msg"):
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            return f"{location}: {first['msg']}" if location else str(first["msg"])
    return "Invalid request"


class ApiRequestMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if not _is_api_request(request):
            return await call_next(request)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled API exception",
                extra={"path": request.url.path, "method": request.method},
            )
            response = JSONResponse(status_code=500, content={"error": "Internal server error"})

        duration_ms = (time.perf_counter() - start) * 1000
        allowed_origin = _allowed_origin(request)
        if allowed_origin:
            response.headers.setdefault("Access-Control-Allow-Origin", allowed_origin)
            for name, value in CORS_HEADERS.items():
                response.headers.setdefault(name, value)
        response.headers["X-Request-Duration-ms"] = f"{duration_ms:.2f}"
        logger.info(
            "API request completed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "duration_ms": duration_ms,
                "status_code": response.status_code,
            },
        )
        return response


def register_settings_error_handlers(app: FastAPI) -> None:
    app.add_middleware(ApiRequestMiddleware)

    @app.exception_handler(SettingsError)
    async def settings_error_handler(request: Request, exc: SettingsError):
        if exc.status_code >= 500:
            logger.error(
                "Settings storage error",
                extra={"path": request.url.path, "method": request.method, "error": exc.message},
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def api_validation_handler(request: Request, exc: RequestValidationError):
        if not _is_api_request(request):
            return await request_validation_exception_handler(request, exc)

        logger.warning(
            "API validation error",
            extra={"path": request.url.path, "method": request.method, "errors": exc.errors()},
        )
        return JSONResponse(status_code=400, content={"error": _error_message(exc.errors())})

    @app.exception_handler(StarletteHTTPException)
    async def api_http_exception_handler(request: Request, exc: StarletteHTTPException):
        if not _is_api_request(request):
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

        if exc.status_code == 405 and _is_settings_collection(request):
            return JSONResponse(
                status_code=405,
                content={"error": f"Method {request.method} not allowed"},
                headers={"Allow": ", ".join(ALLOWED_METHODS)},
            )

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": _error_message(exc.detail)},
            headers=exc.headers,
        )
