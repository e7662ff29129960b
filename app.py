# app.py
import logging
import os
import time

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.json_logging import configure_json_logging
from utils.metrics import incr, observe_ms

# Env must be loaded before modules that read os.getenv at import time.
load_dotenv(os.path.join(os.path.dirname(__file__), ".env"))

SERVICE_NAME = "folder-media-api"
configure_json_logging(
    service=SERVICE_NAME,
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
)
logger = logging.getLogger("api.error")

from startup_env import validate_startup_env
from utils.http_errors import error_envelope, request_id_for
from utils.request_id import REQUEST_ID_HEADER, normalize_request_id, set_request_id

validate_startup_env()

from routes.health import router as health_router
from routes.media import router as media_router
from routes.storage_usage import router as storage_usage_router


def cors_origins() -> list[str]:
    origins: list[str] = []
    for item in os.getenv("CORS_ALLOW_ORIGINS", "").split(","):
        item = item.strip()
        if item and item not in origins:
            origins.append(item)
    return origins


async def track_request(request: Request, call_next):
    request_id = normalize_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        labels = {
            "method": request.method.upper(),
            "path": request.url.path,
            "status_class": f"{status_code // 100}xx",
        }
        incr("api_http_requests_total", status_code=status_code, **labels)
        observe_ms("api_http_request_latency_ms", (time.perf_counter() - started) * 1000.0, **labels)
        set_request_id(None)


async def on_validation_error(request: Request, exc: RequestValidationError):
    body = error_envelope(request, 422, exc.errors(), code="VALIDATION_ERROR", message="Request validation failed")
    logger.warning("request_failed_validation path=%s request_id=%s", request.url.path, body["request_id"])
    return JSONResponse(status_code=422, content=body)


async def on_http_error(request: Request, exc: StarletteHTTPException):
    body = error_envelope(request, exc.status_code, exc.detail)
    logger.warning(
        "request_failed status=%s path=%s request_id=%s error_code=%s error_message=%s",
        exc.status_code,
        request.url.path,
        body["request_id"],
        body["error_code"],
        body["error_message"],
    )
    return JSONResponse(status_code=exc.status_code, content=body)


async def on_unhandled_error(request: Request, exc: Exception):
    logger.exception(
        "request_failed_unhandled path=%s request_id=%s error=%s",
        request.url.path,
        request_id_for(request),
        exc.__class__.__name__,
    )
    body = error_envelope(
        request,
        500,
        "Unhandled server exception",
        code="INTERNAL_SERVER_ERROR",
        message="Internal server error",
    )
    return JSONResponse(status_code=500, content=body)


def create_app() -> FastAPI:
    application = FastAPI(title="Folder Media API")
    application.middleware("http")(track_request)
    application.add_exception_handler(RequestValidationError, on_validation_error)
    application.add_exception_handler(StarletteHTTPException, on_http_error)
    application.add_exception_handler(Exception, on_unhandled_error)

    origins = cors_origins()
    origin_regex = (os.getenv("CORS_ALLOW_ORIGIN_REGEX") or "").strip() or None
    logger.info("cors_configured allow_origins=%s allow_origin_regex=%s", origins, origin_regex or "")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    application.include_router(health_router)
    application.include_router(media_router)
    application.include_router(storage_usage_router)
    return application


app = create_app()
