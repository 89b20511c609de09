"""FastAPI application factory for the Inkwell services."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Final

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .config import ServiceSettings
from .context_repair import ContextRepairDriver
from .diagnostics import DiagnosticLogger
from .history import JsonlHistoryStore
from .http import (
    TRACE_ID_HEADER,
    default_error_responses,
    ensure_trace_id,
    get_trace_context,
    http_exception_to_response,
    internal_error_response,
    request_validation_response,
    resolve_trace_id,
    service_error_response,
)
from .metrics import record_request
from .model_client import ModelClient, OpenRouterClient
from .online_context import DuckDuckGoContextProvider, WebContextProvider
from .rewrite_service import RewriteService
from .routers import api_router, health_router
from .search_index import SqliteSearchIndex
from .service_errors import ServiceError
from .storage import FileChapterStore

LOGGER = logging.getLogger(__name__)

SERVICE_VERSION: Final[str] = "0.4.0"


class TraceMiddleware:
    """ASGI middleware that applies trace IDs and unified error handling."""

    def __init__(self, app: ASGIApp, *, trace_context: ContextVar[str]) -> None:
        self.app = app
        self._trace_context = trace_context

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        trace_id = resolve_trace_id(request.headers.get(TRACE_ID_HEADER))
        token = self._trace_context.set(trace_id)
        scope.setdefault("state", {})
        scope["state"]["trace_id"] = trace_id  # type: ignore[index]

        status_holder: dict[str, int | None] = {"status": None}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.setdefault(TRACE_ID_HEADER, trace_id)
                status_holder["status"] = message.get("status")
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except HTTPException as exc:
            response = http_exception_to_response(exc, trace_id)
            status_holder["status"] = exc.status_code
            await response(scope, receive, send)
        except RequestValidationError as exc:
            response = request_validation_response(exc, trace_id)
            status_holder["status"] = status.HTTP_400_BAD_REQUEST
            await response(scope, receive, send)
        except ServiceError as exc:
            LOGGER.info(
                "request.service_error",
                extra={
                    "extra_payload": {
                        "code": exc.code,
                        "path": str(request.url.path),
                        "trace_id": trace_id,
                    }
                },
            )
            response = service_error_response(exc, trace_id)
            status_holder["status"] = exc.status_code
            await response(scope, receive, send)
        except Exception as exc:
            LOGGER.exception(
                "Unhandled error processing %s %s",
                request.method,
                request.url.path,
                exc_info=exc,
            )
            response = internal_error_response(trace_id)
            status_holder["status"] = status.HTTP_500_INTERNAL_SERVER_ERROR
            await response(scope, receive, send)
        finally:
            self._trace_context.reset(token)
            status_code = status_holder["status"] or status.HTTP_500_INTERNAL_SERVER_ERROR
            record_request(request.method, status_code)


def create_app(
    settings: ServiceSettings | None = None,
    *,
    model_client: ModelClient | None = None,
    web_context: WebContextProvider | None = None,
) -> FastAPI:
    """Construct the FastAPI application.

    ``model_client`` and ``web_context`` default to the OpenRouter and
    DuckDuckGo implementations; tests pass fakes.
    """

    service_settings = settings or ServiceSettings.from_environment()

    application = FastAPI(
        title="Inkwell Services",
        version=SERVICE_VERSION,
        responses=default_error_responses(),
    )
    client = model_client or OpenRouterClient(service_settings)
    chapter_store = FileChapterStore(service_settings.chapters_dir)
    search_index = SqliteSearchIndex(service_settings.search_db_path)
    history_store = JsonlHistoryStore(service_settings.history_dir)
    diagnostics = DiagnosticLogger(service_settings.history_dir)

    application.state.settings = service_settings
    application.state.service_version = SERVICE_VERSION
    application.state.chapter_store = chapter_store
    application.state.search_index = search_index
    application.state.history_store = history_store
    application.state.diagnostics = diagnostics
    application.state.rewrite_service = RewriteService(
        chapters=chapter_store,
        search_index=search_index,
        history=history_store,
        model_client=client,
        web_context=web_context or DuckDuckGoContextProvider(service_settings),
        diagnostics=diagnostics,
        repair_driver=ContextRepairDriver(client),
    )

    async def http_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, HTTPException):
            return http_exception_to_response(exc, trace_id)
        return internal_error_response(trace_id)

    async def validation_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, RequestValidationError):
            return request_validation_response(exc, trace_id)
        return internal_error_response(trace_id)

    async def service_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, ServiceError):
            return service_error_response(exc, trace_id)
        return internal_error_response(trace_id)

    application.add_exception_handler(HTTPException, http_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(ServiceError, service_exception_handler)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[],
        allow_origin_regex=r"^https?://(?:127\.0\.0\.1|localhost)(?::\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_middleware(
        TraceMiddleware,
        trace_context=get_trace_context(),
    )

    application.include_router(health_router)
    application.include_router(api_router)

    @application.get("/", include_in_schema=False)
    async def service_index(request: Request) -> dict[str, str]:
        """Return a lightweight service manifest for manual checks."""

        version = getattr(request.app.state, "service_version", SERVICE_VERSION)
        return {
            "service": "inkwell",
            "version": version,
            "api_base": "/api/v1",
        }

    return application


__all__ = ["SERVICE_VERSION", "TraceMiddleware", "create_app"]
