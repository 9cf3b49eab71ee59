"""ASGI middleware: security headers and per-request wide events."""

from __future__ import annotations

import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import get_logger
from core.wide_event import clear_wide_event, get_wide_event, init_wide_event

logger = get_logger(__name__)

SERVICE_NAME = "dogmania-certification-api"


class SecurityHeadersMiddleware:
    """Adds security headers (X-Content-Type-Options, X-Frame-Options, etc)."""

    SECURITY_HEADERS: list[tuple[bytes, bytes]] = [
        (b"x-content-type-options", b"nosniff"),
        (b"x-frame-options", b"DENY"),
        (b"referrer-policy", b"strict-origin-when-cross-origin"),
        (b"strict-transport-security", b"max-age=31536000; includeSubDomains"),
    ]

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers.extend(self.SECURITY_HEADERS)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_wrapper)


class RequestTimingMiddleware:
    """Emits one wide event per request (canonical log line).

    Errors and slow requests are always emitted; writes to certifications are
    emitted because services tag them with ``certification_id``.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        path = scope.get("path", "")
        request_id = str(uuid.uuid4())

        init_wide_event(
            service_name=SERVICE_NAME,
            request_id=request_id,
            http_method=scope.get("method", "UNKNOWN"),
            http_path=path,
        )

        response_status: int | None = None

        def _route_path() -> str:
            route = scope.get("route")
            return getattr(route, "path", None) or path

        async def send_wrapper(message: Message) -> None:
            nonlocal response_status

            if message.get("type") == "http.response.start":
                response_status = int(message.get("status", 0))
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers

            elif message.get("type") == "http.response.body" and not message.get(
                "more_body", False
            ):
                duration_ms = (time.perf_counter() - start_time) * 1000
                event = get_wide_event()
                event["http_route"] = _route_path()
                event["http_status_code"] = response_status
                event["duration_ms"] = round(duration_ms, 2)
                event["outcome"] = (
                    "success" if response_status and response_status < 400 else "error"
                )

                should_emit = (
                    response_status is None
                    or response_status >= 400
                    or duration_ms > 1000
                    or event.get("certification_id")
                )
                if should_emit:
                    logger.info("request.completed", **event)

                clear_wide_event()

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            event = get_wide_event()
            event["http_route"] = _route_path()
            event["duration_ms"] = round(duration_ms, 2)
            event["outcome"] = "exception"
            event["exception_type"] = type(exc).__name__
            logger.info("request.completed", **event)
            clear_wide_event()
            raise
