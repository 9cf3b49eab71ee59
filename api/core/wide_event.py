"""Request-scoped canonical log line.

RequestTimingMiddleware opens one event per HTTP request and logs it once the
response is finished. Services enrich it as they go:

    set_wide_event_fields(certification_id=7, certification_state="eligible")
    set_wide_event_nested("issuance", certificate_id="DGM-...", attempts=1)

Outside a request (CLI, background scripts) nothing was opened, so the
setters silently do nothing.
"""

from contextvars import ContextVar
from typing import Any

_current: ContextVar[dict[str, Any] | None] = ContextVar("wide_event", default=None)


def init_wide_event(**fields: Any) -> dict[str, Any]:
    """Open a fresh event for the current context, seeded with ``fields``."""
    event: dict[str, Any] = dict(fields)
    _current.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """The open event, or a throwaway dict when none is open."""
    event = _current.get()
    return event if event is not None else {}


def set_wide_event_fields(**fields: Any) -> None:
    event = _current.get()
    if event is not None:
        event.update(fields)


def set_wide_event_nested(category: str, **fields: Any) -> None:
    """Merge ``fields`` into the sub-dict ``category`` of the open event."""
    event = _current.get()
    if event is not None:
        event.setdefault(category, {}).update(fields)


def clear_wide_event() -> None:
    _current.set(None)
