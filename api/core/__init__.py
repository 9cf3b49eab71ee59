"""Core plumbing for the Dogmania certification API.

    from core import get_logger, set_wide_event_fields
"""

from core.logger import get_logger
from core.wide_event import (
    get_wide_event,
    set_wide_event_fields,
    set_wide_event_nested,
)

__all__ = [
    "get_logger",
    "get_wide_event",
    "set_wide_event_fields",
    "set_wide_event_nested",
]
