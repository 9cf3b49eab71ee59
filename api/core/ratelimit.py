"""Per-client rate limits (slowapi).

Verification is public and unauthenticated, so it gets its own tighter limit
to make guessing certificate ids impractical. Issuance is limited too.

Counters live in RATELIMIT_STORAGE_URI. The ``memory://`` default is per
process; anything with more than one replica needs Redis.
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = "100/minute"
ISSUE_LIMIT = "10/minute"
DEFAULT_RETRY_AFTER_SECONDS = 60

_settings = get_settings()
_storage_uri = _settings.ratelimit_storage_uri

if _storage_uri == "memory://" and not _settings.debug:
    logger.warning(
        "ratelimit.memory_storage",
        environment=_settings.environment,
        hint="counters are per process; use a redis:// RATELIMIT_STORAGE_URI",
    )

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[DEFAULT_LIMIT],
    storage_uri=_storage_uri,
    # Keep limiting in-process if Redis drops out.
    in_memory_fallback_enabled=_storage_uri.startswith("redis://"),
    key_prefix="dgm:",
)

VERIFY_LIMIT = _settings.verify_rate_limit


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    retry_after = getattr(exc, "retry_after", DEFAULT_RETRY_AFTER_SECONDS)
    logger.warning(
        "ratelimit.exceeded",
        client=get_remote_address(request),
        path=request.url.path,
        limit=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please slow down.",
            "limit": exc.detail,
        },
        headers={"Retry-After": str(retry_after)},
    )
