"""Application-wide rate limiting utilities."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from coderoom.core.config import settings


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_BACKEND],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
)


def init_rate_limiter(app: FastAPI) -> None:
    """Attach the limiter and exception handler to a FastAPI app."""

    app.state.limiter = limiter
    # Applies RATE_LIMIT_BACKEND to every route without its own limit
    app.add_middleware(SlowAPIMiddleware)

    # Plain function: the middleware calls it directly for sync endpoints
    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        return JSONResponse({"detail": "Too Many Requests"}, status_code=429)
