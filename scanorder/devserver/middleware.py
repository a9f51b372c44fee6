import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Echoes X-Request-ID and records "METHOD path" on the dev state."""

    async def dispatch(self, request: Request, call_next):
        request.app.state.dev.requests.append(f"{request.method} {request.url.path}")
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
