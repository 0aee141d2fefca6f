"""Request context middleware for logging."""
import json
import time
import uuid
from contextvars import ContextVar
from typing import Any
from typing import Callable
from typing import Optional

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

# Context variables to store request-specific data
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
client_ip_ctx: ContextVar[str] = ContextVar("client_ip", default="")
user_agent_ctx: ContextVar[str] = ContextVar("user_agent", default="")
request_path_ctx: ContextVar[str] = ContextVar("request_path", default="")

# Maximum size for request body logging (to avoid memory issues)
MAX_BODY_LOG_SIZE = 10000  # 10KB limit

# Body fields never written to logs
REDACTED_FIELDS = {"password", "token", "access_token", "refresh_token", "apikey", "api_key"}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to capture and log request context information."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        """
        Capture request context and add to logging.

        Captures:
        - Request ID (from X-Request-ID header or generated)
        - Client IP (first X-Forwarded-For hop or direct peer)
        - User agent
        - Request path and method
        - JSON request body (for POST/PUT/PATCH), stored on request.state for error handlers

        The Authorization header is never captured.
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_ctx.set(request_id)

        client_ip = self._get_client_ip(request)
        client_ip_ctx.set(client_ip)

        user_agent = request.headers.get("User-Agent", "unknown")
        user_agent_ctx.set(user_agent)

        request_path = f"{request.method} {request.url.path}"
        request_path_ctx.set(request_path)

        # Store in request state early so error handlers can access it
        request.state.request_body = None
        if request.method in ("POST", "PUT", "PATCH"):
            request.state.request_body = await self._get_request_body(request)

        with logger.contextualize(
            request_id=request_id,
            client_ip=client_ip,
            user_agent=user_agent,
            request_path=request_path,
        ):
            start_time = time.time()
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            response.headers["X-Request-ID"] = request_id

            logger.info(
                f"{request.method} {request.url.path} - {response.status_code}",
                event_type="http_request",
                http_method=request.method,
                url_path=str(request.url.path),
                url_query=str(request.query_params) if request.query_params else None,
                content_type=request.headers.get("Content-Type"),
                status_code=response.status_code,
                response_time_ms=round(duration_ms, 2),
            )

            return response

    async def _get_request_body(self, request: Request) -> Optional[dict]:
        """
        Read the request body for logging.

        Only JSON bodies are parsed; multipart uploads are summarised by size.

        Returns:
            Parsed (redacted) JSON body, a summary dict, or None if empty
        """
        content_type = request.headers.get("Content-Type", "")
        if "application/json" not in content_type.lower():
            content_length = request.headers.get("Content-Length")
            return {"_content_type": content_type, "_size": content_length} if content_length else None

        try:
            body = await request.body()
        except RuntimeError:
            return None

        if not body:
            return None

        if len(body) > MAX_BODY_LOG_SIZE:
            return {"_truncated": True, "_size": len(body)}

        try:
            parsed = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return {"_error": "Failed to parse request body", "_error_detail": str(e)}

        if isinstance(parsed, dict):
            return {key: ("***" if key.lower() in REDACTED_FIELDS else value) for key, value in parsed.items()}
        return parsed

    def _get_client_ip(self, request: Request) -> str:
        """Get real client IP address, honouring X-Forwarded-For from the proxy."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # X-Forwarded-For can contain multiple IPs, take the first one
            return forwarded_for.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"


def get_request_context() -> dict:
    """
    Get current request context for logging.

    Returns:
        Dictionary with request context variables
    """
    return {
        "request_id": request_id_ctx.get(),
        "client_ip": client_ip_ctx.get(),
        "user_agent": user_agent_ctx.get(),
        "request_path": request_path_ctx.get(),
    }
