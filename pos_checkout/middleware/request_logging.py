"""
Request Logging Middleware: tag every request with an id and log slow or failed ones.

Checkout requests wait on the commerce and inventory APIs, so a slow request
usually points at one of those, not at this service.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import logging
import time
import json
import uuid
from typing import Dict

logger = logging.getLogger("requests")

REQUEST_ID_HEADER = "X-Request-ID"

# Maximum request duration before logging as slow
SLOW_REQUEST_THRESHOLD = 30.0  # seconds


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs to stdout for log shipping. Does NOT block requests - only monitors and logs.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.time()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        context = self._build_context(request, request_id)

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            self._log_error_request(context, str(e), duration)
            raise

        duration = time.time() - start_time
        if duration > SLOW_REQUEST_THRESHOLD:
            self._log_slow_request(context, duration)
        if response.status_code >= 400:
            self._log_failed_request(context, response.status_code, duration)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    def _build_context(self, request: Request, request_id: str) -> Dict:
        return {
            'request_id': request_id,
            'method': request.method,
            'path': request.url.path,
            'client_ip': request.client.host if request.client else 'unknown',
            'user_agent': request.headers.get('user-agent', 'unknown')[:200],  # Truncate
        }

    def _log_slow_request(self, context: Dict, duration: float):
        log_entry = {
            'event_type': 'slow_request',
            'duration_seconds': round(duration, 2),
            **context
        }
        logger.warning(
            f"SLOW REQUEST ({duration:.2f}s): {json.dumps(log_entry)}",
            extra={"request_id": context['request_id'], "duration_ms": int(duration * 1000)},
        )

    def _log_failed_request(self, context: Dict, status_code: int, duration: float):
        log_entry = {
            'event_type': 'failed_request',
            'status_code': status_code,
            'duration_seconds': round(duration, 2),
            **context
        }
        extra = {"request_id": context['request_id'], "duration_ms": int(duration * 1000)}

        if status_code >= 500:
            logger.error(f"SERVER ERROR ({status_code}): {json.dumps(log_entry)}", extra=extra)
        else:
            logger.info(f"CLIENT ERROR ({status_code}): {json.dumps(log_entry)}", extra=extra)

    def _log_error_request(self, context: Dict, error: str, duration: float):
        log_entry = {
            'event_type': 'error_request',
            'error': error[:500],  # Truncate long errors
            'duration_seconds': round(duration, 2),
            **context
        }
        logger.error(f"REQUEST ERROR: {json.dumps(log_entry)}", extra={"request_id": context['request_id']})
