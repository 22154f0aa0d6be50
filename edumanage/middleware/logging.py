"""ASGI request logging middleware.

Logs every request on arrival, its body and the response body with
credentials redacted, then status and duration. Each request is recorded
in the metrics tracker behind /health. Request counts can also be pushed to
CloudWatch when CLOUDWATCH_METRICS is enabled.
"""
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, List, MutableMapping, Optional, cast

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from starlette.types import ASGIApp, Receive, Scope, Send

from edumanage.services.metrics_tracker import record_request

LOG_LEVEL: int = int(os.getenv("LOG_LEVEL", "1"))  # 0 = silent, 1 = info, 2 = debug
CLOUDWATCH_METRICS = os.getenv("CLOUDWATCH_METRICS", "").lower() in ("1", "true", "yes")
CLOUDWATCH_NAMESPACE = os.getenv("CLOUDWATCH_NAMESPACE", "EduManage/API")

logger = logging.getLogger("edumanage.middleware.logging")

# Redacted when the key contains one of these
SENSITIVE_FIELDS = {
    "password", "passwd", "pwd",
    "token", "refreshtoken", "access_token", "refresh_token", "bearer",
    "secret", "authorization",
    "card_number", "cardnumber", "cvv",
}
# Redacted only on an exact key match
SENSITIVE_EXACT_FIELDS = {"code", "otp"}

REDACTED = "[REDACTED]"


def _is_sensitive(key: Any) -> bool:
    key_lower = str(key).lower().replace("-", "_")
    if key_lower in SENSITIVE_EXACT_FIELDS:
        return True
    return any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS)


def redact(obj: Any) -> Any:
    """Recursively replace the values of sensitive keys."""
    if isinstance(obj, dict):
        return {key: REDACTED if _is_sensitive(key) else redact(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [redact(item) for item in obj]
    return obj


def sanitize_json_string(text: str) -> str:
    """Redact a JSON payload; non-JSON text is returned unchanged."""
    if not text:
        return text
    try:
        return json.dumps(redact(json.loads(text)))
    except (json.JSONDecodeError, TypeError):
        return text


def _decode(chunks: List[bytes]) -> str:
    return sanitize_json_string(b"".join(chunks).decode("utf-8", errors="replace"))


class LoggingMiddleware:
    """Request/response logger for ASGI apps."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self.cloudwatch = None
        if CLOUDWATCH_METRICS:
            try:
                self.cloudwatch = boto3.client("cloudwatch", region_name=os.getenv("AWS_REGION", "us-east-2"))
            except (BotoCoreError, ClientError):
                logger.warning("CloudWatch client initialization failed", exc_info=True)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "")
        path = scope.get("path", "")
        start = time.perf_counter()
        status_holder: dict[str, Optional[int]] = {"status": None}

        client_ip = None
        if scope.get("client"):
            client_ip = scope["client"][0]

        if LOG_LEVEL >= 1:
            logger.info(f"[ARRIVED] {method} {path}")

        request_chunks: list[bytes] = []
        response_chunks: list[bytes] = []

        async def receive_wrapper():
            message = await receive()
            if message.get("type") == "http.request":
                chunk = message.get("body", b"")
                if chunk:
                    request_chunks.append(chunk)
                if not message.get("more_body", False) and request_chunks and LOG_LEVEL >= 1:
                    logger.info(f"[REQUEST BODY] {_decode(request_chunks)}")
            return message

        async def send_wrapper(message: MutableMapping[str, object]) -> None:
            msg_type = message.get("type")
            if msg_type == "http.response.start":
                status_holder["status"] = cast(Optional[int], message.get("status"))
            elif msg_type == "http.response.body":
                chunk = cast(bytes, message.get("body", b""))
                if chunk:
                    response_chunks.append(chunk)
                if not message.get("more_body", False) and LOG_LEVEL >= 2:
                    logger.debug(f"[RESPONSE BODY] {_decode(response_chunks)}")
            await send(message)

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        except Exception as exc:
            self._log_error(method, path, exc, client_ip)
            self._send_metrics(500, success=False)
            raise

        status = status_holder["status"] or 0
        # Health probes are not counted
        if not path.startswith("/health"):
            record_request(method, path, status, client_ip)
        self._log_success(method, path, status, time.perf_counter() - start, client_ip)
        self._send_metrics(status, success=status < 500)

    def _log_success(self, method: str, path: str, status: int, duration: float, client: Optional[str]) -> None:
        duration_ms = duration * 1000
        if LOG_LEVEL >= 1:
            logger.info(f"Request: {method} {path} | Status: {status} | Duration: {duration_ms:.2f} ms")
        if LOG_LEVEL >= 2:
            logger.debug(json.dumps({
                "type": "request",
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client": client,
            }))

    def _log_error(self, method: str, path: str, exc: Exception, client: Optional[str]) -> None:
        if LOG_LEVEL >= 1:
            logger.error(f"Error: {method} {path} -> {exc}")
        if LOG_LEVEL >= 2:
            logger.debug(json.dumps({
                "type": "error",
                "method": method,
                "path": path,
                "error": str(exc),
                "client": client,
            }))

    def _send_metrics(self, status: int, *, success: bool) -> None:
        """Push a request count to CloudWatch when enabled."""
        if not self.cloudwatch:
            return
        try:
            self.cloudwatch.put_metric_data(
                Namespace=CLOUDWATCH_NAMESPACE,
                MetricData=[
                    {
                        "MetricName": "http_request",
                        "Dimensions": [
                            {"Name": "status_code", "Value": str(status)},
                            {"Name": "outcome", "Value": "success" if success else "error"},
                        ],
                        "Value": 1,
                        "Unit": "Count",
                    }
                ],
            )
        except (BotoCoreError, ClientError):
            logger.warning("CloudWatch put_metric_data failed, disabling metrics", exc_info=True)
            self.cloudwatch = None


def setup_logging(app: ASGIApp) -> ASGIApp:
    """Wrap the ASGI app with logging middleware."""
    return LoggingMiddleware(app)
