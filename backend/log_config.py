"""
log_config.py - Logging setup
Console logging for every module, plus optional shipping of warnings and
errors to a log webhook. Shipping runs on a background listener thread so a
slow webhook never blocks a request.
"""

import atexit
import json
import logging
import logging.handlers
import queue
from datetime import datetime, timezone

import httpx

from config import LOG_LEVEL, LOG_WEBHOOK_URL, LOG_WEBHOOK_ALL, LOG_WEBHOOK_TIMEOUT_SECONDS

SENSITIVE_FIELDS = ("password", "token", "apikey", "api_key", "secret", "authorization",
                    "access_token", "refresh_token")

_listener: logging.handlers.QueueListener | None = None


def redact(data):
    """Replace values of sensitive keys, recursively."""
    if isinstance(data, dict):
        cleaned = {}
        for key, value in data.items():
            if any(s in str(key).lower() for s in SENSITIVE_FIELDS):
                cleaned[key] = "[REDACTED]"
            else:
                cleaned[key] = redact(value)
        return cleaned
    if isinstance(data, list):
        return [redact(v) for v in data]
    return data


class WebhookHandler(logging.Handler):
    """POST each record as JSON to a webhook. Failures are dropped, never re-logged."""

    def __init__(self, url: str, timeout: float = 5.0, service: str = "budget-backend"):
        super().__init__()
        self.url = url
        self.timeout = timeout
        self.service = service
        self._client = httpx.Client(timeout=timeout)

    def build_payload(self, record: logging.LogRecord) -> dict:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service,
        }
        meta = getattr(record, "meta", None)
        if meta:
            payload["meta"] = redact(meta)
        return payload

    def emit(self, record: logging.LogRecord):
        try:
            self._client.post(
                self.url,
                content=json.dumps(self.build_payload(record), default=str),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError:
            # Never log webhook errors, that would loop
            pass

    def close(self):
        self._client.close()
        super().close()


def setup_logging(level: str = LOG_LEVEL, webhook_url: str = LOG_WEBHOOK_URL):
    """Configure the root logger once. Safe to call repeatedly."""
    global _listener

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if not webhook_url or _listener is not None:
        return

    webhook = WebhookHandler(webhook_url, timeout=LOG_WEBHOOK_TIMEOUT_SECONDS)
    webhook.setLevel(logging.DEBUG if LOG_WEBHOOK_ALL else logging.WARNING)

    log_queue: queue.Queue = queue.Queue(-1)
    queue_handler = logging.handlers.QueueHandler(log_queue)
    queue_handler.setLevel(webhook.level)
    logging.getLogger().addHandler(queue_handler)

    _listener = logging.handlers.QueueListener(log_queue, webhook, respect_handler_level=True)
    _listener.start()
    atexit.register(_listener.stop)
