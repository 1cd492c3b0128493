import json
import logging

import httpx

from log_config import WebhookHandler, redact


def test_redact_nested_keys():
    data = {"user": "ana", "Password": "x", "meta": {"api_key": "k", "items": [{"access_token": "t", "n": 1}]}}
    assert redact(data) == {
        "user": "ana",
        "Password": "[REDACTED]",
        "meta": {"api_key": "[REDACTED]", "items": [{"access_token": "[REDACTED]", "n": 1}]},
    }


def test_webhook_posts_json_and_swallows_transport_errors():
    posted = []

    def handler(request: httpx.Request):
        posted.append(json.loads(request.content))
        return httpx.Response(204)

    hook = WebhookHandler("https://logs.example.com/ingest")
    hook._client = httpx.Client(transport=httpx.MockTransport(handler))

    record = logging.LogRecord("ledger", logging.ERROR, __file__, 1, "drift on %s", ("acc-1",), None)
    record.meta = {"account_id": "acc-1", "secret": "s"}
    hook.emit(record)
    assert posted[0]["level"] == "error"
    assert posted[0]["message"] == "drift on acc-1"
    assert posted[0]["meta"] == {"account_id": "acc-1", "secret": "[REDACTED]"}

    def broken(request):
        raise httpx.ConnectError("down", request=request)

    hook._client = httpx.Client(transport=httpx.MockTransport(broken))
    hook.emit(record)
    hook.close()
