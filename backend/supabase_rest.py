"""
supabase_rest.py - RecordStore over Supabase's PostgREST API.
Async httpx client with an explicit timeout on every call. PostgREST has no
multi-statement transactions, so atomic() is a no-op here and callers that
need all-or-nothing behaviour compensate (see services/saga.py).
Balance increments go through the `adjust_account_balance` SQL function in
supabase/ledger.sql so the add happens server-side in one statement.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal

import httpx

from config import SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, STORE_TIMEOUT_SECONDS
from errors import ConflictError, NotFoundError, StoreError, ValidationError
from record_store import RecordStore

logger = logging.getLogger(__name__)

# (table, column) -> RPC that performs `column = column + delta` and returns the new value
RPC_INCREMENTS = {
    ("accounts", "balance"): "adjust_account_balance",
}


def _headers(api_key: str, prefer: str = "return=representation") -> dict:
    return {
        "apikey": api_key,
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Prefer": prefer,
    }


def _encode(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Cannot encode {type(value).__name__}")


def _literal(value) -> str:
    """Render a filter value the way PostgREST expects it in a query string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def build_params(filters: dict | None = None, in_: dict | None = None, gte: dict | None = None,
                 lte: dict | None = None) -> list[tuple[str, str]]:
    """Translate store filters into PostgREST query parameters."""
    params = []
    for key, value in (filters or {}).items():
        params.append((key, "is.null" if value is None else f"eq.{_literal(value)}"))
    for key, values in (in_ or {}).items():
        quoted = ",".join(f'"{_literal(v)}"' for v in values)
        params.append((key, f"in.({quoted})"))
    for key, value in (gte or {}).items():
        params.append((key, f"gte.{_literal(value)}"))
    for key, value in (lte or {}).items():
        params.append((key, f"lte.{_literal(value)}"))
    return params


class SupabaseRecordStore(RecordStore):
    supports_atomic = False

    def __init__(self, base_url: str, api_key: str, timeout: float = STORE_TIMEOUT_SECONDS,
                 client: httpx.AsyncClient | None = None):
        if not base_url or not api_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment variables")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(cls) -> "SupabaseRecordStore":
        return cls(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)

    # ------------------------------------------------------------------
    async def _request(self, method: str, path: str, *, params=None, body=None,
                       prefer: str = "return=representation"):
        url = f"{self.base_url}/rest/v1/{path}"
        content = json.dumps(body, default=_encode) if body is not None else None
        try:
            resp = await self._client.request(method, url, params=params, content=content,
                                              headers=_headers(self.api_key, prefer))
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"PostgREST {method} {path} timed out")
            raise StoreError(f"{method} {path} timed out") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = e.response.text[:300]
            if status == 404:
                raise NotFoundError(path, message=f"{path} not found: {detail}") from e
            if status == 409:
                raise ConflictError(f"{method} {path} conflicts with existing data: {detail}") from e
            if status == 400:
                raise ValidationError(f"{method} {path} rejected: {detail}") from e
            logger.error(f"PostgREST {method} {path} failed with {status}: {detail}")
            raise StoreError(f"{method} {path} failed with status {status}") from e
        except httpx.TransportError as e:
            logger.error(f"PostgREST {method} {path} transport error: {e}")
            raise StoreError(f"{method} {path} failed: {e}") from e

        if not resp.content:
            return None
        # numeric columns arrive as JSON numbers; keep them exact
        return json.loads(resp.text, parse_float=Decimal)

    # ------------------------------------------------------------------
    async def select(self, table, filters=None, *, in_=None, gte=None, lte=None,
                     order_by=None, descending=False):
        params = [("select", "*")] + build_params(filters, in_, gte, lte)
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        return await self._request("GET", table, params=params) or []

    async def get(self, table, record_id):
        try:
            rows = await self.select(table, {"id": record_id})
        except ValidationError as e:
            # a malformed uuid is rejected with 400; no row can have that id
            raise NotFoundError(table, record_id) from e
        if not rows:
            raise NotFoundError(table, record_id)
        return rows[0]

    async def insert(self, table, data):
        rows = await self.insert_many(table, [data])
        return rows[0]

    async def insert_many(self, table, rows):
        # PostgREST inserts a JSON array in one statement, so the rows land together or not at all
        return await self._request("POST", table, body=rows) or []

    async def update(self, table, record_id, data):
        rows = await self._request("PATCH", table, params=build_params({"id": record_id}), body=data)
        if not rows:
            raise NotFoundError(table, record_id)
        return rows[0]

    async def update_where(self, table, filters, data):
        rows = await self._request("PATCH", table, params=build_params(filters), body=data)
        return len(rows or [])

    async def delete(self, table, record_id):
        rows = await self._request("DELETE", table, params=build_params({"id": record_id}))
        if not rows:
            raise NotFoundError(table, record_id)

    async def delete_where(self, table, filters):
        rows = await self._request("DELETE", table, params=build_params(filters))
        return len(rows or [])

    async def upsert(self, table, data, on_conflict):
        rows = await self._request(
            "POST", table,
            params=[("on_conflict", ",".join(on_conflict))],
            body=[data],
            prefer="resolution=merge-duplicates,return=representation",
        )
        return rows[0]

    async def increment(self, table, record_id, column, delta):
        function = RPC_INCREMENTS.get((table, column))
        if function is None:
            raise StoreError(f"No increment function for {table}.{column}")
        result = await self._request(
            "POST", f"rpc/{function}",
            body={"p_id": record_id, "p_delta": Decimal(str(delta))},
        )
        if result is None:
            raise NotFoundError(table, record_id)
        return Decimal(str(result))

    async def close(self):
        await self._client.aclose()
