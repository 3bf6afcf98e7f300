"""
supabase_rest.py — HTTP-based database client using Supabase's PostgREST API.
Needs no database driver, only httpx. The client is constructed explicitly
and handed to the Supabase stores rather than read from module globals.
"""
import httpx
from urllib.parse import quote


class SupabaseRest:
    """Thin PostgREST wrapper: equality filters, JSON bodies, representation returns."""

    def __init__(self, url: str, service_key: str, timeout: float = 10, transport: httpx.BaseTransport | None = None):
        if not url or not service_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment variables")
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self, prefer: str = "return=representation") -> dict:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
            "Prefer": prefer,
        }

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def _table_url(self, table: str, filters: dict | None = None, extra: str | None = None) -> str:
        params = []
        if extra:
            params.append(extra)
        if filters:
            for key, value in filters.items():
                params.append(f"{key}=eq.{quote(str(value))}")
        url = f"{self.url}/rest/v1/{table}"
        if params:
            url += "?" + "&".join(params)
        return url

    def select(self, table: str, filters: dict = None, columns: str = "*", order: str | None = None) -> list:
        """Select rows from a table with optional equality filters."""
        extra = f"select={columns}"
        if order:
            extra += f"&order={order}"
        url = self._table_url(table, filters, extra)
        with self._client() as client:
            resp = client.get(url, headers=self._headers())
            resp.raise_for_status()
            return resp.json()

    def insert(self, table: str, data: dict) -> dict:
        """Insert a row and return the created record."""
        url = self._table_url(table)
        with self._client() as client:
            resp = client.post(url, json=data, headers=self._headers())
            resp.raise_for_status()
            result = resp.json()
            return result[0] if isinstance(result, list) and result else {}

    def upsert(self, table: str, data: dict) -> dict:
        """Insert or merge on the table's primary key."""
        url = self._table_url(table)
        prefer = "resolution=merge-duplicates,return=representation"
        with self._client() as client:
            resp = client.post(url, json=data, headers=self._headers(prefer))
            resp.raise_for_status()
            result = resp.json()
            return result[0] if isinstance(result, list) and result else {}

    def update(self, table: str, filters: dict, data: dict) -> list:
        """Update rows matching all filters; returns the updated rows."""
        url = self._table_url(table, filters)
        with self._client() as client:
            resp = client.patch(url, json=data, headers=self._headers())
            resp.raise_for_status()
            return resp.json()

    def delete(self, table: str, filters: dict) -> list:
        """Delete rows matching all filters; returns the deleted rows."""
        url = self._table_url(table, filters)
        with self._client() as client:
            resp = client.delete(url, headers=self._headers())
            resp.raise_for_status()
            return resp.json()
