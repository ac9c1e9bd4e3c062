"""
Async HTTP client for the hosted Supabase project.

Talks to the three Supabase surfaces over their REST APIs:
- GoTrue (``/auth/v1``) for sign-up, sign-in, sign-out and the current user
- PostgREST (``/rest/v1``) for the profiles, projects and skills tables
- Storage (``/storage/v1``) for avatars and project images

The client is created by the caller and passed into the gateway, so tests
can swap the transport or the whole client for a fake.
"""
import httpx
from typing import Dict, Any, Optional, List

from vizfolio.config import settings
from vizfolio.logging_config import logger


class BackendError(Exception):
    """Failure reported by Supabase (or by the transport talking to it)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Any] = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details

    def __repr__(self) -> str:
        return f"BackendError(status_code={self.status_code}, code={self.code!r}, message={self.message!r})"


def _error_from_response(response: httpx.Response) -> BackendError:
    """Build a BackendError from a non-2xx Supabase response"""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or response.text
        or f"HTTP {response.status_code}"
    )
    code = body.get("code") or body.get("error_code") or body.get("statusCode")
    return BackendError(
        str(message),
        status_code=response.status_code,
        code=str(code) if code is not None else None,
        details=body.get("details") or body.get("hint")
    )


class SupabaseClient:
    """Thin async wrapper around the Supabase REST endpoints"""

    def __init__(
        self,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        access_token: Optional[str] = None
    ):
        self.url = (url or settings.SUPABASE_URL).rstrip("/")
        self.anon_key = anon_key or settings.SUPABASE_ANON_KEY
        if not self.url:
            raise ValueError("SUPABASE_URL not configured")
        self.access_token = access_token
        self._http = http_client or httpx.AsyncClient(timeout=30.0)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "SupabaseClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> httpx.Response:
        """Send a request and raise BackendError on any non-2xx status"""
        response = await self._http.request(
            method,
            f"{self.url}{path}",
            headers=self._headers(headers),
            **kwargs
        )
        if response.status_code >= 400:
            error = _error_from_response(response)
            logger.warning(
                "Supabase request failed",
                method=method,
                path=path,
                status_code=response.status_code,
                error=error.message
            )
            raise error
        return response

    # ------------------------------------------------------------------
    # PostgREST
    # ------------------------------------------------------------------

    @staticmethod
    def _filter_params(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
        return {column: f"eq.{value}" for column, value in (filters or {}).items()}

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        columns: str = "*"
    ) -> List[Dict[str, Any]]:
        """
        Select rows matching equality filters.

        Args:
            table: Table name
            filters: Column -> value equality filters
            order: PostgREST order clause, e.g. ``created_at.desc``
            columns: Column list to return

        Returns:
            List of row dictionaries (possibly empty)
        """
        params = {"select": columns, **self._filter_params(filters)}
        if order:
            params["order"] = order
        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        return response.json()

    async def select_one(
        self,
        table: str,
        filters: Dict[str, Any],
        columns: str = "*"
    ) -> Dict[str, Any]:
        """Select exactly one row, raising a PGRST116-style error when absent"""
        rows = await self.select(table, filters=filters, columns=columns)
        if not rows:
            raise BackendError(
                "JSON object requested, multiple (or no) rows returned",
                status_code=406,
                code="PGRST116"
            )
        return rows[0]

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one row and return the stored representation"""
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            headers={"Prefer": "return=representation"},
            json=row
        )
        rows = response.json()
        return rows[0] if isinstance(rows, list) else rows

    async def update(
        self,
        table: str,
        filters: Dict[str, Any],
        values: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update rows matching the filters and return the first updated row"""
        response = await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            headers={"Prefer": "return=representation"},
            params=self._filter_params(filters),
            json=values
        )
        rows = response.json()
        if not rows:
            raise BackendError(
                "JSON object requested, multiple (or no) rows returned",
                status_code=406,
                code="PGRST116"
            )
        return rows[0]

    async def delete(self, table: str, filters: Dict[str, Any]) -> None:
        await self._request(
            "DELETE",
            f"/rest/v1/{table}",
            params=self._filter_params(filters)
        )

    # ------------------------------------------------------------------
    # Auth (GoTrue)
    # ------------------------------------------------------------------

    async def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password}
        )
        data = response.json()
        if data.get("access_token"):
            self.access_token = data["access_token"]
        return data

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        """Exchange credentials for a session; later calls run as that user"""
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password}
        )
        data = response.json()
        self.access_token = data.get("access_token")
        return data

    async def sign_out(self) -> None:
        await self._request("POST", "/auth/v1/logout")
        self.access_token = None

    async def get_user(self) -> Dict[str, Any]:
        response = await self._request("GET", "/auth/v1/user")
        return response.json()

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = False
    ) -> Dict[str, Any]:
        """Upload (or with ``upsert`` replace) an object"""
        response = await self._request(
            "PUT" if upsert else "POST",
            f"/storage/v1/object/{bucket}/{path}",
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
            },
            content=content
        )
        return response.json()

    async def object_info(self, bucket: str, path: str) -> Dict[str, Any]:
        response = await self._request("GET", f"/storage/v1/object/info/{bucket}/{path}")
        return response.json()

    async def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        response = await self._request(
            "POST",
            f"/storage/v1/object/list/{bucket}",
            json={
                "prefix": prefix,
                "limit": limit,
                "offset": 0,
                "sortBy": {"column": "name", "order": "asc"},
            }
        )
        return response.json()

    async def remove(self, bucket: str, paths: List[str]) -> List[Dict[str, Any]]:
        response = await self._request(
            "DELETE",
            f"/storage/v1/object/{bucket}",
            json={"prefixes": paths}
        )
        return response.json()

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{bucket}/{path}"
