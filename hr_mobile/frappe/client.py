"""
Async Frappe/ERPNext REST client.

Provides token-authenticated access to both styles of the Frappe API:
resource endpoints (`/api/resource/<Doctype>`) and RPC method endpoints
(`/api/method/<dotted.path>`), plus the helper that chains them into
ordered fallbacks.
"""

import json
import logging
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar, Union
from urllib.parse import quote

import httpx

from hr_mobile.config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

Filters = Union[list, dict]


class FrappeError(Exception):
    """Error raised when a Frappe call fails at transport or HTTP level."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class FrappeConfigurationError(FrappeError):
    """Raised when the ERP URL or API credentials are missing."""


def extract_error_message(body: Any, default: str) -> str:
    """
    Pick the human-readable message out of a Frappe error body.

    Frappe reports failures under one of several keys depending on
    where the exception was raised.
    """
    if isinstance(body, dict):
        for key in ("message", "exception", "exc_type", "_server_messages"):
            value = body.get(key)
            if value:
                return str(value)
    if isinstance(body, str) and body.strip():
        return body.strip()[:200]
    return default


async def run_fallbacks(
    operation: str,
    attempts: Sequence[tuple[str, Callable[[], Awaitable[Optional[T]]]]],
) -> Optional[T]:
    """
    Run endpoint attempts in order until one yields a result.

    An attempt that raises FrappeError is logged and the next one runs.
    An attempt that returns None counts as a miss and also moves on.
    Only the last failure is raised to the caller.

    Args:
        operation: Label used in log lines (e.g., "Leave Allocation")
        attempts: (label, coroutine factory) pairs in priority order

    Returns:
        The first non-None attempt result, or None when every attempt missed
    """
    last_error: Optional[FrappeError] = None
    total = len(attempts)

    for index, (label, attempt) in enumerate(attempts, start=1):
        try:
            result = await attempt()
        except FrappeError as e:
            last_error = e
            server = e.details if e.details is not None else e.message
            if index < total:
                logger.warning(f"{operation} attempt {index} ({label}) failed: {server}")
            else:
                logger.error(f"{operation} attempt {index} ({label}) failed: {server}")
            continue

        if result is not None:
            if index > 1:
                logger.info(f"{operation} served by fallback attempt {index} ({label})")
            return result
        logger.debug(f"{operation} attempt {index} ({label}) returned no result")

    if last_error is not None:
        raise last_error
    return None


class FrappeClient:
    """
    Async client for the Frappe REST API.

    Authenticates with a static API key/secret pair and exposes
    document CRUD on resource endpoints plus calls to method endpoints.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Optional settings instance. Uses cached settings if not provided.
            transport: Optional httpx transport (used to stub the network in tests)
        """
        self.settings = settings or get_settings()
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def resource_url(self) -> str:
        return self.settings.resource_url

    @property
    def method_url(self) -> str:
        return self.settings.method_url

    @property
    def host(self) -> str:
        return self.settings.erp_host

    def _auth_headers(self) -> dict[str, str]:
        if not self.settings.is_erp_configured:
            raise FrappeConfigurationError(
                "ERP credentials or URL are not configured. Check .env and restart."
            )
        return {"Authorization": self.settings.erp_authorization}

    async def _get_http_client(self) -> httpx.AsyncClient:
        """
        Get or create the underlying HTTP client.

        The cookie jar accepts nothing, so a login response never adds a
        session cookie to later requests. Session cookies are passed per
        request in the `Cookie` header.
        """
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                headers={"Accept": "application/json"},
                cookies=CookieJar(policy=DefaultCookiePolicy(allowed_domains=[])),
                timeout=self.settings.erp_timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self):
        """Close the HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    # =========================================================================
    # URL helpers
    # =========================================================================

    def resource_path(self, doctype: str, name: Optional[str] = None) -> str:
        """Build a resource URL for a doctype or a single document."""
        if not self.resource_url:
            raise FrappeConfigurationError("ERP resource URL is not configured")
        url = f"{self.resource_url}/{quote(doctype)}"
        if name is not None:
            url += f"/{quote(str(name), safe='')}"
        return url

    def method_path(self, method: str) -> str:
        """Build a method endpoint URL."""
        if not self.method_url:
            raise FrappeConfigurationError("ERP method URL is not configured")
        return f"{self.method_url}/{method}"

    # =========================================================================
    # Transport
    # =========================================================================

    async def send(
        self,
        method: str,
        url: str,
        *,
        authenticated: bool = True,
        **kwargs,
    ) -> httpx.Response:
        """
        Send a request and return the raw response.

        Non-2xx responses and transport errors are raised as FrappeError.
        """
        headers = dict(kwargs.pop("headers", None) or {})
        if authenticated:
            headers.update(self._auth_headers())

        client = await self._get_http_client()
        logger.debug(f"Frappe {method}: {url} params={kwargs.get('params')}")

        try:
            response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise FrappeError(f"Request to {url} failed: {e}") from e

        if response.is_error:
            body = _decode_body(response)
            raise FrappeError(
                extract_error_message(body, f"HTTP {response.status_code}"),
                status_code=response.status_code,
                details=body,
            )
        return response

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        response = await self.send(method, url, **kwargs)
        return _decode_body(response)

    # =========================================================================
    # Resource endpoints
    # =========================================================================

    async def get_doc(self, doctype: str, name: str) -> Optional[dict[str, Any]]:
        """
        Fetch a single document by name.

        Returns:
            dict: The document, unwrapped from the `data` envelope
        """
        payload = await self._request_json("GET", self.resource_path(doctype, name))
        return _unwrap(payload, "data")

    async def get_list(
        self,
        doctype: str,
        filters: Optional[Filters] = None,
        fields: Optional[list[str]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        start: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """
        List documents of a doctype.

        Args:
            doctype: Doctype name (e.g., "Leave Allocation")
            filters: List-style `[[field, op, value]]` or dict-style filters
            fields: Optional list of fields to return
            order_by: Optional SQL-style ordering (e.g., "creation desc")
            limit: Optional page length (0 means no limit)
            start: Optional row offset

        Returns:
            list: Rows from the `data` envelope ([] when absent)
        """
        params = _list_params(filters, fields, order_by, limit, start)
        payload = await self._request_json("GET", self.resource_path(doctype), params=params)
        rows = _unwrap(payload, "data")
        return rows if isinstance(rows, list) else []

    async def insert(self, doctype: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a document and return it."""
        logger.debug(f"Frappe INSERT: {doctype}")
        payload = await self._request_json("POST", self.resource_path(doctype), json=data)
        return _unwrap(payload, "data") or {}

    async def update(self, doctype: str, name: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update a document and return the stored version."""
        logger.debug(f"Frappe UPDATE: {doctype}/{name}")
        payload = await self._request_json(
            "PUT", self.resource_path(doctype, name), json=data
        )
        return _unwrap(payload, "data") or {}

    async def delete(self, doctype: str, name: str) -> bool:
        """Delete a document."""
        logger.debug(f"Frappe DELETE: {doctype}/{name}")
        await self.send("DELETE", self.resource_path(doctype, name))
        return True

    # =========================================================================
    # Method endpoints
    # =========================================================================

    async def call_method(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        http_method: str = "GET",
        **kwargs,
    ) -> Any:
        """
        Call a whitelisted server method.

        Returns:
            The `message` member of the response body
        """
        payload = await self._request_json(
            http_method, self.method_path(method), params=params, **kwargs
        )
        return _unwrap(payload, "message")

    async def method_get(self, doctype: str, name: str) -> Optional[dict[str, Any]]:
        """Fetch a document through `frappe.client.get`."""
        result = await self.call_method(
            "frappe.client.get", {"doctype": doctype, "name": name}
        )
        return result if isinstance(result, dict) else None

    async def method_get_list(
        self,
        doctype: str,
        filters: Optional[Filters] = None,
        fields: Optional[list[str]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """List documents through `frappe.client.get_list`."""
        params = {"doctype": doctype}
        params.update(_list_params(filters, fields, order_by, limit, None))
        result = await self.call_method("frappe.client.get_list", params)
        return result if isinstance(result, list) else []

    async def method_insert(self, doctype: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a document through `frappe.client.insert`."""
        doc = {"doctype": doctype, **data}
        result = await self.call_method(
            "frappe.client.insert", http_method="POST", json={"doc": doc}
        )
        return result if isinstance(result, dict) else {}

    async def upload_file(
        self,
        filename: str,
        content: bytes,
        mime_type: str,
        folder: str = "Home/Attachments",
        is_private: bool = False,
    ) -> Optional[str]:
        """
        Upload a file through the `upload_file` method.

        Returns:
            str: The stored file URL, if the server reported one
        """
        result = await self.call_method(
            "upload_file",
            http_method="POST",
            data={"is_private": "1" if is_private else "0", "folder": folder},
            files={"file": (filename, content, mime_type)},
        )
        if isinstance(result, dict):
            return result.get("file_url")
        return None


def _list_params(
    filters: Optional[Filters],
    fields: Optional[list[str]],
    order_by: Optional[str],
    limit: Optional[int],
    start: Optional[int],
) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if filters is not None:
        params["filters"] = json.dumps(filters)
    if fields:
        params["fields"] = json.dumps(fields)
    if order_by:
        params["order_by"] = order_by
    if limit is not None:
        params["limit_page_length"] = str(limit)
    if start:
        params["limit_start"] = str(start)
    return params


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _unwrap(payload: Any, key: str) -> Any:
    """Return `payload[key]` when the envelope is present, else the payload."""
    if isinstance(payload, dict) and key in payload:
        return payload[key]
    return payload
