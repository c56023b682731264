"""Async HTTP client for the storefront ``/api`` endpoints.

All endpoints answer with a JSON envelope ``{"ok": bool, ...}``.  The client
injects identity headers on every request, raises :class:`ApiError` for
non-2xx responses, and announces 401/403 responses on the event bus so the
application shell can render an "unauthorized" state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from storefront.errors import ApiError
from storefront.events import PERMISSION_DENIED_EVENT, EventBus
from storefront.identity import IdentitySource
from storefront.schemas.error import ErrorType

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 10.0


class StorefrontApiClient:
    """Thin wrapper over :class:`httpx.AsyncClient` speaking the API envelope."""

    def __init__(
        self,
        base_url: str,
        *,
        identity: IdentitySource,
        events: EventBus | None = None,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._identity = identity
        self._events = events
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "StorefrontApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get(
        self,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self.request("GET", path, params=params, headers=headers)

    async def post_json(
        self,
        path: str,
        body: Any,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self.request("POST", path, json=body, headers=headers)

    async def delete(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self.request("DELETE", path, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send a request and return the decoded JSON envelope.

        Explicit ``headers`` win over the injected identity headers.  Network
        failures propagate as :class:`httpx.HTTPError`; everything else that
        makes the response unusable becomes an :class:`ApiError`.
        """

        merged_headers = self._identity.request_headers()
        if headers:
            merged_headers.update(headers)

        response = await self._client.request(
            method,
            path,
            params=params,
            json=json,
            headers=merged_headers,
        )
        payload = self._decode(response)

        if response.is_error:
            message = self._error_message(payload, response)
            if response.status_code in (401, 403):
                self._announce_denied(response, payload, message)
            logger.debug(
                "%s %s failed with status %s: %s",
                method,
                path,
                response.status_code,
                message,
            )
            raise ApiError(
                message,
                status_code=response.status_code,
                error_type=_error_type_for_status(response.status_code),
                url=str(response.request.url),
            )

        if not isinstance(payload, dict):
            raise ApiError(
                "Expected a JSON object envelope",
                status_code=response.status_code,
                error_type=ErrorType.MALFORMED_RESPONSE,
                url=str(response.request.url),
            )
        return payload

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                return response.text
        return response.text

    @staticmethod
    def _error_message(payload: Any, response: httpx.Response) -> str:
        if isinstance(payload, str) and payload:
            return payload
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return response.reason_phrase or f"HTTP {response.status_code}"

    def _announce_denied(
        self, response: httpx.Response, payload: Any, message: str
    ) -> None:
        if self._events is None:
            return
        detail: dict[str, Any] = {}
        if isinstance(payload, dict):
            detail.update(payload)
        detail.setdefault("error", message)
        detail["status"] = response.status_code
        detail["url"] = str(response.request.url)
        self._events.publish(PERMISSION_DENIED_EVENT, detail)


def _error_type_for_status(status_code: int) -> ErrorType:
    if status_code == 401:
        return ErrorType.AUTHENTICATION_ERROR
    if status_code == 403:
        return ErrorType.AUTHORIZATION_ERROR
    if status_code in (408, 504):
        return ErrorType.TIMEOUT_ERROR
    return ErrorType.REMOTE_ERROR


__all__ = ["StorefrontApiClient"]
