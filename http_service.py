import logging
from typing import Any, Callable, Optional

import httpx

from auth import TokenStore
from config import Settings, get_settings

logger = logging.getLogger(__name__)

_ACTIONS = {
    "GET": "Fetch",
    "POST": "Create",
    "PUT": "Update",
    "PATCH": "Update",
    "DELETE": "Delete",
}


class ApiError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        server_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message


class UnauthorizedError(ApiError):
    pass


def unwrap(payload: Any) -> Any:
    """Most endpoints answer ``{"data": ...}``; a few return the bare value."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _server_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("error") or body.get("message")
        if isinstance(message, str) and message:
            return message
    return None


class HttpService:
    """Single request/response JSON transport to the Mad Wallet backend.

    No retries. Adds the bearer token when one is stored; a 401 clears the
    stored session and calls ``on_unauthorized`` before raising.
    """

    def __init__(
        self,
        tokens: TokenStore,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.tokens = tokens
        self.on_unauthorized = on_unauthorized
        self._client = httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.http_timeout_secs,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Any] = None,
        label: str = "",
    ) -> Any:
        method = method.upper()
        if method not in _ACTIONS:
            raise ValueError(f"Unsupported HTTP method: {method}")
        default_message = f"Failed to {_ACTIONS[method]} {label}".strip()

        headers = {}
        if self.tokens.token:
            headers["Authorization"] = f"Bearer {self.tokens.token}"

        try:
            response = await self._client.request(method, url, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(f"http_transport_failed: method={method} url={url} error={exc}")
            raise ApiError(default_message) from exc

        if response.status_code == 401:
            logger.warning(f"http_unauthorized: method={method} url={url}")
            self.tokens.clear()
            if self.on_unauthorized is not None:
                self.on_unauthorized()
            raise UnauthorizedError(
                "Session expired, please log in again",
                status_code=401,
                server_message=_server_message(response),
            )
        if response.is_error:
            server_message = _server_message(response)
            logger.warning(
                f"http_request_failed: method={method} url={url} "
                f"status={response.status_code} error={server_message}"
            )
            raise ApiError(
                server_message or default_message,
                status_code=response.status_code,
                server_message=server_message,
            )

        if not response.content:
            return None
        return response.json()

    async def get(self, url: str, *, label: str = "") -> Any:
        return await self.request("GET", url, label=label)

    async def post(self, url: str, data: Optional[Any] = None, *, label: str = "") -> Any:
        return await self.request("POST", url, json=data, label=label)

    async def put(self, url: str, data: Optional[Any] = None, *, label: str = "") -> Any:
        return await self.request("PUT", url, json=data, label=label)

    async def patch(self, url: str, data: Optional[Any] = None, *, label: str = "") -> Any:
        return await self.request("PATCH", url, json=data, label=label)

    async def delete(self, url: str, *, label: str = "") -> Any:
        return await self.request("DELETE", url, label=label)

    async def aclose(self) -> None:
        await self._client.aclose()
