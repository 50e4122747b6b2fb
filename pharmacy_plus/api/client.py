# pharmacy_plus/api/client.py
import logging
import time
from typing import Any, Optional

import httpx

from pharmacy_plus.core.errors import ApiError
from pharmacy_plus.core.security import bearer_headers

logger = logging.getLogger(__name__)


def _error_message(data: Any, status_code: int) -> str:
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return f"Request failed with status {status_code}"


class ApiClient:
    """
    Thin async wrapper over the marketplace REST API.

    Every call forwards the bearer token when one is set. Non-2xx responses
    raise ApiError carrying the backend's message; transport failures raise
    ApiError without a status code.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json", "Cache-Control": "no-store"},
        )

    async def request(self, method: str, path: str, data: Any = None, params: Optional[dict] = None) -> Any:
        method = method.upper()
        params = dict(params or {})
        if method == "GET":
            # cache-buster, avoids 304s from intermediaries
            params["_"] = int(time.time() * 1000)
        try:
            response = await self._client.request(
                method,
                path,
                json=data,
                params=params or None,
                headers=bearer_headers(self.token),
            )
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(f"Network error: {e}") from e

        payload = None
        content_type = response.headers.get("content-type", "")
        if response.status_code != 204 and "application/json" in content_type:
            try:
                payload = response.json()
            except ValueError:
                payload = None

        if response.is_error:
            raise ApiError(_error_message(payload, response.status_code), response.status_code)
        return payload

    async def get(self, path: str, params: Optional[dict] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, data: Any = None) -> Any:
        return await self.request("POST", path, data)

    async def put(self, path: str, data: Any = None) -> Any:
        return await self.request("PUT", path, data)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def aclose(self) -> None:
        await self._client.aclose()
