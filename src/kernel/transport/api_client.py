"""
Admin REST client.

Thin httpx wrapper around the admin backend:
- Bearer token from the SessionContext on every request
- Fixed request timeout (no retries: admin transitions are not safe to replay)
- JSON envelope {code, message, data}; a code other than 200/201 is a failure
- Any 401 expires the session (credential teardown + login redirect)

Every failure surfaces as TransportError carrying the server's message verbatim.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from src.kernel.identity.session import SessionContext
from src.logging_config import get_logger

logger = get_logger(__name__)

SUCCESS_CODES = (200, 201)


class TransportError(Exception):
    """A collaborator call failed (HTTP error, error envelope, timeout or network)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        *,
        timeout: bool = False,
        network: bool = False,
        endpoint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.timeout = timeout
        self.network = network
        self.endpoint = endpoint

    def __repr__(self) -> str:
        return (
            f"TransportError({self.message!r}, status_code={self.status_code}, "
            f"timeout={self.timeout}, network={self.network})"
        )


@dataclass
class ApiEnvelope:
    """Decoded success envelope."""

    code: int
    message: Optional[str] = None
    data: Any = None


def _extract_message(response: httpx.Response) -> Optional[str]:
    """Pull the server's human-readable message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or None
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if value:
                return str(value)
    return None


def _clean_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not params:
        return None
    return {k: v for k, v in params.items() if v is not None and v != ""}


class AdminApiClient:
    """
    Async client for the admin backend.

    Usage:
        async with AdminApiClient(base_url, session, timeout=10.0) as client:
            envelope = await client.post("/novels/42/approve")
    """

    def __init__(
        self,
        base_url: str,
        session: SessionContext,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "AdminApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> ApiEnvelope:
        """Send one request and decode the envelope, raising TransportError on any failure."""
        endpoint = f"{method} {path}"
        try:
            response = await self._client.request(
                method,
                path,
                params=_clean_params(params),
                json=json,
                headers=self.session.authorization_header(),
            )
        except httpx.TimeoutException as e:
            logger.warning("Admin API timeout", extra={"endpoint": endpoint})
            raise TransportError(
                f"Request timed out after {self.timeout:g}s",
                timeout=True,
                endpoint=endpoint,
            ) from e
        except httpx.TransportError as e:
            logger.warning("Admin API network error: %s", e, extra={"endpoint": endpoint})
            raise TransportError(
                str(e) or "Network error",
                network=True,
                endpoint=endpoint,
            ) from e

        if response.status_code == 401:
            self.session.expire(f"401 from {endpoint}")

        if response.status_code >= 400:
            message = _extract_message(response) or f"Request failed with status code {response.status_code}"
            logger.info(
                "Admin API error response",
                extra={"endpoint": endpoint, "status_code": response.status_code},
            )
            raise TransportError(message, response.status_code, endpoint=endpoint)

        try:
            body = response.json()
        except ValueError:
            return ApiEnvelope(code=response.status_code, data=response.text or None)

        if not isinstance(body, dict):
            return ApiEnvelope(code=response.status_code, data=body)

        code = body.get("code")
        if code is not None and code not in SUCCESS_CODES:
            message = body.get("message") or f"Request failed with code {code}"
            raise TransportError(
                message,
                code if isinstance(code, int) else None,
                endpoint=endpoint,
            )

        return ApiEnvelope(
            code=code if isinstance(code, int) else response.status_code,
            message=body.get("message"),
            data=body.get("data"),
        )

    async def get(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> ApiEnvelope:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: Any = None) -> ApiEnvelope:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, *, json: Any = None) -> ApiEnvelope:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> ApiEnvelope:
        return await self.request("DELETE", path)
