import httpx
import logging
from typing import Any, Optional

from coach_portal.config import settings
from coach_portal.errors import AuthenticationError, BackendHTTPError, EnvelopeError, NetworkError
from coach_portal.models.api_response import ApiResponse

logger = logging.getLogger(__name__)


class BackendClient:
    """Thin async client for the coaching backend's JSON envelope API."""

    def __init__(self, base_url: str = None, token: Optional[str] = None, timeout: float = None):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token = token
        self.timeout = timeout or settings.api_timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(self, method: str, path: str, json: Any = None, params: Optional[dict] = None) -> ApiResponse:
        """Send one request and return the decoded envelope.

        Raises NetworkError when no response arrives, AuthenticationError on
        401 and BackendHTTPError on any other non-2xx status.
        """
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, json=json, params=params, headers=self._headers())
        except httpx.RequestError as e:
            logger.error(f"Network error on {method} {path}: {e}")
            raise NetworkError() from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            message = None
            if isinstance(body, dict):
                message = body.get("message")
            message = message or f"HTTP {response.status_code}: {response.reason_phrase}"
            logger.error(f"Backend {method} {path} failed: {message}")
            if response.status_code == 401:
                raise AuthenticationError(message, status_code=401)
            raise BackendHTTPError(message, status_code=response.status_code)

        if isinstance(body, dict) and "success" in body:
            return ApiResponse.model_validate(body)
        # Endpoints that answer with a bare payload
        return ApiResponse(success=True, data=body)

    async def get(self, path: str, params: Optional[dict] = None) -> ApiResponse:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> ApiResponse:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> ApiResponse:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, json: Any = None) -> ApiResponse:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str, json: Any = None) -> ApiResponse:
        return await self.request("DELETE", path, json=json)

    async def is_available(self) -> bool:
        """Check if the backend is reachable."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self.base_url}/health")
                return response.status_code < 500
        except Exception:
            return False


def require_data(response: ApiResponse, action: str, allow_empty: bool = False) -> Any:
    """Unwrap an envelope, raising EnvelopeError when it reports failure."""
    if not response.success:
        raise EnvelopeError(response.message or f"Failed to {action}")
    if response.data is None and not allow_empty:
        raise EnvelopeError(response.message or f"Failed to {action}: no data returned")
    return response.data
