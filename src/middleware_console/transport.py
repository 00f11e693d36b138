"""
Console Transport
Generic request executor that normalizes backend responses into payloads or failures
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .errors import HTTPFailure, NetworkFailure

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def success_marker(status_code: int) -> Dict[str, Any]:
    """Payload returned for 2xx responses without a JSON body"""
    return {"success": True, "status": status_code}


def is_success_marker(payload: Any) -> bool:
    return isinstance(payload, dict) and set(payload) == {"success", "status"} and payload["success"] is True


class Transport:
    """
    Issues HTTP calls against the management API.

    Every call either returns the decoded payload or raises a
    ``NetworkFailure`` / ``HTTPFailure``. Failures are logged here and are
    never retried.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        auth: Optional[httpx.Auth] = None,
    ):
        self.api_url = api_url.rstrip('/')
        self.headers = {"Accept": "application/json"}
        self.client = client or httpx.AsyncClient(timeout=timeout, auth=auth)

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    def url_for(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        return f"{self.api_url}{endpoint}"

    async def execute(self, endpoint: str, method: str = "GET", body: Any = None) -> Any:
        """Send one request and return its payload"""
        method = method.upper()
        url = self.url_for(endpoint)
        request_kwargs: Dict[str, Any] = {"headers": self.headers}
        if body is not None:
            request_kwargs["json"] = body

        try:
            response = await self.client.request(method, url, **request_kwargs)
        except httpx.RequestError as e:
            failure = NetworkFailure(f"Request failed: {e}")
            logger.error(f"API Error ({method} {endpoint}): {failure.message}")
            raise failure from e

        if response.is_success:
            return self._decode_success(response)

        failure = self._decode_failure(response)
        logger.error(f"API Error ({method} {endpoint}): {failure.message}")
        raise failure

    # Convenience wrappers
    async def get(self, endpoint: str) -> Any:
        return await self.execute(endpoint, "GET")

    async def post(self, endpoint: str, body: Any = None) -> Any:
        return await self.execute(endpoint, "POST", body)

    async def put(self, endpoint: str, body: Any = None) -> Any:
        return await self.execute(endpoint, "PUT", body)

    async def delete(self, endpoint: str) -> Any:
        return await self.execute(endpoint, "DELETE")

    @staticmethod
    def _decode_success(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type or not response.content:
            return success_marker(response.status_code)
        try:
            return response.json()
        except ValueError:
            logger.debug(f"Could not decode JSON success body (status {response.status_code})")
            return success_marker(response.status_code)

    @staticmethod
    def _decode_failure(response: httpx.Response) -> HTTPFailure:
        message = f"Request failed with status: {response.reason_phrase} ({response.status_code})"
        details = None
        try:
            parsed = response.json()
        except ValueError:
            logger.debug("Could not parse error response body as JSON.")
            parsed = None

        if isinstance(parsed, dict):
            if parsed.get("message"):
                message = str(parsed["message"])
            if parsed.get("details"):
                details = parsed["details"]

        return HTTPFailure(message, status_code=response.status_code, details=details)
