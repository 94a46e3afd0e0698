"""HTTPS callable functions client.

Requests are POSTed as {"data": ...}; successful responses carry
{"result": ...} and failures {"error": {"status", "message"}}.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from reelfeed.providers.base import FunctionsClient
from reelfeed.providers.exceptions import FunctionsError

logger = structlog.get_logger(__name__)


class CallableFunctionsClient(FunctionsClient):
    """Client for callable cloud functions under a common base URL."""

    def __init__(
        self,
        base_url: str,
        id_token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Functions root, e.g. https://us-central1-project.cloudfunctions.net
            id_token: Optional bearer token sent with every call
            http_client: Pre-built httpx client
        """
        self.base_url = base_url.rstrip("/")
        self.id_token = id_token
        self._http = http_client
        self._owns_http = http_client is None

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=None)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.id_token:
            headers["Authorization"] = f"Bearer {self.id_token}"
        return headers

    async def call(self, name: str, data: Optional[Any] = None) -> Any:
        url = f"{self.base_url}/{name.lstrip('/')}"
        logger.debug("function_call_started", function=name)

        try:
            response = await self._get_http().post(
                url, json={"data": data}, headers=self._headers()
            )
            body = response.json()
        except httpx.HTTPError as e:
            raise FunctionsError(f"Call to {name} failed: {e}") from e
        except ValueError as e:
            raise FunctionsError(f"Call to {name} returned invalid JSON") from e

        if not isinstance(body, dict):
            raise FunctionsError(f"Call to {name} returned an unexpected body")

        if "error" in body or response.status_code >= 400:
            error = body.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise FunctionsError(
                f"Call to {name} failed with HTTP {response.status_code}: "
                f"{message or 'unknown error'}"
            )

        if "result" not in body:
            raise FunctionsError(f"Call to {name} returned no result")

        logger.debug("function_call_completed", function=name)
        return body["result"]
