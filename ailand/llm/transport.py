"""
HTTP transport for the OpenRouter-style API.

Plain request/response plumbing over httpx: builds headers, applies the
per-endpoint timeout, decodes JSON and normalises every failure into a
TransportError. It knows nothing about conversations or tools.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ailand.config.settings import DEFAULT_BASE_URL
from ailand.llm.errors import TransportError

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_ENDPOINT = "/chat/completions"
AUTH_KEY_ENDPOINT = "/key"
MODELS_ENDPOINT = "/models"

# Error details and debug previews are cut to this many characters
PREVIEW_LIMIT = 500


def _preview(text: str) -> str:
    text = text.strip()
    if len(text) > PREVIEW_LIMIT:
        return text[:PREVIEW_LIMIT] + "..."
    return text


def extract_error_details(body: str) -> str:
    """
    Pull a human-readable message out of an error response body.

    Tries ``{"error": {"message": ...}}`` first, then a top-level
    ``{"message": ...}``, and falls back to the raw body.
    """
    try:
        decoded = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return body[:PREVIEW_LIMIT]
    if isinstance(decoded, dict):
        error = decoded.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])[:PREVIEW_LIMIT]
        if decoded.get("message"):
            return str(decoded["message"])[:PREVIEW_LIMIT]
    return body[:PREVIEW_LIMIT]


class OpenRouterTransport:
    """
    Sends authenticated JSON requests to the completion API.

    A fresh ``httpx.AsyncClient`` is opened per request so concurrent
    generations never share connection state.

    Args:
        base_url: API root, e.g. ``https://openrouter.ai/api/v1``
        completion_timeout: Seconds allowed for ``POST /chat/completions``
        metadata_timeout: Seconds allowed for ``GET /key`` and ``GET /models``
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        completion_timeout: float = 300.0,
        metadata_timeout: float = 60.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._completion_timeout = completion_timeout
        self._metadata_timeout = metadata_timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    @staticmethod
    def build_headers(api_key: str | None, with_body: bool = False) -> dict[str, str]:
        headers: dict[str, str] = {}
        if with_body:
            headers["Content-Type"] = "application/json"
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    async def post_chat_completion(self, api_key: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a chat completion request and return the decoded body."""
        return await self._request(
            "POST",
            CHAT_COMPLETIONS_ENDPOINT,
            api_key=api_key,
            payload=payload,
            timeout=self._completion_timeout,
        )

    async def get_key_info(self, api_key: str) -> dict[str, Any]:
        """GET /key for the account behind ``api_key``."""
        return await self._request(
            "GET", AUTH_KEY_ENDPOINT, api_key=api_key, timeout=self._metadata_timeout
        )

    async def get_models(self, api_key: str | None = None) -> dict[str, Any]:
        """GET /models. The key is optional for this endpoint."""
        return await self._request(
            "GET", MODELS_ENDPOINT, api_key=api_key, timeout=self._metadata_timeout
        )

    async def _request(
        self,
        method: str,
        endpoint: str,
        api_key: str | None,
        timeout: float,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Perform one HTTP exchange and decode the JSON body.

        Raises:
            TransportError: On network failure, non-2xx status or a non-JSON body
        """
        url = f"{self._base_url}{endpoint}"
        body = json.dumps(payload) if payload is not None else None
        headers = self.build_headers(api_key, with_body=body is not None)

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.request(method, url, headers=headers, content=body)
        except httpx.TimeoutException as e:
            raise TransportError(f"Timed out calling API [{url}] after {timeout:g}s", cause=e)
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error calling API [{url}]: {e}", cause=e)

        status = response.status_code
        text = response.text
        logger.debug("API %s %s -> %s: %s", method, url, status, _preview(text))

        if status < 200 or status >= 300:
            raise TransportError(
                f"Error communicating with API [{url}]: HTTP Status {status}. "
                f"Details: {extract_error_details(text)}",
                status_code=status,
            )

        if not text.strip():
            raise TransportError(
                f"Empty response received from API [{url}] (Status: {status})",
                status_code=status,
            )
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise TransportError(
                f"Invalid JSON received from API [{url}]: {e}", status_code=status, cause=e
            )
        if not isinstance(data, dict):
            raise TransportError(
                f"Unexpected JSON document from API [{url}]: expected an object",
                status_code=status,
            )
        return data
