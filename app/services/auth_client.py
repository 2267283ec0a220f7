from __future__ import annotations

from typing import Any

import httpx
from opentelemetry import propagate

from app.config import get_settings
from app.observability.calls import traced_call
from app.services.errors import CollaboratorUnavailable

_client: httpx.AsyncClient | None = None


def set_auth_http_client(client: httpx.AsyncClient | None) -> None:
    global _client
    _client = client


def get_auth_http_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        # No timeout: a hung auth service hangs the request, there is no retry either.
        _client = httpx.AsyncClient(timeout=None)
    return _client


async def close_auth_http_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def fetch_user() -> Any:
    """GET the auth collaborator and return its JSON payload verbatim."""

    url = get_settings().auth_url
    client = get_auth_http_client()

    async def _get() -> Any:
        # Forward traceparent + baggage so the auth service joins this trace.
        headers: dict[str, str] = {}
        propagate.inject(headers)
        try:
            response = await client.get(url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise CollaboratorUnavailable("auth", f"status {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise CollaboratorUnavailable("auth", str(exc) or type(exc).__name__) from exc

        try:
            return response.json()
        except ValueError:
            # Non-JSON bodies are passed through as text.
            return response.text

    return await traced_call(
        operation="auth.get_user",
        peer="auth",
        fn=_get,
        attributes={"http.method": "GET", "http.url": url},
    )
