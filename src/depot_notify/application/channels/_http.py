"""Shared httpx plumbing for the HTTP-backed providers."""
from __future__ import annotations

import contextlib
from typing import Any, AsyncIterator

import httpx


@contextlib.asynccontextmanager
async def client_scope(client: httpx.AsyncClient | None, timeout: float) -> AsyncIterator[httpx.AsyncClient]:
    """Yield *client* unchanged, or a short-lived client closed on exit."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout) as owned:
        yield owned


def json_object(resp: httpx.Response) -> dict[str, Any] | None:
    """The response body as a JSON object, or ``None`` when it is empty, not JSON, or not an object."""
    if not resp.content:
        return None
    try:
        body = resp.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def describe_error(exc: Exception) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timed out: {exc}" if str(exc) else "Request timed out"
    return str(exc) or type(exc).__name__


__all__ = ["client_scope", "describe_error", "json_object"]
