from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import httpx

from .errors import TransportError
from .models import decode_body

__all__ = ["Transport", "TransportResponse", "HttpxTransport"]


@dataclass(frozen=True, slots=True)
class TransportResponse:
    status_code: int
    body: Any | None = None


class Transport(Protocol):
    """Boundary to the HTTP stack: one request in, one response out."""

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
    ) -> TransportResponse: ...


@dataclass(slots=True)
class HttpxTransport:
    """Transport backed by :class:`httpx.Client`. No retries are attempted."""

    timeout: float = 15.0
    client: httpx.Client | None = None

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
    ) -> TransportResponse:
        request_headers = {str(k): str(v) for k, v in headers.items()}
        if body is not None:
            request_headers.setdefault("Content-Type", "application/json")
        try:
            if self.client is not None:
                response = self.client.request(method, url, headers=request_headers, content=body)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.request(method, url, headers=request_headers, content=body)
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        try:
            return TransportResponse(status_code=response.status_code, body=decode_body(response.content))
        finally:
            response.close()
