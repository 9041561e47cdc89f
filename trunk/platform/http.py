"""HTTP client abstraction for the CI and issue-tracker APIs.

This module provides:
- HttpClient: Protocol for JSON API calls (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from trunk import __version__
from trunk.core.result import Err, Ok, Result

__all__ = [
    "HttpCall",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
]

HTTP_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for JSON-over-HTTPS calls.

    This abstraction allows injecting mock clients for testing,
    avoiding real network calls in unit tests.
    """

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        """Send a request and decode the JSON response.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            url: Absolute URL
            headers: Extra request headers (authentication)
            body: JSON-serializable request body, if any

        Returns:
            Ok with the decoded payload (None for an empty body), or Err
        """
        ...


class RealHttpClient:
    """Real HTTP client using urllib.

    Handles:
    - HTTPS with system certificates
    - JSON encoding of request bodies and decoding of responses
    - Timeout handling
    """

    def __init__(
        self,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        user_agent: str = f"git-trunk/{__version__}",
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        all_headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        all_headers.update(headers or {})

        data: bytes | None = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            all_headers["Content-Type"] = "application/json"

        try:
            req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                raw: bytes = response.read()
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

        if not raw.strip():
            return Ok(None)
        try:
            return Ok(json.loads(raw.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))


@dataclass(frozen=True, slots=True)
class HttpCall:
    """A request recorded by MockHttpClient."""

    method: str
    url: str
    headers: dict[str, str]
    body: object | None


def _empty_calls() -> list[HttpCall]:
    return []


@dataclass
class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are registered per (method, url). Unregistered requests get a
    404 error.

    Usage:
        client = MockHttpClient()
        client.set_json("GET", "https://api.example.com/items", [{"id": 1}])
        result = client.request_json("GET", "https://api.example.com/items")
        assert result == Ok([{"id": 1}])
    """

    responses: dict[tuple[str, str], object | HttpError] = field(default_factory=dict)
    calls: list[HttpCall] = field(default_factory=_empty_calls)

    def set_json(self, method: str, url: str, response: object | HttpError) -> None:
        self.responses[(method.upper(), url)] = response

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        self.calls.append(HttpCall(method.upper(), url, dict(headers or {}), body))

        key = (method.upper(), url)
        if key not in self.responses:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))

        response = self.responses[key]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def calls_to(self, method: str) -> list[HttpCall]:
        return [c for c in self.calls if c.method == method.upper()]
