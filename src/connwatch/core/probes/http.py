"""HTTP probes for API-flavored connections (httpx).

``RestApiProbe`` issues a GET against the connection's base URL with the
decrypted API key as a bearer token. ``GitHubProbe`` calls the
authenticated ``/user`` endpoint with ``Authorization: token <pat>``.

Both accept an optional ``transport`` so tests can plug in
``httpx.MockTransport`` instead of the network.
"""

from __future__ import annotations

from typing import Any

import httpx

from connwatch.core.errors import ProbeError, ValidationError
from connwatch.core.models import Connection, ConnectionKind, ProbeErrorKind

from .base import DEFAULT_API_TIMEOUT, ConnectionProbe, ProbeOptions
from .taxonomy import CONTEXT_CONFIG, CONTEXT_GENERIC, CONTEXT_TIMEOUT, ProbeFailure, classify_generic
from .types import Credentials

USER_AGENT = "connwatch-healthcheck"
MAX_BODY_DETAIL = 500


class HttpProbe(ConnectionProbe):
    """Shared request/response handling for API probes."""

    default_timeout = DEFAULT_API_TIMEOUT
    code_prefix = "HTTP"
    label = "API"

    def __init__(self, timeout: float | None = None, transport: httpx.BaseTransport | None = None):
        super().__init__(timeout)
        self._transport = transport

    @classmethod
    def configure(cls, options: ProbeOptions) -> ConnectionProbe:
        return cls(timeout=options.api_timeout, transport=options.transport)

    def _get(self, url: str, headers: dict[str, str], timeout: float) -> httpx.Response:
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json", **headers}
        with httpx.Client(timeout=timeout, transport=self._transport, follow_redirects=True) as client:
            return client.get(url, headers=headers)

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        kind, code = self.status_failure(response)
        verb = "authentication failed" if kind == ProbeErrorKind.UNAUTHORIZED else "request failed"
        raise ProbeError(
            f"{self.label} {verb}: {response.status_code} {response.reason_phrase}".rstrip(),
            kind=kind,
            code=code,
            details=response.text[:MAX_BODY_DETAIL],
        )

    def status_failure(self, response: httpx.Response) -> tuple[ProbeErrorKind, str]:
        """Map a non-2xx response to ``(kind, code)``."""
        status = response.status_code
        if status == 401:
            kind = ProbeErrorKind.UNAUTHORIZED
        elif status == 403:
            if response.headers.get("X-RateLimit-Remaining") == "0":
                kind = ProbeErrorKind.RATE_LIMITED
            else:
                kind = ProbeErrorKind.UNAUTHORIZED
        elif status == 404:
            kind = ProbeErrorKind.NOT_FOUND
        elif status == 429:
            kind = ProbeErrorKind.RATE_LIMITED
        elif status in (408, 504):
            kind = ProbeErrorKind.TIMEOUT
        else:
            kind = ProbeErrorKind.UNKNOWN
        return kind, self.status_code(status)

    def status_code(self, status: int) -> str:
        return f"{self.code_prefix}_{status}"

    def classify(self, exc: BaseException) -> ProbeFailure:
        text = str(exc)
        if isinstance(exc, httpx.TimeoutException):
            return ProbeFailure(
                kind=ProbeErrorKind.TIMEOUT,
                code="TIMEOUT",
                message=f"{CONTEXT_TIMEOUT}: The {self.label} did not respond in time.",
                details=text,
            )
        if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
            return ProbeFailure(
                kind=ProbeErrorKind.INVALID_CONFIG,
                code="INVALID_CONFIG",
                message=f"{CONTEXT_CONFIG}: The {self.label} base URL is not valid.",
                details=text,
            )
        if isinstance(exc, (httpx.ConnectError, httpx.NetworkError)):
            return ProbeFailure(
                kind=ProbeErrorKind.NETWORK_UNREACHABLE,
                code="NETWORK_ERROR",
                message=f"{CONTEXT_GENERIC}: Unable to reach the {self.label}. Please check the URL and network connectivity.",
                details=text,
            )
        return classify_generic(exc, self.kind.name)


class RestApiProbe(HttpProbe):
    """GET the base URL; any 2xx counts as reachable."""

    kind = ConnectionKind.REST_API
    label = "REST API"

    def _probe(self, connection: Connection, credentials: Credentials, timeout: float) -> dict[str, Any]:
        if not connection.api_base_url:
            raise ValidationError("API base URL is required", field="api_base_url")

        headers: dict[str, str] = {}
        if credentials.api_key:
            headers["Authorization"] = f"Bearer {credentials.api_key.get_secret()}"

        response = self._get(connection.api_base_url, headers, timeout)
        self._raise_for_status(response)
        return {
            "api_endpoint": connection.api_base_url,
            "status_code": response.status_code,
            "authentication_method": "Bearer Token" if credentials.api_key else "None",
        }


class GitHubProbe(HttpProbe):
    """Authenticate against ``GET /user`` with a personal access token."""

    kind = ConnectionKind.GITHUB_API
    code_prefix = "GITHUB"
    label = "GitHub API"

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        api_url: str = "https://api.github.com",
    ):
        super().__init__(timeout, transport)
        self.api_url = api_url.rstrip("/")

    @classmethod
    def configure(cls, options: ProbeOptions) -> ConnectionProbe:
        return cls(timeout=options.api_timeout, transport=options.transport, api_url=options.github_api_url)

    def status_code(self, status: int) -> str:
        named = {401: "GITHUB_UNAUTHORIZED", 403: "GITHUB_FORBIDDEN", 404: "GITHUB_NOT_FOUND"}
        return named.get(status, f"GITHUB_HTTP_{status}")

    def _probe(self, connection: Connection, credentials: Credentials, timeout: float) -> dict[str, Any]:
        if not credentials.api_key:
            raise ProbeError(
                "GitHub token is required for authentication",
                kind=ProbeErrorKind.UNAUTHORIZED,
                code="GITHUB_NO_TOKEN",
            )

        headers = {
            "Authorization": f"token {credentials.api_key.get_secret()}",
            "Accept": "application/vnd.github+json",
        }
        response = self._get(f"{self.api_url}/user", headers, timeout)
        self._raise_for_status(response)

        metadata: dict[str, Any] = {
            "api_endpoint": self.api_url,
            "authentication_method": "Personal Access Token",
            "rate_limit_remaining": response.headers.get("X-RateLimit-Remaining", "Unknown"),
            "rate_limit_reset": response.headers.get("X-RateLimit-Reset", "Unknown"),
        }
        if connection.github_organization:
            metadata["organization"] = connection.github_organization
        if connection.github_repository:
            metadata["repository"] = connection.github_repository
        return metadata


__all__ = ["HttpProbe", "RestApiProbe", "GitHubProbe", "USER_AGENT"]
