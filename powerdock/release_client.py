"""Client for the release metadata API (latest published release)."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

import httpx

from powerdock.config import ReleaseConfig
from powerdock.version import Version, parse_version, strip_tag_prefix

LOGGER = logging.getLogger(__name__)

ACCEPT_HEADER = "application/vnd.github.v3+json"
RESPONSE_PREVIEW_CHARS = 200


class FetchErrorKind(enum.Enum):
    CONNECTION_FAILED = "connection_failed"
    AUTH_FAILED = "auth_failed"
    NOT_FOUND = "not_found"
    API_ERROR = "api_error"
    INVALID_RESPONSE = "invalid_response"


class ReleaseFetchError(RuntimeError):
    """Raised when the latest release could not be determined."""

    def __init__(self, kind: FetchErrorKind, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class ReleaseInfo:
    tag_version: Version
    raw_tag: str

    @property
    def version_text(self) -> str:
        """Tag with any leading ``v`` removed, as published."""
        return strip_tag_prefix(self.raw_tag)


class ReleaseClient:
    """Look up the latest release with a single bounded GET.

    There are no retries here; whether to try again is the caller's decision.
    """

    def __init__(
        self,
        config: ReleaseConfig,
        *,
        client: httpx.Client | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self._logger = logger or LOGGER
        self._owns_client = client is None
        if client is None:
            if not config.verify_tls:
                self._logger.warning(
                    "[ota] TLS certificate verification is DISABLED for %s (POWERDOCK_RELEASE_VERIFY_TLS=false)",
                    config.host,
                )
            client = httpx.Client(
                timeout=config.timeout,
                verify=config.verify_tls,
                follow_redirects=True,
            )
        self._client = client

    def __enter__(self) -> ReleaseClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _headers(self, token: str | None) -> dict[str, str]:
        headers = {
            "User-Agent": self.config.user_agent,
            "Accept": ACCEPT_HEADER,
        }
        if token:
            headers["Authorization"] = f"token {token}"
            self._logger.debug("[ota] Using authentication token")
        else:
            self._logger.debug("[ota] No token - accessing as public repo")
        return headers

    def fetch_latest_release(self, token: str | None = None) -> ReleaseInfo:
        url = self.config.latest_release_url
        self._logger.debug("[ota] Repository: %s/%s", self.config.owner, self.config.repo)
        self._logger.debug("[ota] API URL: %s", url)
        try:
            response = self._client.get(url, headers=self._headers(token), timeout=self.config.timeout)
        except httpx.HTTPError as exc:
            self._logger.error("[ota] Request to %s failed: %s", url, exc)
            raise ReleaseFetchError(FetchErrorKind.CONNECTION_FAILED, f"Connection failed: {exc}") from exc

        status = response.status_code
        self._logger.debug("[ota] HTTP response code: %d (%d bytes)", status, len(response.content))

        if status == 401:
            self._logger.error("[ota] Authentication failed - check your API token")
            raise ReleaseFetchError(FetchErrorKind.AUTH_FAILED, "Authentication failed", status_code=status)

        if status == 404:
            self._logger.warning(
                "[ota] Release API returned HTTP 404 (private repository without token, "
                "wrong repository name, or no published releases)"
            )
            raise ReleaseFetchError(FetchErrorKind.NOT_FOUND, "No releases found", status_code=status)

        if status != 200:
            self._logger.error("[ota] Release API returned HTTP %d", status)
            raise ReleaseFetchError(FetchErrorKind.API_ERROR, f"API error (HTTP {status})", status_code=status)

        return self._parse_release(response)

    def _parse_release(self, response: httpx.Response) -> ReleaseInfo:
        try:
            payload = response.json()
        except ValueError as exc:
            self._logger.error(
                "[ota] JSON parse failed: %s (preview: %.*s)",
                exc,
                RESPONSE_PREVIEW_CHARS,
                response.text,
            )
            raise ReleaseFetchError(FetchErrorKind.INVALID_RESPONSE, "Unparsable release payload") from exc

        tag = payload.get("tag_name") if isinstance(payload, dict) else None
        if not isinstance(tag, str) or not tag.strip():
            self._logger.error("[ota] tag_name not found in response")
            raise ReleaseFetchError(FetchErrorKind.INVALID_RESPONSE, "Release payload has no tag_name")

        tag = tag.strip()
        info = ReleaseInfo(tag_version=parse_version(strip_tag_prefix(tag)), raw_tag=tag)
        self._logger.info("[ota] Latest release tag: %s", tag)
        return info
