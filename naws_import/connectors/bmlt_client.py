"""
naws_import/connectors/bmlt_client.py

BMLT root server admin API client.

Calls are made with a blocking ``requests`` session; the async methods run
each call in a worker thread so the import engine can keep several create
calls in flight.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Mapping

import requests

from naws_import.config import BMLTServerSettings
from naws_import.connectors.base import ServerRequestError, ServerResponseError
from naws_import.domain.meeting_import import (
    Format,
    MeetingCreateRequest,
    ServiceBody,
    ServiceBodyCreateRequest,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

API_PREFIX = "/api/v1"

# Re-authenticate this many seconds before the token expires.
TOKEN_EXPIRY_MARGIN_SECONDS = 60.0


class BMLTServerClient:
    """
    Authenticated client for the BMLT admin API.
    """

    def __init__(
        self,
        *,
        settings: BMLTServerSettings,
        session: requests.Session | None = None,
    ) -> None:
        if not settings.base_url:
            raise ValueError("BMLT server URL is not configured. Set BMLT_SERVER_URL.")
        self._base_url = settings.base_url.rstrip("/")
        self._username = settings.username
        self._password = settings.password
        self._session = session or requests.Session()
        self._timeout_seconds = settings.timeout_seconds
        self._max_retries = settings.max_retries
        self._backoff_initial_seconds = settings.backoff_initial_seconds
        self._backoff_multiplier = settings.backoff_multiplier
        self._min_request_interval_seconds = (
            1.0 / settings.rate_limit_per_second if settings.rate_limit_per_second > 0 else 0.0
        )
        self._last_request_monotonic: float = 0.0
        self._rate_lock = threading.Lock()
        self._token_lock = threading.Lock()
        self._access_token: str | None = None
        self._token_expires_at: float | None = None
        self._user_id: int | None = None

    # ------------------------------------------------------------------
    # Async interface
    # ------------------------------------------------------------------

    async def list_service_bodies(self) -> list[ServiceBody]:
        return await asyncio.to_thread(self.fetch_service_bodies)

    async def list_formats(self) -> list[Format]:
        return await asyncio.to_thread(self.fetch_formats)

    async def list_meetings(self) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self.fetch_meetings)

    async def create_service_body(self, request: ServiceBodyCreateRequest) -> ServiceBody:
        return await asyncio.to_thread(self.post_service_body, request)

    async def create_meeting(self, request: MeetingCreateRequest) -> dict[str, Any]:
        return await asyncio.to_thread(self.post_meeting, request)

    async def get_current_identity(self) -> int:
        return await asyncio.to_thread(self.current_user_id)

    # ------------------------------------------------------------------
    # Blocking calls
    # ------------------------------------------------------------------

    def fetch_service_bodies(self) -> list[ServiceBody]:
        payload = self._request_json(method="GET", path="/servicebodies")
        return [parse_service_body(item) for item in _as_list(payload, "service bodies")]

    def fetch_formats(self) -> list[Format]:
        payload = self._request_json(method="GET", path="/formats")
        return [parse_format(item) for item in _as_list(payload, "formats")]

    def fetch_meetings(self) -> list[dict[str, Any]]:
        payload = self._request_json(method="GET", path="/meetings")
        return [dict(item) for item in _as_list(payload, "meetings")]

    def post_service_body(self, request: ServiceBodyCreateRequest) -> ServiceBody:
        payload = self._request_json(
            method="POST",
            path="/servicebodies",
            json_body=request.to_payload(),
        )
        if not isinstance(payload, Mapping):
            raise ServerRequestError("Service body response was not a JSON object.")
        return parse_service_body(payload)

    def post_meeting(self, request: MeetingCreateRequest) -> dict[str, Any]:
        payload = self._request_json(
            method="POST",
            path="/meetings",
            json_body=request.to_payload(),
        )
        if not isinstance(payload, Mapping):
            raise ServerRequestError("Meeting response was not a JSON object.")
        return dict(payload)

    def current_user_id(self) -> int:
        """
        Return the id of the user the API token was issued to.
        """

        self._ensure_token()
        if self._user_id is None:
            raise ServerRequestError("No current user found - please ensure you are logged in")
        return self._user_id

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _ensure_token(self) -> str:
        with self._token_lock:
            now = time.time()
            if (
                self._access_token is not None
                and (self._token_expires_at is None or now < self._token_expires_at - TOKEN_EXPIRY_MARGIN_SECONDS)
            ):
                return self._access_token
            return self._authenticate()

    def _invalidate_token(self) -> None:
        with self._token_lock:
            self._access_token = None
            self._token_expires_at = None

    def _authenticate(self) -> str:
        if not self._username or not self._password:
            raise ServerRequestError("BMLT credentials are not configured. Set BMLT_USERNAME and BMLT_PASSWORD.")

        url = f"{self._base_url}{API_PREFIX}/auth/token"
        try:
            response = self._session.post(
                url,
                json={"username": self._username, "password": self._password},
                timeout=self._timeout_seconds,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise ServerRequestError(f"Authentication request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ServerResponseError.from_body(
                status_code=response.status_code,
                body=_safe_json(response),
            )

        body = _safe_json(response)
        if not isinstance(body, Mapping) or not body.get("access_token"):
            raise ServerRequestError("Authentication response did not contain an access token.")

        self._access_token = str(body["access_token"])
        expires_at = body.get("expires_at")
        self._token_expires_at = float(expires_at) if isinstance(expires_at, (int, float)) else None
        user_id = body.get("user_id")
        self._user_id = int(user_id) if user_id is not None else None
        logger.info("BMLT authentication succeeded url=%s user_id=%s", self._base_url, self._user_id)
        return self._access_token

    # ------------------------------------------------------------------
    # HTTP mechanics
    # ------------------------------------------------------------------

    def _request_json(
        self,
        *,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Execute an API request and return parsed JSON.
        """

        response = self._request(method=method, path=path, json_body=json_body)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ServerRequestError(f"{method} {path}: response was not valid JSON.") from exc

    def _request(
        self,
        *,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
    ) -> requests.Response:
        """
        Execute a request with rate limiting; GETs retry with exponential backoff.

        Writes are attempted once so a row is never submitted twice.
        """

        url = f"{self._base_url}{API_PREFIX}{path}"
        max_retries = self._max_retries if method.upper() == "GET" else 0
        reauthenticated = False
        last_error: Exception | None = None

        attempt = 0
        while attempt <= max_retries:
            token = self._ensure_token()
            self._apply_rate_limit()
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    json=json_body,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/json",
                    },
                    timeout=self._timeout_seconds,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
            else:
                if response.status_code == 401 and not reauthenticated:
                    logger.info("BMLT token rejected, re-authenticating url=%s", url)
                    self._invalidate_token()
                    reauthenticated = True
                    continue
                if response.status_code < 400:
                    return response
                error = ServerResponseError.from_body(
                    status_code=response.status_code,
                    body=_safe_json(response),
                )
                if response.status_code not in RETRYABLE_STATUS_CODES or attempt >= max_retries:
                    logger.error(
                        "BMLT request failed method=%s status=%s url=%s error=%s",
                        method,
                        response.status_code,
                        url,
                        error.describe(),
                    )
                    raise error
                last_error = error

            if attempt >= max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "BMLT request retry method=%s attempt=%s/%s wait_seconds=%.2f url=%s",
                method,
                attempt + 1,
                max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)
            attempt += 1

        logger.error("BMLT request exhausted retries method=%s url=%s error=%s", method, url, last_error)
        raise ServerRequestError(f"{method} {path}: request failed: {last_error}") from last_error

    def _apply_rate_limit(self) -> None:
        """
        Enforce minimum interval between outbound requests.
        """

        if self._min_request_interval_seconds <= 0:
            return

        with self._rate_lock:
            now = time.monotonic()
            elapsed = now - self._last_request_monotonic
            remaining = self._min_request_interval_seconds - elapsed
            if remaining > 0:
                time.sleep(remaining)
            self._last_request_monotonic = time.monotonic()


def parse_service_body(item: Mapping[str, Any]) -> ServiceBody:
    return ServiceBody(
        id=int(item["id"]),
        name=str(item.get("name") or ""),
        world_id=_optional_str(item.get("worldId")),
        type=_optional_str(item.get("type")),
        admin_user_id=_optional_int(item.get("adminUserId")),
        parent_id=_optional_int(item.get("parentId")),
    )


def parse_format(item: Mapping[str, Any]) -> Format:
    key_string: str | None = None
    translations = item.get("translations")
    if isinstance(translations, list) and translations:
        first = translations[0]
        if isinstance(first, Mapping):
            key_string = _optional_str(first.get("key"))
    return Format(
        id=int(item["id"]),
        world_id=_optional_str(item.get("worldId")),
        key_string=key_string,
    )


def _as_list(payload: Any, label: str) -> list[Mapping[str, Any]]:
    if not isinstance(payload, list):
        raise ServerRequestError(f"Expected a JSON list of {label}.")
    return [item for item in payload if isinstance(item, Mapping)]


def _safe_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
