"""
app/connectors/base.py

Base org API connector and shared HTTP mechanics.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from app.config import OrgAPISettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

AUTH_FAILURE_MARKERS = (
    "invalid_grant",
    "expired",
    "INVALID_SESSION_ID",
    "Authentication token has expired",
    "not connected",
)


def is_auth_failure(exc: BaseException) -> bool:
    """
    True when an error means the org connection must be re-established.
    """

    message = str(exc)
    return any(marker in message for marker in AUTH_FAILURE_MARKERS)


class OrgRequestError(RuntimeError):
    """
    Raised when an org API call fails or cannot be completed after retries.

    The message includes the provider's error code when one was returned
    (e.g. ``INVALID_SESSION_ID``) so callers can classify the failure.
    """

    def __init__(self, message: str, *, status_code: int | None = None, error_code: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class OrgNotConnectedError(RuntimeError):
    """
    Raised when an organisation has no usable connection credentials.
    """


def extract_provider_error(response: requests.Response | None) -> tuple[str | None, str | None]:
    """
    Pull ``(error_code, message)`` out of an org API error body.

    REST errors arrive as ``[{"errorCode": ..., "message": ...}]`` and OAuth
    errors as ``{"error": ..., "error_description": ...}``.
    """

    if response is None:
        return None, None
    try:
        payload = response.json()
    except ValueError:
        text = (response.text or "").strip()
        return None, text[:500] or None

    if isinstance(payload, list) and payload and isinstance(payload[0], dict):
        first = payload[0]
        return first.get("errorCode"), first.get("message")
    if isinstance(payload, dict):
        if "error" in payload:
            return payload.get("error"), payload.get("error_description")
        return payload.get("errorCode"), payload.get("message")
    return None, None


class BaseOrgConnector:
    """
    HTTP client base for one org: bearer auth, retries, rate limiting.

    One instance is bound to one org and is not shared across threads.
    """

    def __init__(
        self,
        *,
        org_label: str,
        instance_url: str,
        access_token: str,
        settings: OrgAPISettings,
        session: requests.Session | None = None,
    ) -> None:
        self.org_label = org_label
        self.instance_url = instance_url.rstrip("/")
        self._access_token = access_token
        self._settings = settings
        self._session = session or requests.Session()
        self._timeout_seconds = settings.timeout_seconds
        self._max_retries = settings.max_retries
        self._backoff_initial_seconds = settings.backoff_initial_seconds
        self._backoff_multiplier = settings.backoff_multiplier
        self._min_request_interval_seconds = (
            1.0 / settings.rate_limit_per_second if settings.rate_limit_per_second > 0 else 0.0
        )
        self._last_request_monotonic: float = 0.0

    def _request_json(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Execute an authenticated request and return parsed JSON.
        """

        response = self._request(method=method, url=url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise OrgRequestError(f"{self.org_label}: response was not valid JSON.") from exc

    def _request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> requests.Response:
        """
        Execute an HTTP request with rate limiting and exponential backoff.
        """

        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
        }
        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            self._apply_rate_limit()
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=headers,
                    timeout=self._timeout_seconds,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable HTTP status code: {response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except requests.HTTPError as exc:
                last_error = exc
                status_code = exc.response.status_code if exc.response is not None else None
                if status_code not in RETRYABLE_STATUS_CODES:
                    error_code, provider_message = extract_provider_error(exc.response)
                    logger.error(
                        "Org request failed org=%s status=%s url=%s error_code=%s",
                        self.org_label,
                        status_code,
                        url,
                        error_code,
                    )
                    detail = ": ".join(part for part in (error_code, provider_message) if part)
                    raise OrgRequestError(
                        f"{self.org_label}: request rejected (HTTP {status_code})"
                        + (f" {detail}" if detail else ""),
                        status_code=status_code,
                        error_code=error_code,
                    ) from exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc

            if attempt >= self._max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Org request retry org=%s attempt=%s/%s wait_seconds=%.2f url=%s",
                self.org_label,
                attempt + 1,
                self._max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)

        logger.error(
            "Org request exhausted retries org=%s url=%s error=%s",
            self.org_label,
            url,
            last_error,
        )
        raise OrgRequestError(f"{self.org_label}: request failed after retries.") from last_error

    def _apply_rate_limit(self) -> None:
        """
        Enforce minimum interval between outbound requests.
        """

        if self._min_request_interval_seconds <= 0:
            return

        now = time.monotonic()
        elapsed = now - self._last_request_monotonic
        remaining = self._min_request_interval_seconds - elapsed
        if remaining > 0:
            time.sleep(remaining)
        self._last_request_monotonic = time.monotonic()
