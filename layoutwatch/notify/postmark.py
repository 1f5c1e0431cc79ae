"""
Postmark HTTP transport for removal notifications.

Reference:
    https://postmarkapp.com/developer/api/email-api#send-a-single-email
"""

from __future__ import annotations

from typing import Any

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from layoutwatch.notify.base import SendResult
from layoutwatch.notify.models import PostmarkSettings
from layoutwatch.observability.logging import get_logger
from layoutwatch.observability.telemetry import counter

logger = get_logger(__name__)

_RETRYABLE = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


class PostmarkNotifier:
    """
    Sends single plain-text emails through Postmark's ``/email`` endpoint.

    Connection errors and timeouts are retried with exponential backoff;
    an API-level rejection (non-200 or ``ErrorCode != 0``) is returned as a
    failed SendResult without retrying.
    """

    def __init__(
        self,
        settings: PostmarkSettings,
        session: requests.Session | None = None,
        wait: wait_base | None = None,
    ):
        if not settings.server_token:
            raise ValueError("Postmark server token is required")
        self.settings = settings
        self.session = session or requests.Session()
        self.wait = wait or wait_exponential(multiplier=1, min=1, max=10)

    def _headers(self) -> dict[str, str]:
        assert self.settings.server_token is not None
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Postmark-Server-Token": self.settings.server_token,
        }

    def _post(self, payload: dict[str, Any]) -> requests.Response:
        for attempt in Retrying(
            stop=stop_after_attempt(max(1, self.settings.max_retries)),
            wait=self.wait,
            retry=retry_if_exception_type(_RETRYABLE),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    counter("notify.postmark.retry")
                return self.session.post(
                    self.settings.api_url,
                    json=payload,
                    headers=self._headers(),
                    timeout=self.settings.timeout_seconds,
                )
        raise AssertionError("unreachable")  # Retrying either returns or reraises

    def send(self, sender: str, recipient: str, subject: str, body: str) -> SendResult:
        payload = {
            "From": sender,
            "To": recipient,
            "Subject": subject,
            "TextBody": body,
        }

        try:
            response = self._post(payload)
        except requests.exceptions.RequestException as e:
            counter("notify.postmark.transport_error")
            return SendResult.failure(f"{type(e).__name__}: {e}")

        try:
            data = response.json()
        except ValueError:
            data = {}

        error_code = data.get("ErrorCode") if isinstance(data, dict) else None
        message = data.get("Message") if isinstance(data, dict) else None

        if response.status_code == 200 and error_code == 0:
            counter("notify.postmark.sent")
            return SendResult.success()

        counter("notify.postmark.rejected")
        reason = message or f"HTTP {response.status_code}"
        logger.debug("Postmark rejected message (status=%s code=%s)", response.status_code, error_code)
        return SendResult.failure(reason)
