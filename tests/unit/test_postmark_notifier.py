from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests
from tenacity import wait_none

from layoutwatch.notify.models import PostmarkSettings
from layoutwatch.notify.postmark import PostmarkNotifier
from layoutwatch.observability.telemetry import get_counter


def make_response(status_code: int, payload: object) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


def make_notifier(session: MagicMock, max_retries: int = 3) -> PostmarkNotifier:
    settings = PostmarkSettings(
        server_token="server-token",
        sender_address="monitor@example.com",
        max_retries=max_retries,
        timeout_seconds=4.0,
    )
    return PostmarkNotifier(settings, session=session, wait=wait_none())


def test_successful_send_posts_expected_payload():
    session = MagicMock()
    session.post.return_value = make_response(200, {"ErrorCode": 0, "Message": "OK"})

    result = make_notifier(session).send("monitor@example.com", "ops@example.com", "Subject", "Body")

    assert result.ok
    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args[0] == "https://api.postmarkapp.com/email"
    assert kwargs["json"] == {
        "From": "monitor@example.com",
        "To": "ops@example.com",
        "Subject": "Subject",
        "TextBody": "Body",
    }
    assert kwargs["headers"]["X-Postmark-Server-Token"] == "server-token"
    assert kwargs["timeout"] == 4.0
    assert get_counter("notify.postmark.sent") == 1


def test_api_rejection_returns_postmark_message():
    session = MagicMock()
    session.post.return_value = make_response(
        422, {"ErrorCode": 406, "Message": "You tried to send to a recipient that has been marked as inactive."}
    )

    result = make_notifier(session).send("monitor@example.com", "gone@example.com", "s", "b")

    assert not result.ok
    assert "inactive" in result.reason
    session.post.assert_called_once()


def test_non_json_error_response_reports_status():
    session = MagicMock()
    response = make_response(503, None)
    response.json.side_effect = ValueError("no json")
    session.post.return_value = response

    result = make_notifier(session).send("a@example.com", "b@example.com", "s", "b")

    assert not result.ok
    assert result.reason == "HTTP 503"


def test_transient_connection_error_is_retried():
    session = MagicMock()
    session.post.side_effect = [
        requests.exceptions.ConnectionError("reset"),
        make_response(200, {"ErrorCode": 0, "Message": "OK"}),
    ]

    result = make_notifier(session).send("a@example.com", "b@example.com", "s", "b")

    assert result.ok
    assert session.post.call_count == 2
    assert get_counter("notify.postmark.retry") == 1


def test_persistent_timeout_gives_up_after_max_retries():
    session = MagicMock()
    session.post.side_effect = requests.exceptions.Timeout("slow")

    result = make_notifier(session, max_retries=2).send("a@example.com", "b@example.com", "s", "b")

    assert not result.ok
    assert "Timeout" in result.reason
    assert session.post.call_count == 2


def test_token_is_required():
    with pytest.raises(ValueError):
        PostmarkNotifier(PostmarkSettings(sender_address="a@example.com"))
