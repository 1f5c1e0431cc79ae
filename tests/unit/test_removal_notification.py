from __future__ import annotations

import pytest

from layoutwatch.errors import CycleCancelled, CycleErrorKind
from layoutwatch.notify.base import SendResult
from layoutwatch.notify.models import MailAddress, PostmarkSettings
from layoutwatch.notify.removal import (
    REMOVAL_SUBJECT,
    build_removal_body,
    send_removal_notification,
)
from layoutwatch.runtime.cancellation import CancellationToken
from tests.conftest import RecordingNotifier


def test_body_lists_each_removed_layout():
    body = build_removal_body(["Debugging", "Design"])

    assert body == (
        "The following Visual Studio window layouts were removed:\n"
        "- Debugging\n"
        "- Design\n"
    )


def test_sends_one_message_per_recipient(postmark_settings, notifier):
    report = send_removal_notification(["Design"], postmark_settings, CancellationToken(), notifier=notifier)

    assert report.sent == ["ops@example.com", "dev@example.com"]
    assert report.error_kind is None
    assert {call["subject"] for call in notifier.calls} == {REMOVAL_SUBJECT}


@pytest.mark.parametrize(
    "settings",
    [
        None,
        PostmarkSettings(sender_address="a@example.com", recipients=[MailAddress(email="b@example.com")]),
        PostmarkSettings(server_token="t", recipients=[MailAddress(email="b@example.com")]),
        PostmarkSettings(server_token="t", sender_address="a@example.com"),
        PostmarkSettings(server_token="  ", sender_address="a@example.com", recipients=[MailAddress(email="b@x.io")]),
    ],
)
def test_incomplete_settings_skip_sending(settings, notifier):
    report = send_removal_notification(["Design"], settings, CancellationToken(), notifier=notifier)

    assert report.error_kind is CycleErrorKind.NOTIFIER_UNCONFIGURED
    assert notifier.calls == []


def test_blank_recipient_addresses_are_skipped(notifier):
    settings = PostmarkSettings(
        server_token="t",
        sender_address="a@example.com",
        recipients=[MailAddress(name="Nobody"), MailAddress(email="  "), MailAddress(email="b@example.com")],
    )

    report = send_removal_notification(["Design"], settings, CancellationToken(), notifier=notifier)

    assert notifier.recipients == ["b@example.com"]
    assert report.sent == ["b@example.com"]


def test_exception_for_one_recipient_is_isolated(postmark_settings):
    notifier = RecordingNotifier(raise_for={"ops@example.com"})

    report = send_removal_notification(["Design"], postmark_settings, CancellationToken(), notifier=notifier)

    assert notifier.recipients == ["ops@example.com", "dev@example.com"]
    assert report.sent == ["dev@example.com"]
    assert "connection reset" in report.failed["ops@example.com"]
    assert report.error_kind is CycleErrorKind.NOTIFIER_SEND_FAILED


def test_cancellation_stops_remaining_recipients(postmark_settings):
    token = CancellationToken()

    class CancellingNotifier:
        def __init__(self):
            self.recipients: list[str] = []

        def send(self, sender, recipient, subject, body):
            self.recipients.append(recipient)
            token.cancel()
            return SendResult.success()

    notifier = CancellingNotifier()

    with pytest.raises(CycleCancelled):
        send_removal_notification(["Design"], postmark_settings, token, notifier=notifier)

    assert notifier.recipients == ["ops@example.com"]


def test_notifier_built_from_factory_when_not_given(postmark_settings):
    built: list[PostmarkSettings] = []
    notifier = RecordingNotifier()

    def factory(settings):
        built.append(settings)
        return notifier

    send_removal_notification(["Design"], postmark_settings, CancellationToken(), notifier_factory=factory)

    assert built == [postmark_settings]
    assert len(notifier.calls) == 2
