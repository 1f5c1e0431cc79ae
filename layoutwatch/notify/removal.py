"""
Removed-layout notification.

One message per configured recipient. A failure for one recipient is logged
and the loop moves on; cancellation stops before the next recipient.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from layoutwatch.errors import CycleCancelled, CycleErrorKind
from layoutwatch.notify.base import Notifier
from layoutwatch.notify.models import PostmarkSettings
from layoutwatch.observability.logging import get_logger
from layoutwatch.observability.telemetry import counter
from layoutwatch.runtime.cancellation import CancellationToken

logger = get_logger(__name__)

REMOVAL_SUBJECT = "Visual Studio layouts removed"
REMOVAL_HEADER = "The following Visual Studio window layouts were removed:"

NotifierFactory = Callable[[PostmarkSettings], Notifier]


@dataclass
class NotificationReport:
    sent: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    error_kind: CycleErrorKind | None = None


def build_removal_body(removed_labels: Sequence[str]) -> str:
    lines = [REMOVAL_HEADER]
    lines.extend(f"- {label}" for label in removed_labels)
    return "\n".join(lines) + "\n"


def _default_factory(settings: PostmarkSettings) -> Notifier:
    from layoutwatch.notify.postmark import PostmarkNotifier

    return PostmarkNotifier(settings)


def send_removal_notification(
    removed_labels: Sequence[str],
    settings: PostmarkSettings | None,
    token: CancellationToken,
    notifier: Notifier | None = None,
    notifier_factory: NotifierFactory | None = None,
) -> NotificationReport:
    """
    Email the list of removed layouts to every configured recipient.

    Returns a report instead of raising; ``CycleCancelled`` is the only
    exception that escapes, so the orchestrator can end the cycle.

    Side Effects:
        - Makes one HTTP call per recipient (through the notifier)
    """
    report = NotificationReport()

    if settings is None or not settings.is_complete():
        logger.warning("Postmark settings are missing or incomplete; skipping email notification.")
        counter("notify.unconfigured")
        report.error_kind = CycleErrorKind.NOTIFIER_UNCONFIGURED
        return report

    assert settings.sender_address is not None
    if notifier is None:
        notifier = (notifier_factory or _default_factory)(settings)

    body = build_removal_body(removed_labels)

    for recipient in settings.deliverable_recipients():
        token.raise_if_cancelled()
        email = recipient.email.strip() if recipient.email else ""

        try:
            result = notifier.send(settings.sender_address, email, REMOVAL_SUBJECT, body)
        except CycleCancelled:
            raise
        except Exception as e:
            logger.error("Error sending Postmark notification to %s", email, exc_info=True)
            report.failed[email] = str(e)
            report.error_kind = CycleErrorKind.NOTIFIER_SEND_FAILED
            continue

        if result.ok:
            logger.info("Postmark notification sent to %s", email)
            report.sent.append(email)
        else:
            logger.warning("Postmark send failed to %s: %s", email, result.reason)
            report.failed[email] = result.reason or "unknown error"
            report.error_kind = CycleErrorKind.NOTIFIER_SEND_FAILED

    return report
