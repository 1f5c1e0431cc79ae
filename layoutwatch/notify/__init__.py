"""Notify - removal notifications and the Postmark transport"""

from __future__ import annotations

from layoutwatch.notify.base import Notifier, SendResult
from layoutwatch.notify.models import MailAddress, PostmarkSettings

__all__ = ["MailAddress", "Notifier", "PostmarkSettings", "SendResult"]
