"""
Pytest configuration for layoutwatch tests

Provides source-document builders, settings pointed at tmp_path, a fixed
clock and a recording notifier.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from xml.sax.saxutils import escape

import pytest

from layoutwatch.config import TARGET_COLLECTION_NAME, ApplicationSettings
from layoutwatch.notify.base import SendResult
from layoutwatch.notify.models import MailAddress, PostmarkSettings
from layoutwatch.observability.telemetry import reset_telemetry


def layout_value(label: str) -> str:
    """A Value string in Visual Studio's pipe-delimited layout format."""
    return f"1|0|{label}|Docked|{{C5E6F3A1}}"


def layout_records(layouts: dict[str, str]) -> list[dict[str, str]]:
    return [{"Key": key, "Value": layout_value(label)} for key, label in layouts.items()]


def collection_xml(payload: list | str | None, name: str = TARGET_COLLECTION_NAME) -> str:
    if payload is None:
        return f'<collection name="{name}" />'
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return (
        f'<collection name="{name}">'
        f'<value name="value">{escape(text)}</value>'
        f"</collection>"
    )


def source_xml(*collections: str) -> str:
    """ApplicationPrivateSettings.xml-like document wrapping the given collections."""
    body = "".join(collections)
    return f'<?xml version="1.0" encoding="utf-8"?>\n<content><indexed>{body}</indexed></content>\n'


def collection_element(payload: list | str | None, name: str = TARGET_COLLECTION_NAME) -> ET.Element:
    return ET.fromstring(collection_xml(payload, name))


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Iterator[None]:
    reset_telemetry()
    yield
    reset_telemetry()


@pytest.fixture
def source_path(tmp_path: Path) -> Path:
    return tmp_path / "ApplicationPrivateSettings.xml"


@pytest.fixture
def snapshot_dir(tmp_path: Path) -> Path:
    return tmp_path / "WindowsLayouts"


@pytest.fixture
def write_source(source_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write a source file containing the given key -> label layouts."""

    def _write(layouts: dict[str, str]) -> Path:
        source_path.write_text(source_xml(collection_xml(layout_records(layouts))), encoding="utf-8")
        return source_path

    return _write


@pytest.fixture
def postmark_settings() -> PostmarkSettings:
    return PostmarkSettings(
        server_token="test-token",
        sender_address="monitor@example.com",
        recipients=[
            MailAddress(name="Ops", email="ops@example.com"),
            MailAddress(email="dev@example.com"),
        ],
    )


@pytest.fixture
def settings(source_path: Path, snapshot_dir: Path, postmark_settings: PostmarkSettings) -> ApplicationSettings:
    return ApplicationSettings(
        xml_settings_file_path=str(source_path),
        snapshot_directory=str(snapshot_dir),
        postmark=postmark_settings,
    )


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Deterministic UTC clock that advances one second per call."""
    state = {"now": datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)}

    def _now() -> datetime:
        current = state["now"]
        state["now"] = current + timedelta(seconds=1)
        return current

    return _now


class RecordingNotifier:
    """Notifier double: records calls, fails for addresses listed in ``fail_for``."""

    def __init__(self, fail_for: set[str] | None = None, raise_for: set[str] | None = None):
        self.calls: list[dict[str, str]] = []
        self.fail_for = fail_for or set()
        self.raise_for = raise_for or set()

    def send(self, sender: str, recipient: str, subject: str, body: str) -> SendResult:
        self.calls.append({"sender": sender, "recipient": recipient, "subject": subject, "body": body})
        if recipient in self.raise_for:
            raise ConnectionError(f"connection reset sending to {recipient}")
        if recipient in self.fail_for:
            return SendResult.failure("Inactive recipient")
        return SendResult.success()

    @property
    def recipients(self) -> list[str]:
        return [call["recipient"] for call in self.calls]


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
