"""Centralized configuration for the layout monitor.

Typed defaults let the monitor start without any configuration.
``load_settings`` layers an optional ``appsettings.json``-style file under
environment overrides and returns an ``ApplicationSettings`` model; the CLI
loads ``.env`` before calling it.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from layoutwatch.notify.models import MailAddress, PostmarkSettings
from layoutwatch.utils.email import split_address_list

# --- Source ---
TARGET_COLLECTION_NAME: str = (
    "Microsoft.VisualStudio.Platform.WindowManagement.Layouts.WindowLayoutInfoList"
)
VS_INSTANCE_FOLDER: str = "17.0_459a930b"
SETTINGS_FILE_NAME: str = "ApplicationPrivateSettings.xml"

# --- Snapshots ---
SNAPSHOT_FOLDER_NAME: str = "WindowsLayouts"

# --- Scheduler ---
CYCLE_INTERVAL_SECONDS: float = 10.0

_PERCENT_VAR = re.compile(r"%([A-Za-z_][A-Za-z0-9_()]*)%")


def expand_env_vars(value: str) -> str:
    """
    Expand ``$VAR``, ``${VAR}`` and Windows-style ``%VAR%`` references.

    Unknown variables are left as written.
    """
    expanded = _PERCENT_VAR.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    return os.path.expandvars(expanded)


def default_source_path() -> Path:
    """Visual Studio 2022's per-user ApplicationPrivateSettings.xml."""
    local_app_data = os.getenv("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    return Path(local_app_data) / "Microsoft" / "VisualStudio" / VS_INSTANCE_FOLDER / SETTINGS_FILE_NAME


class ApplicationSettings(BaseModel):
    """Values the monitor consumes. Loading is done by ``load_settings``."""

    model_config = ConfigDict(populate_by_name=True)

    xml_settings_file_path: str | None = Field(default=None, alias="XmlSettingsFilePath")
    snapshot_directory: str | None = Field(default=None, alias="SnapshotDirectory")
    collection_name: str = Field(default=TARGET_COLLECTION_NAME, alias="CollectionName")
    interval_seconds: float = Field(default=CYCLE_INTERVAL_SECONDS, alias="IntervalSeconds")
    postmark: PostmarkSettings | None = Field(default=None, alias="Postmark")

    def resolve_source_path(self) -> Path:
        """Configured path with environment variables expanded, or the VS default."""
        configured = self.xml_settings_file_path
        if configured and configured.strip():
            return Path(expand_env_vars(configured.strip()))
        return default_source_path()

    def resolve_snapshot_directory(self) -> Path:
        configured = self.snapshot_directory
        if configured and configured.strip():
            return Path(expand_env_vars(configured.strip()))
        return Path.cwd() / SNAPSHOT_FOLDER_NAME


def _read_settings_file(path: Path) -> dict:
    """The ``ApplicationSettings`` section of a JSON settings file (or the whole document)."""
    with open(path, encoding="utf-8") as fh:
        document = json.load(fh)
    if not isinstance(document, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object")
    section = document.get("ApplicationSettings", document)
    if not isinstance(section, dict):
        raise ValueError(f"ApplicationSettings in {path} must be a JSON object")
    return section


def _postmark_from_env(base: PostmarkSettings | None) -> PostmarkSettings | None:
    token = os.getenv("POSTMARK_SERVER_TOKEN")
    sender = os.getenv("POSTMARK_SENDER_ADDRESS")
    recipients_raw = os.getenv("POSTMARK_RECIPIENTS")

    if base is None and not any([token, sender, recipients_raw]):
        return None

    settings = base.model_copy(deep=True) if base is not None else PostmarkSettings()
    if token:
        settings.server_token = token
    if sender:
        settings.sender_address = sender
    if recipients_raw:
        settings.recipients = [
            MailAddress(name=name, email=email) for name, email in split_address_list(recipients_raw)
        ]
    if "POSTMARK_TIMEOUT_SECONDS" in os.environ:
        settings.timeout_seconds = float(os.environ["POSTMARK_TIMEOUT_SECONDS"])
    if "POSTMARK_MAX_RETRIES" in os.environ:
        settings.max_retries = int(os.environ["POSTMARK_MAX_RETRIES"])
    return settings


def load_settings(settings_file: str | Path | None = None) -> ApplicationSettings:
    """
    Build ApplicationSettings from an optional JSON file plus environment overrides.

    Precedence (highest first): environment variables, settings file, defaults.
    ``settings_file`` defaults to ``LAYOUTWATCH_SETTINGS_FILE``.

    Raises:
        OSError / ValueError: the settings file exists but cannot be read or parsed
    """
    file_value = settings_file or os.getenv("LAYOUTWATCH_SETTINGS_FILE")
    data: dict = {}
    if file_value:
        data = _read_settings_file(Path(expand_env_vars(str(file_value))))

    settings = ApplicationSettings.model_validate(data)

    source = os.getenv("LAYOUTWATCH_SOURCE_PATH")
    if source:
        settings.xml_settings_file_path = source
    snapshot_dir = os.getenv("LAYOUTWATCH_SNAPSHOT_DIR")
    if snapshot_dir:
        settings.snapshot_directory = snapshot_dir
    collection = os.getenv("LAYOUTWATCH_COLLECTION_NAME")
    if collection:
        settings.collection_name = collection
    interval = os.getenv("LAYOUTWATCH_INTERVAL_SECONDS")
    if interval:
        settings.interval_seconds = float(interval)

    settings.postmark = _postmark_from_env(settings.postmark)
    return settings
