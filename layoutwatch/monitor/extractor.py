"""
Payload extraction for the window layout collection.

Visual Studio stores the layout list as a JSON array embedded in the text of
a ``<value name="value">`` node inside a named ``<collection>``:

    <collection name="Microsoft.VisualStudio.Platform.WindowManagement.Layouts.WindowLayoutInfoList">
      <value name="value">[{"Key":"{GUID}","Value":"0|1|My Layout|..."}]</value>
    </collection>

The display label is field index 2 of the pipe-delimited ``Value``.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from layoutwatch.errors import CollectionNotFound, PayloadMalformed
from layoutwatch.monitor.types import LayoutMapping
from layoutwatch.observability.logging import get_logger
from layoutwatch.observability.telemetry import counter, log_event

logger = get_logger(__name__)

COLLECTION_TAG = "collection"
VALUE_TAG = "value"
VALUE_NAME = "value"
LABEL_DELIMITER = "|"
LABEL_FIELD_INDEX = 2


class LayoutRecord(BaseModel):
    """One item of the embedded JSON array. Property names are case-sensitive."""

    model_config = ConfigDict(extra="ignore")

    key: str | None = Field(default=None, alias="Key")
    value: str | None = Field(default=None, alias="Value")

    def label(self) -> str:
        assert self.key is not None
        if self.value:
            parts = self.value.split(LABEL_DELIMITER)
            if len(parts) > LABEL_FIELD_INDEX and parts[LABEL_FIELD_INDEX].strip():
                return parts[LABEL_FIELD_INDEX]
        return self.key


@dataclass
class ExtractionResult:
    mapping: LayoutMapping
    malformed: bool = False
    skipped: int = 0


def _same_name(element: ET.Element, name: str) -> bool:
    attr = element.get("name")
    return attr is not None and attr.casefold() == name.casefold()


def find_collection(root: ET.Element, name: str) -> ET.Element:
    """
    Return the first ``<collection>`` (root included) whose name matches case-insensitively.

    Raises:
        CollectionNotFound: no collection carries that name
    """
    for element in root.iter(COLLECTION_TAG):
        if _same_name(element, name):
            return element
    raise CollectionNotFound(name)


def _payload_text(collection: ET.Element) -> str | None:
    for child in collection.findall(VALUE_TAG):
        if _same_name(child, VALUE_NAME):
            return "".join(child.itertext())
    return None


def load_layout_array(payload: str) -> list[Any]:
    """
    Decode the embedded payload, which must be a JSON array.

    Raises:
        PayloadMalformed: the text is not JSON or not an array
    """
    try:
        document: Any = json.loads(payload)
    except ValueError as exc:
        raise PayloadMalformed(f"Layout payload is not valid JSON: {exc}") from exc

    if not isinstance(document, list):
        raise PayloadMalformed(f"Layout payload is a JSON {type(document).__name__}, expected an array")
    return document


def parse_layout_payload(payload: str) -> ExtractionResult:
    """
    Parse the embedded JSON array into a LayoutMapping.

    Never raises. Invalid JSON (or a non-array document) yields an empty,
    malformed result; structurally invalid items are skipped one by one.
    """
    try:
        document = load_layout_array(payload)
    except PayloadMalformed as exc:
        counter("extract.payload_malformed")
        log_event("extract.payload_malformed", error=exc.message)
        logger.debug("Ignoring layout payload: %s", exc.message)
        return ExtractionResult(LayoutMapping.empty(), malformed=True)

    pairs: list[tuple[str, str]] = []
    skipped = 0
    for item in document:
        try:
            record = LayoutRecord.model_validate(item)
        except ValidationError:
            skipped += 1
            continue

        if record.key is None or not record.key.strip():
            skipped += 1
            continue

        pairs.append((record.key, record.label()))

    if skipped:
        logger.debug("Skipped %d layout record(s) without a usable Key", skipped)

    return ExtractionResult(LayoutMapping.from_pairs(pairs), skipped=skipped)


def extract_layouts_detailed(collection: ET.Element) -> ExtractionResult:
    payload = _payload_text(collection)
    if payload is None or not payload.strip():
        return ExtractionResult(LayoutMapping.empty())
    return parse_layout_payload(payload)


def extract_layouts(collection: ET.Element) -> LayoutMapping:
    """Key -> display label mapping for one collection element."""
    return extract_layouts_detailed(collection).mapping
