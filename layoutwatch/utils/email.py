"""
Mail address parsing for recipient lists given in configuration.
"""

from __future__ import annotations

import re

_ANGLE_PATTERN = re.compile(r"^(?P<name>.*?)\s*<(?P<email>[^>]+)>\s*$")


def split_mail_address(entry: str) -> tuple[str | None, str]:
    """
    Split a configured address into (display name, email).

    Args:
        entry: "user@example.com" or "Name <user@example.com>"

    Returns:
        Display name (None when absent) and the bare email, both stripped.
        The email keeps its original case.

    Examples:
        >>> split_mail_address("ops@example.com")
        (None, 'ops@example.com')

        >>> split_mail_address("Jane Doe <jane@example.com>")
        ('Jane Doe', 'jane@example.com')

        >>> split_mail_address('"Ops" <ops@example.com>')
        ('Ops', 'ops@example.com')
    """
    text = (entry or "").strip()
    match = _ANGLE_PATTERN.match(text)
    if not match:
        return None, text

    name = match.group("name").strip().strip('"').strip() or None
    return name, match.group("email").strip()


def split_address_list(value: str | None) -> list[tuple[str | None, str]]:
    """
    Parse a comma or semicolon separated address list, skipping blank entries.

    Examples:
        >>> split_address_list("a@example.com; Bob <b@example.com>,")
        [(None, 'a@example.com'), ('Bob', 'b@example.com')]
    """
    if not value:
        return []
    entries = re.split(r"[;,]", value)
    return [split_mail_address(entry) for entry in entries if entry.strip()]

