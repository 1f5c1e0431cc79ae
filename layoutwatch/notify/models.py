"""
Notification settings models.

Field aliases follow the ``appsettings.json`` layout the monitor has always
read (``ServerToken``, ``SenderAddress``, ``Recipients`` ...), so the same
settings file can be reused.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MailAddress(BaseModel):
    """A recipient with an optional display name."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(default=None, alias="Name")
    email: str | None = Field(default=None, alias="Email")

    def formatted(self) -> str:
        if self.name:
            return f"{self.name} <{self.email}>"
        return self.email or ""


class PostmarkSettings(BaseModel):
    """Postmark delivery settings. Absent or incomplete settings disable notification."""

    model_config = ConfigDict(populate_by_name=True)

    server_token: str | None = Field(default=None, alias="ServerToken")
    sender_address: str | None = Field(default=None, alias="SenderAddress")
    recipients: list[MailAddress] = Field(default_factory=list, alias="Recipients")
    api_url: str = Field(default="https://api.postmarkapp.com/email", alias="ApiUrl")
    timeout_seconds: float = Field(default=10.0, alias="TimeoutSeconds")
    max_retries: int = Field(default=3, alias="MaxRetries")

    def deliverable_recipients(self) -> list[MailAddress]:
        return [r for r in self.recipients if r.email and r.email.strip()]

    def is_complete(self) -> bool:
        return bool(
            self.server_token
            and self.server_token.strip()
            and self.sender_address
            and self.sender_address.strip()
            and self.recipients
        )
