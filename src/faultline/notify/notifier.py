"""Outbound notification boundary for rendered failure reports.

The core only depends on the ``Notifier`` protocol. ``SmtpNotifier`` is the
shipped adapter; any object with a compatible ``send`` works.

Example:
    >>> notifier = SmtpNotifier()  # FAULTLINE_SMTP_* settings
    >>> send_failure_report(
    ...     notifier, aggregator,
    ...     to_addresses=["ops@example.com"],
    ...     subject="Nightly sync failed",
    ... )
"""

from __future__ import annotations

import mimetypes
import smtplib
from collections.abc import Sequence
from email.message import EmailMessage
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from faultline.foundation.errors import InputValidationError
from faultline.io.report import to_html
from faultline.runtime.observability import get_logger

if TYPE_CHECKING:
    from faultline.foundation.config import SmtpSettings
    from faultline.io.report.renderer import Failures

log = get_logger("faultline.notify")


@runtime_checkable
class Notifier(Protocol):
    """Delivery sink for an HTML report."""

    def send(
        self,
        from_address: str,
        to_addresses: Sequence[str],
        subject: str,
        html_body: str,
        cc_addresses: Sequence[str] | None = None,
        attachments: Sequence[str | Path] | None = None,
        reply_to: Sequence[str] | None = None,
    ) -> None: ...


def validate_recipients(to_addresses: Sequence[str] | None) -> list[str]:
    """Non-empty recipient list, or InputValidationError."""
    if not to_addresses:
        raise InputValidationError("The 'to_addresses' list must not be empty.", argument="to_addresses")
    return list(to_addresses)


def validate_sender(from_address: str | None) -> str:
    """Non-blank sender address, or InputValidationError."""
    if from_address is None or not from_address.strip():
        raise InputValidationError("The 'from_address' must not be empty.", argument="from_address")
    return from_address


class Notification(BaseModel):
    """One outbound message. Absent optional lists resolve to empty lists."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    from_address: str = Field(min_length=1)
    to_addresses: list[str] = Field(min_length=1)
    subject: str = ""
    html_body: str = ""
    cc_addresses: list[str] = Field(default_factory=list)
    attachments: list[Path] = Field(default_factory=list)
    reply_to: list[str] = Field(default_factory=list)

    @field_validator("cc_addresses", "attachments", "reply_to", mode="before")
    @classmethod
    def _absent_as_empty(cls, v: Sequence[object] | None) -> list[object]:
        return [] if v is None else list(v)

    @field_validator("cc_addresses")
    @classmethod
    def _drop_blank(cls, v: list[str]) -> list[str]:
        return [a for a in v if a]

    @classmethod
    def build(
        cls,
        from_address: str,
        to_addresses: Sequence[str],
        subject: str,
        html_body: str,
        cc_addresses: Sequence[str] | None = None,
        attachments: Sequence[str | Path] | None = None,
        reply_to: Sequence[str] | None = None,
    ) -> Notification:
        """Validate sender and recipients first, then build the model."""
        return cls(
            from_address=validate_sender(from_address),
            to_addresses=validate_recipients(to_addresses),
            subject=subject,
            html_body=html_body,
            cc_addresses=cc_addresses,
            attachments=attachments,
            reply_to=reply_to,
        )

    def to_email(self) -> EmailMessage:
        """Render as an HTML email with attachments read from disk."""
        msg = EmailMessage()
        msg["From"] = self.from_address
        msg["To"] = ", ".join(self.to_addresses)
        if self.cc_addresses:
            msg["Cc"] = ", ".join(self.cc_addresses)
        if self.reply_to:
            msg["Reply-To"] = ", ".join(self.reply_to)
        msg["Subject"] = self.subject
        msg.set_content(self.html_body, subtype="html")
        for path in self.attachments:
            ctype, _ = mimetypes.guess_type(path.name)
            maintype, subtype = (ctype or "application/octet-stream").split("/", 1)
            msg.add_attachment(path.read_bytes(), maintype=maintype, subtype=subtype, filename=path.name)
        return msg


class SmtpNotifier:
    """Deliver notifications through an SMTP relay.

    Connection errors and refused recipients propagate as smtplib/OSError
    exceptions; wrap ``send`` in ``execute_with_retry`` to retry them.
    """

    __slots__ = ("settings",)

    def __init__(self, settings: SmtpSettings | None = None) -> None:
        if settings is None:
            from faultline.foundation.config import get_settings
            settings = get_settings().smtp
        self.settings = settings

    def send(
        self,
        from_address: str,
        to_addresses: Sequence[str],
        subject: str,
        html_body: str,
        cc_addresses: Sequence[str] | None = None,
        attachments: Sequence[str | Path] | None = None,
        reply_to: Sequence[str] | None = None,
    ) -> None:
        self.deliver(Notification.build(
            from_address, to_addresses, subject, html_body,
            cc_addresses=cc_addresses, attachments=attachments, reply_to=reply_to,
        ))

    def deliver(self, notification: Notification) -> None:
        s = self.settings
        msg = notification.to_email()
        with smtplib.SMTP(s.host, s.port, timeout=s.timeout) as client:
            if s.use_tls:
                client.starttls()
            if s.requires_login:
                client.login(s.username, s.password.get_secret_value())  # type: ignore[arg-type, union-attr]
            client.send_message(msg)
        log.info("notification sent", subject=notification.subject, to=notification.to_addresses,
                 cc=len(notification.cc_addresses), attachments=len(notification.attachments))


def send_failure_report(
    notifier: Notifier,
    failures: Failures,
    *,
    to_addresses: Sequence[str],
    subject: str = "Failure report",
    from_address: str | None = None,
    intro_html: str = "",
    cc_addresses: Sequence[str] | None = None,
    attachments: Sequence[str | Path] | None = None,
    reply_to: Sequence[str] | None = None,
) -> str:
    """Render ``failures`` as HTML and hand it to ``notifier``. Returns the body sent."""
    recipients = validate_recipients(to_addresses)
    if from_address is None:
        from faultline.foundation.config import get_settings
        from_address = get_settings().smtp.from_address
    from_address = validate_sender(from_address)
    body = intro_html + to_html(failures)
    notifier.send(from_address, recipients, subject, body,
                  cc_addresses=cc_addresses, attachments=attachments, reply_to=reply_to)
    return body
