"""Notification boundary and SMTP adapter."""

from .notifier import Notification, Notifier, SmtpNotifier, send_failure_report, validate_recipients, validate_sender

__all__ = ["Notification", "Notifier", "SmtpNotifier", "send_failure_report", "validate_recipients", "validate_sender"]
