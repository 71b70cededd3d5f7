# services/mailer.py
"""
Outbound mail transport: send(to, subject, html).

MAIL_BACKEND picks the adapter:
  smtp  (default)  SMTP + STARTTLS, Gmail app-password style login
  log              development; logs the message instead of sending it
"""

from __future__ import annotations
import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Protocol

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)


class MailError(RuntimeError):
    """The transport could not hand the message over."""


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> None:
        ...


class SmtpMailer:
    def __init__(self, host: str, port: int, user: str | None, password: str | None,
                 sender: str | None, timeout: float = 20) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user
        self.timeout = timeout

    def build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.set_content("Your mail client does not display HTML messages.")
        msg.add_alternative(html, subtype="html")
        return msg

    def send(self, to: str, subject: str, html: str) -> None:
        msg = self.build_message(to, subject, html)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailError(f"smtp send to {to} failed: {e}") from e
        logger.info("Email sent to %s: %s", to, subject)


class LogMailer:
    def send(self, to: str, subject: str, html: str) -> None:
        logger.info("[mail:log] to=%s subject=%s (%d bytes html)",
                    to, subject, len(html))


def _cfg(key: str, default: str | None = None) -> str | None:
    v = os.environ.get(key)
    if v is not None:
        return v
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def get_mailer() -> Mailer:
    name = (_cfg("MAIL_BACKEND") or "smtp").lower()
    if name == "log":
        return LogMailer()
    if name == "smtp":
        return SmtpMailer(
            host=_cfg("SMTP_HOST") or "smtp.gmail.com",
            port=int(_cfg("SMTP_PORT") or 587),
            user=_cfg("SMTP_USER"),
            password=_cfg("SMTP_APP_PASSWORD"),
            sender=_cfg("EMAIL_FROM"),
            timeout=float(_cfg("SMTP_TIMEOUT_SEC") or 20),
        )
    raise RuntimeError(f"Unknown MAIL_BACKEND: {name}")
