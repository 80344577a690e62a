"""
Outgoing mail for account flows (verification and password reset links).

Delivery is deliberately thin: an SMTP session per message. When no SMTP
credentials are configured the mailer logs the would-be recipient and skips,
which keeps local development and tests free of network access.
"""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape
from typing import Optional

logger = logging.getLogger("coursehub.identity_access.mail")


class MailDeliveryError(Exception):
    """Raised when the SMTP server rejects or cannot take a message."""


@dataclass(frozen=True)
class MailConfig:
    host: str = "smtp.gmail.com"
    port: int = 587
    user: str = ""
    password: str = ""
    sender: str = ""
    use_tls: bool = True

    @property
    def configured(self) -> bool:
        return bool(self.user and self.password)


class Mailer:
    def __init__(self, config: MailConfig) -> None:
        self.config = config

    def _new_connection(self) -> smtplib.SMTP:
        return smtplib.SMTP(host=self.config.host, port=self.config.port, timeout=10)

    def send(self, *, to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        """Send one message. Returns False when mail is not configured."""
        if not self.config.configured:
            logger.warning("Email service not configured; skipping message to %s (%s)", to, subject)
            return False

        message = EmailMessage()
        message["From"] = self.config.sender or self.config.user
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text or "This message requires an HTML-capable mail client.")
        message.add_alternative(html, subtype="html")

        try:
            with self._new_connection() as conn:
                if self.config.use_tls:
                    conn.starttls()
                conn.login(self.config.user, self.config.password)
                conn.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email send to %s failed: %s", to, exc.__class__.__name__)
            raise MailDeliveryError(str(exc)) from exc
        logger.info("Email sent to %s", to)
        return True


def verification_email(name: str, url: str) -> tuple[str, str]:
    subject = "Verify Your Email - CourseHub"
    html = (
        f"<h1>Welcome to CourseHub!</h1><p>Hi <strong>{escape(name or '')}</strong>,</p>"
        "<p>Please verify your email address to get started.</p>"
        f'<p><a href="{url}">Verify Email Address</a></p>'
        f"<p>Or copy this link: {url}</p><p>This link will expire in 24 hours.</p>"
    )
    return subject, html


def password_reset_email(name: str, url: str) -> tuple[str, str]:
    subject = "Password Reset Request - CourseHub"
    html = (
        f"<h1>Password Reset Request</h1><p>Hi <strong>{escape(name or '')}</strong>,</p>"
        "<p>You requested to reset your password.</p>"
        f'<p><a href="{url}">Reset Password</a></p>'
        f"<p>Or copy this link: {url}</p><p>This link will expire in 1 hour.</p>"
        "<p>If you didn't request this, please ignore this email.</p>"
    )
    return subject, html


__all__ = ["Mailer", "MailConfig", "MailDeliveryError", "verification_email", "password_reset_email"]
