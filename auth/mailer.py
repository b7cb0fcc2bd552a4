"""
auth/mailer.py -- Outbound email for the password-reset flow.

Two senders share one interface (send(EmailMessage) -> None):

  SmtpEmailSender     -- real delivery through an SMTP relay (stdlib smtplib).
                         Every transport failure, including a socket timeout,
                         is raised as DeliveryError so the reset flow can run
                         its compensating clear.
  LoggingEmailSender  -- development fallback used when EMAIL_HOST is empty.
                         Writes the message to the log instead of sending it.
                         Reset links end up in the log, so never use it in
                         production.

Layer rule: no imports from api/. Settings are passed in, never read here.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from typing import TYPE_CHECKING, Protocol

from auth.errors import DeliveryError

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("natours.email")


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str


class EmailSender(Protocol):
    def send(self, message: EmailMessage) -> None: ...


class SmtpEmailSender:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, message: EmailMessage) -> None:
        mime = MimeMessage()
        mime["From"] = self.sender
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(mime)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("SMTP delivery to %s via %s:%d failed: %s", message.to, self.host, self.port, exc)
            raise DeliveryError() from exc
        logger.info("Email '%s' sent to %s", message.subject, message.to)


class LoggingEmailSender:
    def send(self, message: EmailMessage) -> None:
        logger.warning(
            "EMAIL_HOST not configured -- logging email instead of sending.\nTo: %s\nSubject: %s\n\n%s",
            message.to,
            message.subject,
            message.body,
        )


def build_email_sender(settings: Settings) -> EmailSender:
    if not settings.email_host:
        return LoggingEmailSender()
    return SmtpEmailSender(
        host=settings.email_host,
        port=settings.email_port,
        sender=settings.email_from,
        username=settings.email_username,
        password=settings.email_password,
        use_tls=settings.email_use_tls,
        timeout=settings.email_timeout_seconds,
    )
