"""SMTP delivery of research emails."""

import asyncio
import smtplib
import socket
import ssl
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from email.utils import formatdate, make_msgid

from daily_research.exceptions import (
    EmailAuthError,
    EmailConnectionError,
    EmailDeliveryError,
    EmailSendError,
    EmailTimeoutError,
    PartialDeliveryError,
)
from daily_research.logging import get_logger
from daily_research.models import EmailMessage
from daily_research.rendering import MAILER_HEADERS

log = get_logger("daily_research.delivery")

IMPLICIT_TLS_PORT = 465


@dataclass(frozen=True)
class SmtpSettings:
    host: str
    port: int
    username: str
    password: str
    timeout: float = 30.0

    @property
    def implicit_tls(self) -> bool:
        return self.port == IMPLICIT_TLS_PORT


def build_mime_message(message: EmailMessage) -> MimeMessage:
    """multipart/alternative with the plain-text part first."""
    mime = MimeMessage()
    mime["From"] = message.sender
    mime["To"] = ", ".join(message.recipients)
    mime["Subject"] = message.subject
    mime["Date"] = formatdate(localtime=True)
    mime["Message-ID"] = make_msgid()
    for name, value in message.headers.items():
        mime[name] = value
    mime.set_content(message.text)
    mime.add_alternative(message.html, subtype="html")
    return mime


class EmailDispatcher:
    """Opens one SMTP session per operation and classifies failures."""

    def __init__(self, settings: SmtpSettings) -> None:
        self.settings = settings

    def _classify(self, exc: BaseException) -> EmailDeliveryError:
        if isinstance(exc, EmailDeliveryError):
            return exc
        if isinstance(exc, smtplib.SMTPAuthenticationError):
            return EmailAuthError(detail=str(exc))
        if isinstance(exc, (socket.timeout, TimeoutError)) or isinstance(exc.__context__, TimeoutError):
            # smtplib reports a read timeout as SMTPServerDisconnected
            return EmailTimeoutError(self.settings.timeout)
        if isinstance(
            exc, (ConnectionRefusedError, socket.gaierror, smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected)
        ):
            return EmailConnectionError(self.settings.host, self.settings.port, detail=str(exc))
        if isinstance(exc, smtplib.SMTPRecipientsRefused):
            return EmailSendError(f"all {len(exc.recipients)} recipients refused")
        if isinstance(exc, smtplib.SMTPResponseException):
            return EmailSendError(f"{exc.smtp_code} {exc.smtp_error!r}")
        return EmailSendError(f"{type(exc).__name__}: {exc}")

    @contextmanager
    def _session(self) -> Iterator[smtplib.SMTP]:
        host, port, timeout = self.settings.host, self.settings.port, self.settings.timeout
        context = ssl.create_default_context()
        try:
            if self.settings.implicit_tls:
                smtp: smtplib.SMTP = smtplib.SMTP_SSL(host, port, timeout=timeout, context=context)
            else:
                smtp = smtplib.SMTP(host, port, timeout=timeout)
        except (OSError, smtplib.SMTPException) as e:
            raise self._classify(e) from e

        try:
            with smtp:
                if not self.settings.implicit_tls:
                    smtp.ehlo()
                    if smtp.has_extn("starttls"):
                        smtp.starttls(context=context)
                        smtp.ehlo()
                smtp.login(self.settings.username, self.settings.password)
                yield smtp
        except (OSError, smtplib.SMTPException) as e:
            raise self._classify(e) from e

    def verify(self) -> None:
        """Connect, authenticate and NOOP.

        Raises:
            EmailDeliveryError: A subclass naming the kind of failure.
        """
        with self._session() as smtp:
            smtp.noop()
        log.info("delivery.verified", host=self.settings.host, port=self.settings.port)

    def send(self, message: EmailMessage) -> list[str]:
        """Verify the connection, then send once. Returns the accepted recipients.

        Raises:
            PartialDeliveryError: When some recipients were refused.
            EmailDeliveryError: For every other failure.
        """
        self.verify()

        mime = build_mime_message(message)
        recipients = list(message.recipients)
        log.info("delivery.sending", recipients=len(recipients), subject=message.subject)
        with self._session() as smtp:
            refused = smtp.send_message(mime, from_addr=message.sender, to_addrs=recipients)

        rejected = {address: f"{code} {reply.decode(errors='replace')}" for address, (code, reply) in refused.items()}
        accepted = [address for address in recipients if address not in rejected]
        if rejected:
            log.warning("delivery.partial_failure", accepted=len(accepted), rejected=len(rejected))
            raise PartialDeliveryError(accepted, rejected)

        log.info("delivery.sent", accepted=len(accepted), message_id=mime["Message-ID"])
        return accepted

    def send_test_email(self, sender: str, recipient: str) -> bool:
        """Send a configuration-test message to one recipient."""
        html = f"""<h2>Email Configuration Test</h2>
<p>This is a test email from your AI Research Automation system.</p>
<ul>
  <li>SMTP Host: {self.settings.host}</li>
  <li>Port: {self.settings.port}</li>
  <li>From: {sender}</li>
</ul>
<p>If you received this email, your configuration is working correctly!</p>"""
        message = EmailMessage(
            sender=sender,
            recipients=(recipient,),
            subject="AI Research Automation - Test Email",
            html=html,
            text=(
                "Email Configuration Test\n\n"
                f"SMTP Host: {self.settings.host}\nPort: {self.settings.port}\nFrom: {sender}\n\n"
                "If you received this email, your configuration is working correctly!"
            ),
            headers=dict(MAILER_HEADERS),
        )
        try:
            self.send(message)
        except EmailDeliveryError as e:
            log.error("delivery.test_failed", error_code=e.code, error=e.message)
            return False
        log.info("delivery.test_sent", recipient=recipient)
        return True

    async def averify(self) -> None:
        await asyncio.to_thread(self.verify)

    async def asend(self, message: EmailMessage) -> list[str]:
        return await asyncio.to_thread(self.send, message)
