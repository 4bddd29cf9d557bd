import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from app.core.config import settings

logger = logging.getLogger(__name__)

class Mailer:
    """SMTP delivery. ``send`` raises on failure; callers decide whether that matters."""

    @property
    def configured(self) -> bool:
        return bool(settings.EMAIL_ENABLED and settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASSWORD)

    def _build(self, to_email: str, subject: str, body: str, html: str | None) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.MAIL_FROM or settings.SMTP_USER
        msg["To"] = to_email
        msg.attach(MIMEText(body, "plain", "utf-8"))
        if html:
            msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    def _send_sync(self, msg: MIMEMultipart) -> None:
        # bounds the connect and every SMTP command
        timeout = float(settings.SMTP_TIMEOUT_SECONDS)
        if settings.SMTP_PORT == 465:
            server = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout)
        else:
            server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout)
        try:
            if settings.SMTP_PORT != 465:
                server.starttls()
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
        finally:
            try:
                server.quit()
            except (smtplib.SMTPException, OSError):
                server.close()

    async def send(self, to_email: str, subject: str, body: str, html: str | None = None) -> bool:
        if not self.configured:
            logger.info("Email disabled, not sending %r to %s", subject, to_email)
            return False
        msg = self._build(to_email, subject, body, html)
        # smtplib blocks
        await asyncio.to_thread(self._send_sync, msg)
        return True

mailer = Mailer()
