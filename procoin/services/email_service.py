"""Email service for dispatching rendered HTML through the SMTP relay."""

from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

import aiosmtplib
import structlog

from procoin.config import get_settings

logger = structlog.get_logger(__name__)


class EmailService:
    """Thin wrapper over aiosmtplib using the configured relay credentials."""

    def build_message(
        self,
        to_email: str,
        subject: str,
        html: str,
        sender_name: Optional[str] = None,
    ) -> EmailMessage:
        """Build a UTF-8 HTML message with a plain-text fallback part."""
        settings = get_settings()

        message = EmailMessage()
        message["From"] = formataddr((sender_name or "", settings.smtp_username))
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable email client.")
        message.add_alternative(html, subtype="html")
        return message

    async def send_html(
        self,
        to_email: str,
        subject: str,
        html: str,
        sender_name: Optional[str] = None,
    ) -> tuple[bool, Optional[str]]:
        """Send an HTML email via SMTP.

        Returns:
            (True, None) on success, (False, error message) on failure
        """
        settings = get_settings()

        try:
            message = self.build_message(to_email, subject, html, sender_name)
            await aiosmtplib.send(
                message,
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username or None,
                password=settings.smtp_password or None,
                use_tls=settings.smtp_use_tls,
                start_tls=settings.smtp_start_tls,
                timeout=settings.smtp_timeout_seconds,
            )
        except Exception as e:
            logger.error(
                "email_send_failed",
                to=to_email,
                subject=subject,
                error=str(e),
            )
            return False, str(e)

        logger.info("email_sent", to=to_email, subject=subject)
        return True, None
