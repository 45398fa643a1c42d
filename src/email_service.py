# src/email_service.py
"""
Outbound email for signup verification codes.
Console mode logs the message; smtp mode sends it.
"""
import logging
import re
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails."""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL
        self.from_name = settings.FROM_NAME

        # Fall back to console mode when SMTP credentials are missing
        self.console_mode = settings.EMAIL_MODE != "smtp" or not (self.smtp_user and self.smtp_password)
        if self.console_mode:
            logger.info("Email service running in console mode")
        else:
            logger.info("Email service configured: %s:%s", self.smtp_host, self.smtp_port)

    def send_email(self, to_email: str, subject: str, html_body: str, plain_body: Optional[str] = None) -> bool:
        """Send an email. Returns False (and logs) instead of raising on SMTP failure."""
        try:
            if self.console_mode:
                return self._send_console(to_email, subject, plain_body or html_body)
            return self._send_smtp(to_email, subject, html_body, plain_body)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            return False

    def _send_console(self, to_email: str, subject: str, body: str) -> bool:
        logger.info("EMAIL (console) to=%s from=%s subject=%r\n%s", to_email, self.from_email, subject, body)
        return True

    def _send_smtp(self, to_email: str, subject: str, html_body: str, plain_body: Optional[str] = None) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email

        if not plain_body:
            plain_body = re.sub(r"<[^>]+>", "", html_body.replace("<br>", "\n").replace("</p>", "\n\n"))

        msg.attach(MIMEText(plain_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

        logger.info("Email sent to %s: %s", to_email, subject)
        return True

    def send_signup_code(self, to_email: str, code: str) -> bool:
        ttl = settings.SIGNUP_CODE_TTL_MIN
        subject = "Your Mask verification code"
        plain = f"Your verification code is {code}. It expires in {ttl} minutes."
        html = (
            f"<p>Your verification code is <strong>{code}</strong>.</p>"
            f"<p>It expires in {ttl} minutes. If you did not try to sign up, ignore this email.</p>"
        )
        return self.send_email(to_email, subject, html, plain)


_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    global _service
    if _service is None:
        _service = EmailService()
    return _service
