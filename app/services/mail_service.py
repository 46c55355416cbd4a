"""Service for sending verification emails."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.config import settings
from app.core.exceptions import MailDeliveryError

logger = logging.getLogger(__name__)


class VerificationMailer:
    """Sends verification codes via SMTP."""

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        smtp_username: str | None = None,
        smtp_password: str | None = None,
        from_email: str | None = None,
        use_tls: bool | None = None,
        log_codes: bool | None = None,
    ):
        self.smtp_host = smtp_host if smtp_host is not None else settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_username = (
            smtp_username if smtp_username is not None else settings.smtp_username
        )
        self.smtp_password = (
            smtp_password if smtp_password is not None else settings.smtp_password
        )
        self.from_email = from_email if from_email is not None else settings.smtp_from_email
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls
        self.enabled = bool(self.smtp_host and self.from_email)
        # Codes may only reach the logs outside production
        self.log_codes = (
            settings.debug or settings.environment != "production"
            if log_codes is None
            else log_codes
        )

    def send_verification_code(self, to_email: str, username: str, code: str) -> bool:
        """
        Deliver a verification code. Never raises.

        Runs as a background task after the response is sent, so a delivery
        failure is logged and reported through the return value only.

        Returns:
            True if the mail was handed to the server, or SMTP is disabled
            and the code was logged instead
        """
        if not self.enabled:
            if self.log_codes:
                logger.info(f"SMTP disabled; verification code for {username}: {code}")
                return True
            logger.warning(f"SMTP disabled; verification code for {username} not delivered")
            return False

        subject = f"{settings.app_name} | Verification code"
        text_body = (
            f"Hello {username},\n\n"
            f"Your verification code is {code}.\n"
            f"It expires in {settings.verification_code_ttl_minutes} minutes.\n\n"
            "If you did not create an account you can ignore this email.\n"
        )
        html_body = (
            f"<html><body>"
            f"<h2>Hello {username},</h2>"
            f"<p>Your verification code is <strong>{code}</strong>.</p>"
            f"<p>It expires in {settings.verification_code_ttl_minutes} minutes.</p>"
            f"<p>If you did not create an account you can ignore this email.</p>"
            f"</body></html>"
        )

        try:
            self._send_email(to_email, subject, html_body, text_body)
        except MailDeliveryError as e:
            logger.error(f"Verification mail for {username} not sent: {e}")
            return False

        logger.info(f"Verification mail sent for {username}")
        return True

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str):
        """
        Send an email via SMTP.

        Raises:
            MailDeliveryError: If the SMTP conversation fails
        """
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_username:
                    server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(str(e)) from e


def get_mailer() -> VerificationMailer:
    """Dependency returning the configured mailer."""
    return VerificationMailer()
