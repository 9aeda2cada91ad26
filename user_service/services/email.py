"""Transactional email over SMTP"""
import html
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from user_service.config import Settings
from user_service.errors import EmailDeliveryError
from user_service.utils.logger import logger


class EmailService:
    """Transactional email over SMTP.

    Sends verification, password reset, welcome and account-status messages.
    When no SMTP host is configured the message is logged instead of sent.
    Delivery failures raise :class:`EmailDeliveryError`; nothing is retried.
    """

    def __init__(
        self,
        *,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        smtp_use_tls: bool = True,
        from_email: Optional[str] = None,
        from_name: str = "Laundry App",
        frontend_url: str = "http://localhost:3000",
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.from_name = from_name
        self.frontend_url = frontend_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        return cls(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            smtp_use_tls=settings.SMTP_USE_TLS,
            from_email=settings.EMAIL_FROM,
            from_name=settings.EMAIL_FROM_NAME,
            frontend_url=settings.FRONTEND_URL,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    @staticmethod
    def _redact_email(email: str) -> str:
        if "@" not in email:
            return "redacted"
        local, domain = email.split("@", 1)
        return f"{local[:2]}***@{domain}"

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        if not self.is_configured:
            logger.info(
                f"SMTP not configured; skipping delivery of '{subject}' to {self._redact_email(to_email)}",
                extra={"action": "send_email"},
            )
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
            else:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=30) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                f"Failed to send '{subject}' to {self._redact_email(to_email)}",
                exc_info=True,
                extra={"action": "send_email"},
            )
            raise EmailDeliveryError(str(exc)) from exc

        logger.info(f"Email '{subject}' sent to {self._redact_email(to_email)}", extra={"action": "send_email"})

    def _wrap(self, heading: str, paragraphs: str, link: Optional[str] = None, link_text: str = "") -> str:
        button = ""
        if link:
            link = html.escape(link)
            button = (
                f'<p style="text-align:center;margin:30px 0;">'
                f'<a href="{link}" style="background:#3b82f6;color:#fff;padding:12px 24px;'
                f'text-decoration:none;border-radius:6px;">{link_text}</a></p>'
                f"<p>Or copy this link into your browser: {link}</p>"
            )
        return (
            '<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;">'
            f"<h2>{html.escape(heading)}</h2>{paragraphs}{button}"
            f"<p>Best regards,<br>The {html.escape(self.from_name)} Team</p></div>"
        )

    def send_verification_email(self, email: str, token: str) -> None:
        url = f"{self.frontend_url}/verify-email?token={token}"
        html_body = self._wrap(
            f"Welcome to {self.from_name}!",
            "<p>Thank you for signing up. Please verify your email address.</p>"
            "<p>This link will expire in 24 hours.</p>",
            url,
            "Verify Email",
        )
        text = f"Verify your email address: {url}\nThis link will expire in 24 hours."
        self._send_email(email, f"Verify Your Email - {self.from_name}", html_body, text)

    def send_password_reset_email(self, email: str, token: str) -> None:
        url = f"{self.frontend_url}/reset-password?token={token}"
        html_body = self._wrap(
            "Password Reset Request",
            "<p>You requested to reset your password.</p>"
            "<p>This link will expire in 1 hour. If you didn't request this, ignore this email.</p>",
            url,
            "Reset Password",
        )
        text = f"Reset your password: {url}\nThis link will expire in 1 hour."
        self._send_email(email, f"Reset Your Password - {self.from_name}", html_body, text)

    def send_welcome_email(self, email: str, first_name: str) -> None:
        url = f"{self.frontend_url}/dashboard"
        html_body = self._wrap(
            f"Welcome, {first_name}!",
            "<p>Your email has been verified and your account is ready to use.</p>",
            url,
            "Go to Dashboard",
        )
        text = f"Welcome, {first_name}! Your email has been verified. {url}"
        self._send_email(email, f"Welcome to {self.from_name}!", html_body, text)

    def send_account_deactivated_email(self, email: str, first_name: str) -> None:
        html_body = self._wrap(
            "Account Deactivated",
            f"<p>Hi {html.escape(first_name)},</p><p>Your account has been deactivated. "
            "If you believe this is a mistake, please contact support.</p>",
        )
        text = f"Hi {first_name}, your account has been deactivated. Contact support if this is a mistake."
        self._send_email(email, f"Account Deactivated - {self.from_name}", html_body, text)

    def send_account_reactivated_email(self, email: str, first_name: str) -> None:
        url = f"{self.frontend_url}/dashboard"
        html_body = self._wrap(
            "Account Reactivated",
            f"<p>Hi {html.escape(first_name)},</p><p>Your account has been reactivated. Welcome back!</p>",
            url,
            "Go to Dashboard",
        )
        text = f"Hi {first_name}, your account has been reactivated. {url}"
        self._send_email(email, f"Account Reactivated - {self.from_name}", html_body, text)


def get_mailer() -> EmailService:
    """FastAPI dependency; tests override it with a recording mailer"""
    from user_service.config import settings

    return EmailService.from_settings(settings)
