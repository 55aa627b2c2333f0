"""Service for sending one-time codes by email."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..domain.errors import UpstreamUnavailable
from ..domain.models import ChallengePurpose, User

logger = logging.getLogger(__name__)

_SUBJECTS = {
    ChallengePurpose.REGISTER: "Your Stockroom verification code",
    ChallengePurpose.FORGOT_PASSWORD: "Your Stockroom password reset code",
}

_INTROS = {
    ChallengePurpose.REGISTER: "Thanks for signing up. Enter this code to verify your email address:",
    ChallengePurpose.FORGOT_PASSWORD: "We received a request to reset your password. Enter this code to continue:",
}


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int = 587,
        smtp_username: str = "",
        smtp_password: str = "",
        from_email: str = "",
        from_name: str = "Stockroom",
        timeout: float = 10.0,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout
        self.enabled = bool(self.smtp_host and self.smtp_username and self.from_email)

    def send_code(
        self,
        user: User,
        purpose: ChallengePurpose,
        code: str,
        expires_minutes: int,
    ) -> None:
        """
        Email a one-time code.

        Args:
            user: Recipient account
            purpose: What the code unlocks, selects the wording
            code: Plain numeric code
            expires_minutes: Code lifetime shown to the user

        Raises:
            UpstreamUnavailable: If the SMTP server cannot be reached in time
        """
        if not self.enabled:
            logger.info("[EMAIL] %s code for %s: %s", purpose.value, user.email, code)
            return

        subject = _SUBJECTS[purpose]
        intro = _INTROS[purpose]
        greeting = f"Hi {user.name}," if user.name else "Hi,"

        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
                <h1 style="color: #1e293b;">Stockroom</h1>
                <p style="color: #475569;">{greeting}</p>
                <p style="color: #475569; line-height: 1.6;">{intro}</p>
                <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px; text-align: center;">
                    {code}
                </p>
                <p style="color: #64748b; font-size: 14px;">
                    This code expires in {expires_minutes} minutes. If you did not ask for it,
                    you can ignore this email.
                </p>
            </body>
        </html>
        """

        text_body = f"""
        {greeting}

        {intro}

        {code}

        This code expires in {expires_minutes} minutes.
        If you did not ask for it, you can ignore this email.
        """

        self._send_email(user.email, subject, html_body, text_body)

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email

        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", to_email, exc)
            raise UpstreamUnavailable("Could not send the email, please retry") from exc
        logger.info("Sent %r to %s", subject, to_email)
