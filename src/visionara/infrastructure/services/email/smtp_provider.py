"""SMTP email provider implementation.

Uses aiosmtplib for asynchronous email sending via SMTP.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib
from pydantic import BaseModel, ConfigDict

from visionara.core.config import Settings
from visionara.core.logging import get_logger
from visionara.infrastructure.services.email.email_provider import EmailProvider

logger = get_logger(__name__)


class SMTPSettings(BaseModel):
    """Configuration settings for the SMTP provider."""

    model_config = ConfigDict(from_attributes=True)

    host: str
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    use_ssl: bool = False
    from_email: str
    from_name: str = "Visionara"
    reply_to: Optional[str] = None
    timeout: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["SMTPSettings"]:
        """Build SMTP settings from application settings, None when unconfigured."""
        if not settings.smtp_configured:
            return None
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            use_ssl=settings.smtp_use_ssl,
            from_email=settings.smtp_from_email or settings.smtp_username,
            from_name=settings.smtp_from_name,
            timeout=settings.smtp_timeout,
        )


class SMTPProvider(EmailProvider):
    """Sends emails over SMTP via aiosmtplib."""

    def __init__(self, settings: SMTPSettings) -> None:
        self.settings = settings

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        reply_to: Optional[str] = None,
    ) -> bool:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{self.settings.from_name} <{self.settings.from_email}>"
        message["To"] = to

        reply_addr = reply_to or self.settings.reply_to
        if reply_addr:
            message["Reply-To"] = reply_addr

        message.attach(MIMEText(text_body, "plain"))
        message.attach(MIMEText(html_body, "html"))

        try:
            async with aiosmtplib.SMTP(
                hostname=self.settings.host,
                port=self.settings.port,
                use_tls=self.settings.use_ssl,  # implicit TLS on connect
                start_tls=self.settings.use_tls and not self.settings.use_ssl,
                timeout=self.settings.timeout,
            ) as smtp:
                if self.settings.username and self.settings.password:
                    await smtp.login(self.settings.username, self.settings.password)
                await smtp.send_message(message)

            return True
        except Exception as e:
            logger.error("Failed to send email via SMTP", host=self.settings.host, error=str(e))
            raise
