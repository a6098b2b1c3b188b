"""Delivery of verification codes by email.

Mail is a side channel: a failed send is logged and never fails the request
that issued the code. Without a configured transport the code is only
written to the log, and only in development.
"""

from visionara.core.logging import get_logger
from visionara.infrastructure.services.email.email_provider import EmailProvider
from visionara.infrastructure.services.email.template_renderer import (
    TemplateRenderer,
    get_template_renderer,
)

logger = get_logger(__name__)

PURPOSE_PASSWORD_CHANGE = "password_change"
PURPOSE_PASSWORD_RESET = "password_reset"

SUBJECT_TEMPLATES = {
    PURPOSE_PASSWORD_CHANGE: "{{ app_name }} - Password Change Verification",
    PURPOSE_PASSWORD_RESET: "Password Reset - Your Verification Code",
}

HEADINGS = {
    PURPOSE_PASSWORD_CHANGE: "Password Change Verification",
    PURPOSE_PASSWORD_RESET: "Password Reset",
}

HTML_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #1f2937;">{{ heading }}</h2>
  <p>Use the verification code below to continue.</p>
  <div style="font-size: 32px; font-weight: 700; letter-spacing: 8px; font-family: 'Courier New', monospace;">{{ code }}</div>
  <p>This code expires in <strong>{{ ttl_minutes }} minutes</strong>.</p>
  <p>If you didn't request this, please ignore this email.</p>
  <p style="color: #6b7280; font-size: 12px;">{{ app_name }}</p>
</div>
"""

TEXT_TEMPLATE = (
    "Your {{ app_name }} verification code is {{ code }}. "
    "It expires in {{ ttl_minutes }} minutes. "
    "If you didn't request this, please ignore this email."
)


class VerificationMailer:
    """Sends verification codes through an EmailProvider."""

    def __init__(
        self,
        provider: EmailProvider | None,
        app_name: str = "Visionara",
        ttl_minutes: int = 10,
        dev_fallback: bool = False,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        """Initialize the mailer.

        Args:
            provider: Mail transport, None when no transport is configured.
            app_name: Product name used in the message.
            ttl_minutes: Code lifetime quoted in the message.
            dev_fallback: Log the code when no transport is configured.
            renderer: Template renderer, the shared one by default.
        """
        self.provider = provider
        self.app_name = app_name
        self.ttl_minutes = ttl_minutes
        self.dev_fallback = dev_fallback
        self.renderer = renderer or get_template_renderer()

    def render(self, code: str, purpose: str) -> tuple[str, str, str]:
        """Build (subject, html_body, text_body) for a code."""
        variables = {
            "app_name": self.app_name,
            "code": code,
            "heading": HEADINGS[purpose],
            "ttl_minutes": self.ttl_minutes,
        }
        subject = self.renderer.render(SUBJECT_TEMPLATES[purpose], variables)
        html_body = self.renderer.render(HTML_TEMPLATE, variables)
        text_body = self.renderer.render(TEXT_TEMPLATE, variables)
        return subject, html_body, text_body

    async def send_code(self, to: str, code: str, purpose: str = PURPOSE_PASSWORD_CHANGE) -> bool:
        """Deliver a code.

        Returns:
            True if the transport accepted the message, False otherwise.
        """
        if self.provider is None:
            if self.dev_fallback:
                logger.warning("DEV ONLY: verification code not mailed", to=to, code=code, purpose=purpose)
            else:
                logger.warning("No mail transport configured, verification code not sent", purpose=purpose)
            return False

        try:
            subject, html_body, text_body = self.render(code, purpose)
            await self.provider.send_email(
                to=to, subject=subject, html_body=html_body, text_body=text_body
            )
        except Exception as e:
            logger.error("Verification email failed", purpose=purpose, error=str(e))
            return False

        logger.info("Verification email sent", purpose=purpose)
        return True
