"""Email delivery providers and the verification mailer."""

from visionara.infrastructure.services.email.email_provider import EmailProvider
from visionara.infrastructure.services.email.smtp_provider import SMTPProvider, SMTPSettings
from visionara.infrastructure.services.email.template_renderer import TemplateRenderer
from visionara.infrastructure.services.email.verification_mailer import VerificationMailer

__all__ = [
    "EmailProvider",
    "SMTPProvider",
    "SMTPSettings",
    "TemplateRenderer",
    "VerificationMailer",
]
