"""Abstract base class for email providers."""

from abc import ABC, abstractmethod


class EmailProvider(ABC):
    """Interface every outbound mail transport implements."""

    @abstractmethod
    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        reply_to: str | None = None,
    ) -> bool:
        """Send an email.

        Args:
            to: Recipient email address.
            subject: Email subject line.
            html_body: HTML email body.
            text_body: Plain text email body.
            reply_to: Optional reply-to email address.

        Returns:
            True if the transport accepted the message.

        Raises:
            Exception: If sending fails.
        """
        pass
