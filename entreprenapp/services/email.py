"""
Outbound email port.

Delivery through a provider is handled outside this service; messages are
written to the log so that codes and links are traceable in development.
"""
import logging
from dataclasses import dataclass

from entreprenapp.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to: str
    subject: str
    body: str


class EmailService:
    """Compose account emails and hand them to the log."""

    def __init__(self, sender: str = ""):
        self.sender = sender or settings.SENDGRID_FROM_EMAIL or "no-reply@entreprenapp.local"

    async def send(self, message: EmailMessage) -> None:
        logger.info(f"Email to {message.to} from {self.sender}: {message.subject}")
        logger.debug(message.body)

    async def send_verification_code(self, to: str, username: str, code: str) -> None:
        await self.send(EmailMessage(
            to=to,
            subject="Verify your EntreprenApp account",
            body=(
                f"Hello {username},\n\nYour verification code is {code}. "
                f"It expires in {settings.VERIFICATION_CODE_EXPIRE_MINUTES} minutes."
            ),
        ))

    async def send_welcome(self, to: str, username: str) -> None:
        await self.send(EmailMessage(
            to=to,
            subject="Welcome to EntreprenApp",
            body=f"Hello {username},\n\nYour account is now active.",
        ))

    async def send_password_reset(self, to: str, raw_token: str) -> None:
        link = f"{settings.FRONTEND_URL}/reset-password/{raw_token}"
        await self.send(EmailMessage(
            to=to,
            subject="Reset your EntreprenApp password",
            body=(
                f"Use the following link to reset your password: {link}\n"
                f"It expires in {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes."
            ),
        ))

    async def send_password_changed(self, to: str) -> None:
        await self.send(EmailMessage(
            to=to,
            subject="Your EntreprenApp password was changed",
            body="If you did not make this change, contact support immediately.",
        ))
