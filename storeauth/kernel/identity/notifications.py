"""
Outbound notification gateway.

The lifecycle only knows ``send(to, subject, template_id, data)``. The SMTP
implementation renders a plain-text body from a small template registry and
hands the message to ``smtplib`` in a worker thread. When SMTP is not
configured the logging implementation is used instead.
"""

import asyncio
import smtplib
import ssl
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Any, Awaitable, Mapping, Optional

from storeauth.config import Settings
from storeauth.kernel.identity.errors import DeliveryUnavailableError
from storeauth.logging_config import get_logger

logger = get_logger(__name__)


TEMPLATES: dict[str, str] = {
    "verify-email": (
        "Hi {userName},\n\n"
        "Thanks for signing up. Confirm your email address and choose a password here:\n"
        "{verificationLink}\n\n"
        "The link expires in {expiryMinutes} minutes.\n"
    ),
    "welcome": (
        "Hi {userName},\n\n"
        "Your email is verified and your account is ready. Welcome aboard!\n"
    ),
    "forgot-password": (
        "Hi {userName},\n\n"
        "We received a request to reset your password. Choose a new one here:\n"
        "{resetLink}\n\n"
        "The link expires in {expiryMinutes} minutes. If you did not ask for this, ignore this message.\n"
    ),
    "verify-new-email": (
        "Hi {userName},\n\n"
        "Confirm {newEmail} as the new address for your account:\n"
        "{verificationLink}\n\n"
        "The link expires in {expiryMinutes} minutes. Until then your current address keeps working.\n"
    ),
    "email-changed-notification": (
        "Hi {userName},\n\n"
        "The email address on your account was changed to {newEmail}.\n"
        "If you did not make this change, contact support immediately.\n"
    ),
    "email-update-success": (
        "Hi {userName},\n\n"
        "This address is now the login email for your account.\n"
    ),
}


class _MissingAsBlank(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render_template(template_id: str, template_data: Mapping[str, Any]) -> str:
    """Render a registered template; unknown placeholders render empty."""
    try:
        template = TEMPLATES[template_id]
    except KeyError:
        raise ValueError(f"Unknown email template: {template_id}") from None
    body = template.format_map(_MissingAsBlank(template_data))
    year = template_data.get("currentYear")
    brand = template_data.get("brandName")
    if brand:
        body += f"\n© {year} {brand}\n" if year else f"\n{brand}\n"
    return body


class NotificationGateway(ABC):
    """Fire-and-forget templated message dispatch."""

    @abstractmethod
    async def send(
        self,
        to_address: str,
        subject: str,
        template_id: str,
        template_data: Mapping[str, Any],
    ) -> None:
        """Raises DeliveryUnavailableError when the transport fails."""
        pass


class SmtpNotificationGateway(NotificationGateway):
    """Deliver notifications over SMTP (implicit TLS on 465, STARTTLS otherwise)."""

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.from_address = from_address
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpNotificationGateway":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_address=settings.smtp_from_email,
            username=settings.smtp_user,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )

    def build_message(
        self,
        to_address: str,
        subject: str,
        template_id: str,
        template_data: Mapping[str, Any],
    ) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.from_address
        message["To"] = to_address
        message["X-Template-Id"] = template_id
        message.set_content(render_template(template_id, template_data))
        return message

    def _deliver(self, message: EmailMessage) -> None:
        context = ssl.create_default_context()
        if self.port == 465:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context) as server:
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(message)
            return
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.ehlo()
            if self.use_tls:
                server.starttls(context=context)
                server.ehlo()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(message)

    async def send(
        self,
        to_address: str,
        subject: str,
        template_id: str,
        template_data: Mapping[str, Any],
    ) -> None:
        message = self.build_message(to_address, subject, template_id, template_data)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "SMTP delivery failed: %s",
                exc,
                extra={"template_id": template_id, "to_address": to_address},
            )
            raise DeliveryUnavailableError() from exc
        logger.info("Email sent", extra={"template_id": template_id, "to_address": to_address})


class LoggingNotificationGateway(NotificationGateway):
    """Development gateway: writes the rendered message to the log instead of sending it."""

    async def send(
        self,
        to_address: str,
        subject: str,
        template_id: str,
        template_data: Mapping[str, Any],
    ) -> None:
        logger.info(
            "SMTP not configured; email not sent: %s",
            subject,
            extra={"template_id": template_id, "to_address": to_address},
        )
        logger.debug("Email body:\n%s", render_template(template_id, template_data))


def build_notification_gateway(settings: Settings) -> NotificationGateway:
    if settings.smtp_host:
        return SmtpNotificationGateway.from_settings(settings)
    return LoggingNotificationGateway()


async def best_effort(label: str, action: Awaitable[None], user_id: Optional[int] = None) -> bool:
    """
    Await a courtesy notification whose failure must not change the caller's result.

    Delivery failures are logged and reported as False; any other exception
    propagates.
    """
    try:
        await action
    except DeliveryUnavailableError as exc:
        logger.warning(
            "Best-effort notification failed: %s (%s)",
            label,
            exc.message,
            extra={"user_id": user_id, "notification": label},
        )
        return False
    return True
