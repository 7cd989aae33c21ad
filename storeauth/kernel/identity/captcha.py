"""
CAPTCHA gate (Cloudflare Turnstile) for register, login and forgot-password.

Runs before the lifecycle operation. Without a configured secret the gate is
a no-op outside production and fails closed in production.
"""

from typing import Optional

import httpx

from storeauth.config import Settings
from storeauth.kernel.identity.errors import (
    CaptchaFailedError,
    CaptchaRequiredError,
    CaptchaUnavailableError,
)
from storeauth.logging_config import get_logger

logger = get_logger(__name__)

HTTP_TIMEOUT = 10.0


class TurnstileVerifier:
    """Verify a Turnstile response token against the siteverify endpoint."""

    def __init__(
        self,
        secret_key: str,
        verify_url: str,
        production: bool = False,
        timeout: float = HTTP_TIMEOUT,
    ):
        self.secret_key = secret_key
        self.verify_url = verify_url
        self.production = production
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "TurnstileVerifier":
        return cls(
            secret_key=settings.turnstile_secret_key,
            verify_url=settings.turnstile_verify_url,
            production=settings.is_production,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.secret_key)

    async def verify(self, token: Optional[str], remote_ip: Optional[str] = None) -> None:
        """
        Pass silently or raise.

        Raises:
            CaptchaRequiredError: gate enabled and no token supplied
            CaptchaFailedError: Turnstile rejected the token
            CaptchaUnavailableError: Turnstile unreachable, or no secret in production
        """
        if not self.enabled:
            if self.production:
                logger.error("Turnstile secret missing in production; rejecting request")
                raise CaptchaUnavailableError()
            logger.debug("Captcha disabled; skipping verification")
            return

        token = (token or "").strip()
        if not token:
            raise CaptchaRequiredError()

        form = {"secret": self.secret_key, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.verify_url, data=form)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Turnstile request failed: %s", exc)
            raise CaptchaUnavailableError() from exc

        if not data.get("success"):
            codes = ", ".join(data.get("error-codes") or [])
            raise CaptchaFailedError(
                f"Captcha verification failed ({codes})" if codes else None
            )
