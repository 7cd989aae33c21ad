"""
Signed, expiring tokens carrying typed claims.

Tokens are HS256 JWTs. The payload always carries ``sub`` (the account id),
``kind`` (which claim variant it is), ``iat``, ``exp`` and a random ``jti``.
Variant-specific fields sit next to them. Each purpose signs with its own key,
so a reset token never verifies as a session token even though both carry
only a subject.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Annotated, Callable, Literal, Optional, Union

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

Clock = Callable[[], datetime]

_REGISTERED_CLAIMS = ("sub", "iat", "exp", "jti")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubjectClaims(BaseModel):
    """Registration, resend and password-reset tokens: who, nothing more."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["subject"] = "subject"
    subject_id: int


class SessionClaims(BaseModel):
    """Login session tokens."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["session"] = "session"
    subject_id: int
    role: str


class EmailChangeClaims(BaseModel):
    """Email-change tokens; ``new_email`` is re-checked against live state."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["email_change"] = "email_change"
    subject_id: int
    new_email: str


Claims = Annotated[
    Union[SubjectClaims, SessionClaims, EmailChangeClaims],
    Field(discriminator="kind"),
]

_claims_adapter = TypeAdapter(Claims)


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenInvalidError(TokenError):
    """Signature, algorithm or payload shape did not check out."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its TTL."""


class TokenCodec:
    """
    Issue and verify signed tokens.

    The clock is injectable so expiry can be exercised without sleeping;
    both ``issue`` and ``verify`` read it.
    """

    def __init__(self, algorithm: str = "HS256", clock: Optional[Clock] = None):
        self.algorithm = algorithm
        self._clock = clock or utc_now

    def issue(
        self,
        claims: Union[SubjectClaims, SessionClaims, EmailChangeClaims],
        signing_key: str,
        ttl: timedelta,
    ) -> str:
        """
        Sign ``claims`` with ``signing_key``, valid for ``ttl`` from now.

        Returns:
            Compact JWT string
        """
        now = self._clock()
        payload = claims.model_dump(exclude={"subject_id"})
        payload.update({
            "sub": str(claims.subject_id),
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": uuid.uuid4().hex,
        })
        return jwt.encode(payload, signing_key, algorithm=self.algorithm)

    def verify(self, token: str, signing_key: str) -> Claims:
        """
        Verify ``token`` against ``signing_key`` and return its claims.

        Raises:
            TokenExpiredError: signature valid, ``exp`` has passed
            TokenInvalidError: anything else wrong with the token
        """
        try:
            payload = jwt.decode(
                token,
                signing_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise TokenInvalidError("Token signature or format is invalid") from exc

        exp = payload.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise TokenInvalidError("Token has no expiry")
        if self._clock().timestamp() >= exp:
            raise TokenExpiredError("Token has expired")

        data = {k: v for k, v in payload.items() if k not in _REGISTERED_CLAIMS}
        data["subject_id"] = payload.get("sub")
        try:
            return _claims_adapter.validate_python(data)
        except ValidationError as exc:
            raise TokenInvalidError("Token claims are malformed") from exc
