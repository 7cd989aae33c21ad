"""Unit tests for derived account states."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import pytest

from storeauth.kernel.identity.state import AccountState, derive_state

EXPIRY = datetime(2026, 1, 15, 13, 0, tzinfo=timezone.utc)


@dataclass
class Flags:
    is_verified: bool = False
    password_hash: Optional[str] = None
    pending_email: Optional[str] = None
    email_token_expiry: Optional[datetime] = None


@pytest.mark.parametrize(
    "flags,expected",
    [
        (Flags(), AccountState.UNVERIFIED),
        # Reset before verification leaves the account unverified
        (Flags(password_hash="$2b$04$x"), AccountState.UNVERIFIED),
        (Flags(is_verified=True, password_hash="$2b$04$x"), AccountState.ACTIVE),
        (
            Flags(is_verified=True, password_hash="$2b$04$x", pending_email="n@x.com", email_token_expiry=EXPIRY),
            AccountState.EMAIL_CHANGE_PENDING,
        ),
        (Flags(is_verified=True), AccountState.INCONSISTENT),
        (Flags(is_verified=True, password_hash="$2b$04$x", pending_email="n@x.com"), AccountState.INCONSISTENT),
        (Flags(pending_email="n@x.com", email_token_expiry=EXPIRY), AccountState.INCONSISTENT),
    ],
)
def test_derive_state(flags, expected):
    assert derive_state(flags) == expected
