"""
Named lifecycle states derived from the stored account flags.
"""

from enum import Enum


class AccountState(str, Enum):
    UNVERIFIED = "unverified"
    ACTIVE = "active"
    EMAIL_CHANGE_PENDING = "email_change_pending"
    # Flag combination that no lifecycle operation should ever produce
    INCONSISTENT = "inconsistent"


def derive_state(account) -> AccountState:
    """
    Map ``is_verified``/``password_hash``/``pending_email`` to a named state.

    ``account`` is anything with those attributes plus ``email_token_expiry``;
    a ``User`` row in practice.
    """
    if not account.is_verified:
        # A reset link may set a password before verification; that is still unverified
        if account.pending_email is not None:
            return AccountState.INCONSISTENT
        return AccountState.UNVERIFIED
    if account.password_hash is None:
        return AccountState.INCONSISTENT
    if account.pending_email is None:
        return AccountState.ACTIVE
    if account.email_token_expiry is None:
        return AccountState.INCONSISTENT
    return AccountState.EMAIL_CHANGE_PENDING
