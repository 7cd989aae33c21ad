"""Unit tests for the token codec."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from storeauth.kernel.identity.tokens import (
    EmailChangeClaims,
    SessionClaims,
    SubjectClaims,
    TokenCodec,
    TokenExpiredError,
    TokenInvalidError,
)

KEY = "test-signing-key-for-testing-only"
OTHER_KEY = "another-signing-key-for-testing"
START = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self):
        self.now = START

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def codec(clock) -> TokenCodec:
    return TokenCodec(clock=clock)


class TestTokenRoundTrip:
    """Every claim variant comes back exactly as issued."""

    @pytest.mark.parametrize(
        "claims",
        [
            SubjectClaims(subject_id=7),
            SessionClaims(subject_id=7, role="ADMIN"),
            EmailChangeClaims(subject_id=7, new_email="new@example.com"),
        ],
    )
    def test_issue_then_verify(self, codec, claims):
        token = codec.issue(claims, KEY, timedelta(hours=1))

        decoded = codec.verify(token, KEY)

        assert type(decoded) is type(claims)
        assert decoded == claims

    def test_tokens_are_unique(self, codec):
        """Two tokens for the same claims in the same second still differ."""
        claims = SubjectClaims(subject_id=7)

        assert codec.issue(claims, KEY, timedelta(hours=1)) != codec.issue(claims, KEY, timedelta(hours=1))

    def test_payload_layout(self, codec):
        token = codec.issue(EmailChangeClaims(subject_id=7, new_email="n@x.com"), KEY, timedelta(hours=1))

        payload = jwt.get_unverified_claims(token)

        assert payload["sub"] == "7"
        assert payload["kind"] == "email_change"
        assert payload["new_email"] == "n@x.com"
        assert payload["exp"] - payload["iat"] == 3600
        assert "subject_id" not in payload


class TestTokenVerification:
    """Expired and invalid are reported separately."""

    def test_expired(self, codec, clock):
        token = codec.issue(SubjectClaims(subject_id=1), KEY, timedelta(minutes=15))
        clock.now = START + timedelta(minutes=15)

        with pytest.raises(TokenExpiredError):
            codec.verify(token, KEY)

    def test_valid_just_before_expiry(self, codec, clock):
        token = codec.issue(SubjectClaims(subject_id=1), KEY, timedelta(minutes=15))
        clock.now = START + timedelta(minutes=14, seconds=59)

        assert codec.verify(token, KEY) == SubjectClaims(subject_id=1)

    def test_wrong_key_is_invalid(self, codec):
        token = codec.issue(SubjectClaims(subject_id=1), KEY, timedelta(hours=1))

        with pytest.raises(TokenInvalidError):
            codec.verify(token, OTHER_KEY)

    def test_wrong_key_beats_expiry(self, codec, clock):
        """A forged token is invalid even once it would have expired."""
        token = codec.issue(SubjectClaims(subject_id=1), KEY, timedelta(minutes=1))
        clock.now = START + timedelta(hours=1)

        with pytest.raises(TokenInvalidError):
            codec.verify(token, OTHER_KEY)

    def test_garbage_is_invalid(self, codec):
        with pytest.raises(TokenInvalidError):
            codec.verify("definitely.not.ajwt", KEY)

    def test_missing_expiry_is_invalid(self, codec):
        token = jwt.encode({"sub": "1", "kind": "subject"}, KEY, algorithm="HS256")

        with pytest.raises(TokenInvalidError):
            codec.verify(token, KEY)

    def test_unknown_kind_is_invalid(self, codec):
        exp = int((START + timedelta(hours=1)).timestamp())
        token = jwt.encode({"sub": "1", "kind": "admin", "exp": exp}, KEY, algorithm="HS256")

        with pytest.raises(TokenInvalidError):
            codec.verify(token, KEY)

    def test_variant_missing_field_is_invalid(self, codec):
        """An email-change token without new_email does not decode as anything."""
        exp = int((START + timedelta(hours=1)).timestamp())
        token = jwt.encode({"sub": "1", "kind": "email_change", "exp": exp}, KEY, algorithm="HS256")

        with pytest.raises(TokenInvalidError):
            codec.verify(token, KEY)
