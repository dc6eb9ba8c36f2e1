"""Tests for resume token issuing and validation."""

from datetime import datetime, timedelta, timezone

import jwt

from app.services.websocket.auth import ResumeTokenAuthenticator

from .conftest import PLAYER_1_ID, PLAYER_2_ID, make_settings

TEST_SECRET = "test-secret-" + "x" * 32


def _authenticator(**overrides) -> ResumeTokenAuthenticator:
    return ResumeTokenAuthenticator(make_settings(RESUME_TOKEN_SECRET=TEST_SECRET, **overrides))


class TestResumeTokens:
    def test_issued_token_validates(self):
        authenticator = _authenticator()
        token = authenticator.issue_token(PLAYER_1_ID)

        result = authenticator.validate_token(token, PLAYER_1_ID)

        assert result.success is True
        assert result.player_id == PLAYER_1_ID

    def test_missing_token_fails(self):
        result = _authenticator().validate_token(None, PLAYER_1_ID)

        assert result.success is False
        assert result.expired is False

    def test_token_for_other_player_fails(self):
        authenticator = _authenticator()
        token = authenticator.issue_token(PLAYER_2_ID)

        result = authenticator.validate_token(token, PLAYER_1_ID)

        assert result.success is False
        assert "does not match" in result.error

    def test_token_signed_with_other_secret_fails(self):
        foreign = ResumeTokenAuthenticator(
            make_settings(RESUME_TOKEN_SECRET="other-secret-" + "y" * 32)
        )
        token = foreign.issue_token(PLAYER_1_ID)

        result = _authenticator().validate_token(token, PLAYER_1_ID)

        assert result.success is False
        assert result.error.startswith("Invalid resume token")

    def test_expired_token_is_flagged(self):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {
                "sub": PLAYER_1_ID,
                "aud": ResumeTokenAuthenticator.AUDIENCE,
                "iat": past,
                "exp": past + timedelta(hours=1),
            },
            TEST_SECRET,
            algorithm=ResumeTokenAuthenticator.ALGORITHM,
        )

        result = _authenticator().validate_token(token, PLAYER_1_ID)

        assert result.success is False
        assert result.expired is True

    def test_garbage_token_fails(self):
        result = _authenticator().validate_token("not-a-token", PLAYER_1_ID)
        assert result.success is False
