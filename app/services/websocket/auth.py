import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Result of checking a resume token."""

    success: bool
    player_id: str | None = None
    error: str | None = None
    expired: bool = False


class ResumeTokenAuthenticator:
    """Issues and checks the tokens players present to resume a game.

    Player ids are visible to opponents in every game payload. Each
    connection receives a token signed for its player id, and reconnecting
    requires that token.
    """

    ALGORITHM = "HS256"
    AUDIENCE = "game-resume"

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()

    def issue_token(self, player_id: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": player_id,
            "aud": self.AUDIENCE,
            "iat": now,
            "exp": now + timedelta(seconds=self._settings.RESUME_TOKEN_TTL_SECONDS),
        }
        return jwt.encode(payload, self._settings.RESUME_TOKEN_SECRET, algorithm=self.ALGORITHM)

    def validate_token(self, token: str | None, player_id: str) -> AuthResult:
        """Check that ``token`` was issued by this server for ``player_id``.

        Returns:
            AuthResult with success=True on a valid token, or success=False
            with an error message on failure.
        """
        if not token:
            logger.warning("Resume rejected for player %s: missing token", player_id)
            return AuthResult(success=False, error="Missing resume token")

        try:
            payload = jwt.decode(
                token,
                self._settings.RESUME_TOKEN_SECRET,
                algorithms=[self.ALGORITHM],
                audience=self.AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Resume rejected for player %s: token expired", player_id)
            return AuthResult(success=False, error="Resume token has expired", expired=True)
        except jwt.InvalidTokenError as e:
            logger.warning("Resume rejected for player %s: invalid token - %s", player_id, e)
            return AuthResult(success=False, error=f"Invalid resume token: {e}")

        if payload.get("sub") != player_id:
            logger.warning(
                "Resume rejected: token for %s presented as %s",
                payload.get("sub"),
                player_id,
            )
            return AuthResult(success=False, error="Resume token does not match player")

        logger.debug("Resume token validated for player %s", player_id)
        return AuthResult(success=True, player_id=player_id)


# Global authenticator instance
_resume_authenticator: ResumeTokenAuthenticator | None = None


def get_resume_authenticator() -> ResumeTokenAuthenticator:
    """Get the global ResumeTokenAuthenticator instance."""
    global _resume_authenticator
    if _resume_authenticator is None:
        _resume_authenticator = ResumeTokenAuthenticator()
    return _resume_authenticator


def set_resume_authenticator(authenticator: ResumeTokenAuthenticator | None) -> None:
    """Set the global ResumeTokenAuthenticator instance."""
    global _resume_authenticator
    _resume_authenticator = authenticator
