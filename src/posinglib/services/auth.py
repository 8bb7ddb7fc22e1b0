"""Identity bootstrap for posinglib application.

A session signs in with the custom token handed over by the hosting
environment when there is one, otherwise anonymously. The rest of the app
only needs the resulting stable user id to scope its store.
"""

import base64
import json
import uuid
from dataclasses import dataclass
from typing import Any

from ..config import AppConfig
from ..error_handling import AuthenticationError
from ..logging_config import get_logger, log_security_event, log_user_action

logger = get_logger(__name__)


@dataclass(frozen=True)
class UserIdentity:
    """Signed-in user as seen by the store."""

    user_id: str
    is_anonymous: bool
    email: str | None = None
    name: str | None = None


class IdentityProvider:
    """Token-or-anonymous session sign-in."""

    def __init__(self, config: AppConfig) -> None:
        """
        Initialize the identity provider.

        Args:
            config: Application settings; ``initial_auth_token`` is used when
                sign_in is called without an explicit token
        """
        self.config = config
        self._current_user: UserIdentity | None = None

    def sign_in(self, token: str | None = None) -> UserIdentity:
        """
        Sign the session in.

        Args:
            token: Custom JWT issued by the host; falls back to the configured
                initial token, then to an anonymous identity

        Returns:
            UserIdentity: The signed-in identity

        Raises:
            AuthenticationError: If a token is given but cannot be decoded
        """
        if self._current_user is not None:
            return self._current_user

        token = token or self.config.initial_auth_token
        if token:
            try:
                identity = self._identity_from_token(token)
            except ValueError as e:
                log_security_event("token_sign_in_failed", context={"error": str(e)})
                raise AuthenticationError(
                    f"Failed to sign in with token: {e}",
                    code="invalid_token",
                    details={"operation": "sign_in"},
                    original_exception=e,
                ) from e
            log_user_action(identity.user_id, "token_sign_in", email=identity.email)
        else:
            identity = UserIdentity(user_id=f"anon-{uuid.uuid4().hex}", is_anonymous=True)
            log_user_action(identity.user_id, "anonymous_sign_in")

        self._current_user = identity
        return identity

    def _identity_from_token(self, token: str) -> UserIdentity:
        payload = self._decode_jwt_payload(token)
        user_id = payload.get("user_id") or payload.get("sub")
        if not user_id or not str(user_id).strip():
            raise ValueError("Subject (user ID) not found in token payload")
        return UserIdentity(
            user_id=str(user_id).strip(),
            is_anonymous=False,
            email=payload.get("email"),
            name=payload.get("name"),
        )

    def _decode_jwt_payload(self, jwt_token: str) -> dict[str, Any]:
        """Decode the JWT payload segment; the signature is checked by the host."""
        try:
            parts = jwt_token.split(".")
            if len(parts) != 3:
                raise ValueError("Invalid JWT token format")

            payload_b64 = parts[1]
            padding = 4 - len(payload_b64) % 4
            if padding != 4:
                payload_b64 += "=" * padding

            payload = json.loads(base64.urlsafe_b64decode(payload_b64).decode("utf-8"))
            if not isinstance(payload, dict):
                raise ValueError("Token payload is not an object")
            return payload
        except (ValueError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValueError(f"Failed to decode JWT payload: {e}") from e

    def get_current_user(self) -> UserIdentity | None:
        """Get the currently signed-in user."""
        return self._current_user

    def is_authenticated(self) -> bool:
        """Check if a user is currently signed in."""
        return self._current_user is not None

    def ensure_authenticated(self) -> UserIdentity:
        """
        Ensure a user is signed in, raise exception if not.

        Raises:
            AuthenticationError: If nobody is signed in
        """
        if self._current_user is None:
            raise AuthenticationError(
                "User is not authenticated",
                code="user_not_authenticated",
                details={"operation": "ensure_authenticated"},
            )
        return self._current_user

    def sign_out(self) -> None:
        """Clear the current sign-in."""
        user_id = self._current_user.user_id if self._current_user else None
        self._current_user = None
        log_user_action(user_id or "unknown", "signed_out")
