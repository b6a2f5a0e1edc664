"""Access and refresh token lifecycle.

Access tokens are stateless: a valid signature, an unexpired timestamp and
``type == "access"`` are enough. Refresh tokens are also signed, but are only
accepted while they are present in the owning account's ``refresh_tokens``
set; using one removes it and issues a new pair.
"""

import logging
import secrets
from datetime import UTC, datetime

from itsdangerous import BadData, URLSafeTimedSerializer

from focus_sync.core.config import constants, settings
from focus_sync.core.errors import AuthenticationError, NotFoundError
from focus_sync.core.logging import log_event, span
from focus_sync.core.user_store import UserLocks, UserRepository
from focus_sync.domain.auth import TokenPair
from focus_sync.domain.records import format_timestamp
from focus_sync.domain.user import UserAccount


logger = logging.getLogger(__name__)


class TokenManager:
    """Issues, verifies and rotates tokens bound to user accounts."""

    def __init__(
        self,
        *,
        repository: UserRepository,
        locks: UserLocks,
        secret: str | None = None,
        access_ttl_seconds: int | None = None,
        refresh_ttl_seconds: int | None = None,
    ) -> None:
        self._repository = repository
        self._locks = locks
        self._serializer = URLSafeTimedSerializer(secret or settings.token_secret, salt=constants.TOKEN_SALT)
        self.access_ttl_seconds = (
            access_ttl_seconds if access_ttl_seconds is not None else settings.access_token_ttl_seconds
        )
        self.refresh_ttl_seconds = (
            refresh_ttl_seconds if refresh_ttl_seconds is not None else settings.refresh_token_ttl_seconds
        )

    def _sign(self, user_id: str, token_type: str) -> str:
        return self._serializer.dumps(
            {"sub": user_id, "type": token_type, "jti": secrets.token_hex(constants.TOKEN_NONCE_BYTES)}
        )

    def _decode(self, token: str, *, token_type: str, max_age: int) -> str | None:
        """Return the subject of ``token`` if it is a valid token of ``token_type``."""
        try:
            payload = self._serializer.loads(token, max_age=max_age)
        except BadData:
            return None

        if not isinstance(payload, dict) or payload.get("type") != token_type:
            return None

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            return None
        return subject

    def _is_live_refresh_token(self, token: str) -> bool:
        subject = self._decode(token, token_type=constants.TOKEN_TYPE_REFRESH, max_age=self.refresh_ttl_seconds)
        return subject is not None

    def mint(self, user: UserAccount, *, now: datetime | None = None) -> tuple[UserAccount, TokenPair]:
        """Create a token pair for ``user`` without touching storage.

        Returns a copy of the account with the new refresh token registered and
        expired refresh tokens dropped. The caller must persist it.
        """
        access_token = self._sign(user.id, constants.TOKEN_TYPE_ACCESS)
        refresh_token = self._sign(user.id, constants.TOKEN_TYPE_REFRESH)

        live_tokens = {token for token in user.refresh_tokens if self._is_live_refresh_token(token)}
        live_tokens.add(refresh_token)

        tokens = TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.access_ttl_seconds,
            issued_at=format_timestamp(now or datetime.now(UTC)),
        )
        return user.model_copy(update={"refresh_tokens": live_tokens}), tokens

    async def issue(self, user_id: str) -> TokenPair:
        """Issue and register a fresh token pair for an existing user.

        Raises:
            NotFoundError: If the user does not exist
        """
        with span("token_service.issue"):
            async with self._locks.for_user(user_id):
                user = await self._repository.get_by_id(user_id)
                if user is None:
                    msg = f"User not found: {user_id}"
                    raise NotFoundError(msg)

                updated, tokens = self.mint(user)
                await self._repository.save(updated)

            log_event(logger, "info", "tokens_issued", user_id=user_id)
            return tokens

    def verify_access(self, token: str | None) -> str | None:
        """Return the user id carried by a valid access token, else None. Never raises."""
        if not token:
            return None
        return self._decode(token, token_type=constants.TOKEN_TYPE_ACCESS, max_age=self.access_ttl_seconds)

    async def rotate_refresh(self, token: str) -> tuple[UserAccount, TokenPair]:
        """Consume a refresh token and issue a replacement pair.

        Removing the old token and registering the new one happen under the
        user's lock, so a token can be rotated at most once.

        Returns:
            Tuple of (updated account, new token pair)

        Raises:
            AuthenticationError: If the token is invalid, expired, of the wrong
                type, unknown, or already used
        """
        with span("token_service.rotate_refresh"):
            user_id = self._decode(token, token_type=constants.TOKEN_TYPE_REFRESH, max_age=self.refresh_ttl_seconds)
            if user_id is None:
                logger.warning("refresh_token_rejected", extra={"reason": "invalid_token"})
                raise AuthenticationError("Invalid refresh token.")

            async with self._locks.for_user(user_id):
                user = await self._repository.get_by_id(user_id)
                if user is None or token not in user.refresh_tokens:
                    log_event(logger, "warning", "refresh_token_rejected", user_id=user_id, reason="not_recognized")
                    raise AuthenticationError("Refresh token not recognized.")

                consumed = user.model_copy(update={"refresh_tokens": user.refresh_tokens - {token}})
                updated, tokens = self.mint(consumed)
                await self._repository.save(updated)

            log_event(logger, "info", "refresh_token_rotated", user_id=user_id)
            return updated, tokens
