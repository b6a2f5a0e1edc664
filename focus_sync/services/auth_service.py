"""Account registration, login and token refresh."""

import logging
import uuid
from datetime import UTC, datetime

from focus_sync.core.errors import AuthenticationError, ConflictError, ValidationError
from focus_sync.core.logging import log_event, span
from focus_sync.core.passwords import hash_password, verify_password
from focus_sync.core.user_store import UserLocks, UserRepository
from focus_sync.domain.auth import AuthResponse, LoginRequest, RefreshRequest, RegisterRequest
from focus_sync.domain.records import format_timestamp
from focus_sync.domain.user import UserAccount
from focus_sync.services.streak_service import update_streak
from focus_sync.services.token_service import TokenManager


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials."


class AuthService:
    """Account flows that hand out token pairs."""

    def __init__(self, *, repository: UserRepository, locks: UserLocks, tokens: TokenManager) -> None:
        self._repository = repository
        self._locks = locks
        self._tokens = tokens

    async def register(self, request: RegisterRequest, *, now: datetime | None = None) -> AuthResponse:
        """Create an account and sign it in.

        Raises:
            ValidationError: If email, password or display name is missing
            ConflictError: If the email is already registered
        """
        with span("auth_service.register"):
            # Guard: Validate required fields
            if not request.email or not request.password or not request.display_name:
                raise ValidationError("Email, password, and display name are required.")

            # Guard: Check if email is taken
            if await self._repository.get_by_email(request.email) is not None:
                logger.warning("register_duplicate_email")
                raise ConflictError("A user with that email already exists.")

            moment = now or datetime.now(UTC)
            user = UserAccount(
                id=str(uuid.uuid4()),
                email=request.email,
                display_name=request.display_name,
                password_hash=hash_password(request.password),
                current_streak=1,
                longest_streak=1,
                last_check_in=format_timestamp(moment),
            )
            user, tokens = self._tokens.mint(user, now=moment)

            try:
                await self._repository.create(user)
            except KeyError as e:
                # Lost a race with a concurrent registration of the same email
                raise ConflictError("A user with that email already exists.") from e

            log_event(logger, "info", "user_registered", user_id=user.id)
            return AuthResponse(user=user.to_profile(), tokens=tokens, message="Registration successful")

    async def login(self, request: LoginRequest, *, now: datetime | None = None) -> AuthResponse:
        """Verify credentials, record the daily check-in and issue tokens.

        Raises:
            ValidationError: If email or password is missing
            AuthenticationError: If the email is unknown or the password is wrong
        """
        with span("auth_service.login"):
            if not request.email or not request.password:
                raise ValidationError("Email and password are required.")

            found = await self._repository.get_by_email(request.email)
            if found is None:
                logger.warning("login_failed")
                raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

            async with self._locks.for_user(found.id):
                # Re-read under the lock so concurrent syncs are not overwritten
                user = await self._repository.get_by_id(found.id)
                if user is None or not verify_password(request.password, user.password_hash):
                    logger.warning("login_failed")
                    raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

                moment = now or datetime.now(UTC)
                user = update_streak(user, moment)
                user, tokens = self._tokens.mint(user, now=moment)
                await self._repository.save(user)

            log_event(logger, "info", "user_logged_in", user_id=user.id, current_streak=user.current_streak)
            return AuthResponse(user=user.to_profile(), tokens=tokens, message="Login successful")

    async def refresh(self, request: RefreshRequest) -> AuthResponse:
        """Exchange a refresh token for a new pair.

        Raises:
            ValidationError: If the refresh token is missing
            AuthenticationError: If the token is invalid, expired or already used
        """
        if not request.refresh_token:
            raise ValidationError("Refresh token is required.")

        user, tokens = await self._tokens.rotate_refresh(request.refresh_token)
        return AuthResponse(user=user.to_profile(), tokens=tokens, message="Tokens refreshed")


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.removeprefix("Bearer ").strip()
    return token or None
