"""User account domain models."""

from pydantic import Field

from focus_sync.domain.base import CamelModel
from focus_sync.domain.records import TaskRecord, TimerRecord


class UserProfile(CamelModel):
    """Public view of an account returned to clients."""

    id: str = Field(..., description="Unique user ID")
    email: str = Field(..., description="Login email, unique across accounts")
    display_name: str = Field(..., description="Display name of the user")
    current_streak: int = Field(default=1, description="Consecutive days with a login")
    longest_streak: int = Field(default=1, description="Best streak ever reached")
    last_check_in: str = Field(..., description="ISO-8601 time of the last streak check-in")


class UserAccount(UserProfile):
    """Server-owned account holding the authoritative record sets."""

    password_hash: str = Field(..., description="Salted password hash")
    tasks: dict[str, TaskRecord] = Field(default_factory=dict, description="Authoritative tasks keyed by id")
    timers: dict[str, TimerRecord] = Field(default_factory=dict, description="Authoritative timers keyed by id")
    refresh_tokens: set[str] = Field(default_factory=set, description="Valid, unconsumed refresh tokens")

    def to_profile(self) -> UserProfile:
        """Strip credentials and records."""
        return UserProfile(
            id=self.id,
            email=self.email,
            display_name=self.display_name,
            current_streak=self.current_streak,
            longest_streak=self.longest_streak,
            last_check_in=self.last_check_in,
        )
