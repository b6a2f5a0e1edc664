"""Daily login streak bookkeeping."""

from datetime import UTC, datetime, timedelta

from focus_sync.domain.records import format_timestamp, parse_timestamp
from focus_sync.domain.user import UserAccount


def update_streak(user: UserAccount, now: datetime) -> UserAccount:
    """Return ``user`` with its streak updated for a check-in at ``now``.

    Dates are compared in UTC. A second check-in on the same day changes
    nothing. A check-in on the day after the last one extends the streak; any
    other gap (including a last check-in in the future) restarts it at 1.
    """
    today = now.astimezone(UTC).date()
    try:
        last_day = parse_timestamp(user.last_check_in).astimezone(UTC).date()
    except ValueError:
        last_day = None

    if last_day == today:
        return user

    current = user.current_streak + 1 if last_day == today - timedelta(days=1) else 1

    return user.model_copy(
        update={
            "current_streak": current,
            "longest_streak": max(user.longest_streak, current),
            "last_check_in": format_timestamp(now),
        }
    )
