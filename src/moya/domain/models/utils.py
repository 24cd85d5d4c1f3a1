from datetime import UTC, datetime


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)
