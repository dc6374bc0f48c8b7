from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return current UTC time as a naive datetime (SQLite stores no tz)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
