from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC time as a naive datetime.

    Columns are TIMESTAMP WITHOUT TIME ZONE; all times are UTC by convention.
    """
    return datetime.now(UTC).replace(tzinfo=None)
