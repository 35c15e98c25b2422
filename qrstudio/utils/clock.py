import datetime


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, the format every DateTime column is stored in."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
