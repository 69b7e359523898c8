from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]

def utcnow() -> datetime:
    """Naive UTC now; every timestamp in the key table is stored naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def get_clock() -> Clock:
    # FastAPI dependency; tests override it to move time forward
    return utcnow
