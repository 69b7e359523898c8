from datetime import datetime
from typing import Annotated
from pydantic import PlainSerializer, WithJsonSchema

# Naive UTC datetime serialized like JavaScript's toISOString()
# e.g. datetime(2026, 1, 1, 12) -> "2026-01-01T12:00:00.000Z"
UtcDateTime = Annotated[
    datetime,
    PlainSerializer(
        lambda x: x.isoformat(timespec="milliseconds") + "Z" if x is not None else None,
        return_type=str,
    ),
    WithJsonSchema({"type": "string", "format": "date-time"})
]
