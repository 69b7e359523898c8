# keyserver/models/__init__.py
from .access_key import AccessKey
from keyserver.core.database import Base


# Exposed so create_all sees every table
__all__ = [
    "Base",
    "AccessKey",
]
