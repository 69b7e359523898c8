# keyserver/models/access_key.py
from sqlalchemy import Column, Integer, String, DateTime, Enum
from keyserver.core.clock import utcnow
from keyserver.core.constants import KEY_CREATED_BY_API
from keyserver.core.database import Base
from keyserver.core.enums import KeyStatus

class AccessKey(Base):
    __tablename__ = "access_keys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key_id = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)  # not unique: one user owns many keys

    # Naive UTC timestamps, see keyserver.core.clock
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
    last_accessed_at = Column(DateTime, nullable=True)

    usage_count = Column(Integer, default=0, nullable=False)
    status = Column(
        Enum(KeyStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        default=KeyStatus.ACTIVE,
        nullable=False,
    )

    ip_address = Column(String(64), nullable=True)  # informational only
    created_by = Column(String(32), default=KEY_CREATED_BY_API, nullable=False)

    def is_valid(self, now) -> bool:
        return self.status == KeyStatus.ACTIVE and self.expires_at > now
