# keyserver/schemas/access_key.py
from datetime import datetime
from typing import Optional, Union
from pydantic import BaseModel, Field, ConfigDict, AliasChoices

from keyserver.core.enums import KeyStatus
from keyserver.schemas.common import UtcDateTime

# --- Persistence payloads ---
class AccessKeyCreate(BaseModel):
    key_id: str
    user_id: str
    created_at: datetime
    expires_at: datetime
    ip_address: Optional[str] = None
    created_by: str = "api"

class AccessKeyUpdate(BaseModel):
    status: Optional[KeyStatus] = None
    expires_at: Optional[datetime] = None

# --- Computed views ---
class TimeRemaining(BaseModel):
    expired: bool
    remaining: int  # milliseconds
    hours: int
    minutes: int
    formatted: str

class KeyDetails(BaseModel):
    """A stored key plus its computed validity; validity is never persisted."""
    key_id: str
    user_id: str
    valid: bool
    status: KeyStatus
    created_at: UtcDateTime
    expires_at: UtcDateTime
    time_remaining: TimeRemaining
    usage_count: int
    last_accessed: Optional[UtcDateTime] = None

    model_config = ConfigDict(use_enum_values=True)

# --- Requests ---
class KeyCreateRequest(BaseModel):
    # user_id / hours are optional here so a missing field is a 400 from the service, not a 422
    user_id: Optional[Union[str, int]] = Field(default=None, validation_alias=AliasChoices("user_id", "userId"))
    hours: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("hours", "duration_hours", "durationHours")
    )

class KeyActiveUpdate(BaseModel):
    active: bool

class KeyExpiryUpdate(BaseModel):
    expiry: Optional[str] = Field(default=None, validation_alias=AliasChoices("expiry", "expires_at"))

# --- Responses ---
class KeyCreateData(BaseModel):
    key_id: str
    user_id: str
    expires_at: UtcDateTime
    valid_for_hours: float

class KeyCreateResponse(BaseModel):
    msg: str = "Key created successfully"
    code: int = 200
    data: KeyCreateData

class KeyValidateResponse(BaseModel):
    valid: bool
    key_id: str
    user_id: str
    status: str
    created_at: UtcDateTime
    expires_at: UtcDateTime
    time_remaining: TimeRemaining
    usage_count: int
    code: int

class KeyInfoResponse(BaseModel):
    msg: str
    code: int
    data: KeyDetails

class UserKeysResponse(BaseModel):
    msg: str
    code: int = 200
    user_id: str
    keys: list[KeyDetails]

class KeyUpdateResponse(BaseModel):
    msg: str
    code: int = 200
    data: KeyDetails

class KeyDeleteResponse(BaseModel):
    msg: str = "Key deleted successfully"
    code: int = 200
    key_id: str

class BlockUserResponse(BaseModel):
    msg: str
    code: int = 200
    user_id: str
    blocked_keys: int
