import hmac
import secrets
import uuid
from typing import Iterable

from keyserver.core import constants

def generate_key_id() -> str:
    # uuid4 draws 122 bits from os.urandom; clients match keys on the UUID format
    return str(uuid.uuid4())

def generate_session_token() -> str:
    return secrets.token_hex(constants.SESSION_TOKEN_BYTES)

def verify_admin_password(supplied: str, candidates: Iterable[str]) -> bool:
    """
    Constant-time membership test of `supplied` against every configured password.
    Every candidate is compared so timing does not reveal which one matched.
    """
    supplied_bytes = supplied.encode("utf-8")
    matched = False
    for candidate in candidates:
        if hmac.compare_digest(supplied_bytes, candidate.encode("utf-8")):
            matched = True
    return matched
