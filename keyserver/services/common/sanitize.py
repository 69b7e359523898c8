import re
from keyserver.core.constants import USER_ID_MAX_LENGTH

_UNSAFE_CHARS = re.compile(r"[<>\"']")

def sanitize_input(value) -> str:
    """Strip markup-significant characters, trim, and cap the length."""
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return ""
    return _UNSAFE_CHARS.sub("", value).strip()[:USER_ID_MAX_LENGTH]
