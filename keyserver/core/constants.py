# --- Admin Session ---
ADMIN_SESSION_COOKIE = "admin_session"
ADMIN_SESSION_HEADER = "X-Admin-Session"
SESSION_TOKEN_BYTES = 32  # 256 bits

# --- Access Keys ---
KEY_CREATED_BY_API = "api"
KEY_CREATE_MAX_ATTEMPTS = 3
USER_ID_MAX_LENGTH = 255
RECENT_KEYS_WINDOW_HOURS = 24

# --- Wire codes (kept in bodies alongside the HTTP status) ---
CODE_OK = 200
CODE_GONE = 410
CODE_NOT_FOUND = 404

# --- Messages ---
MSG_BIND_OK = "Binding is ok, you can now use it normally."
MSG_BIND_EXPIRED = "Binding failed, key has expired."
MSG_BIND_NOT_FOUND = "Binding failed, key not found."
