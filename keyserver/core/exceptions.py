class KeyServerError(Exception):
    """Base exception for the key server."""
    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)

# --- Not Found Errors (404) ---
class EntityNotFoundError(KeyServerError):
    """Base for Not Found errors."""
    pass

class AccessKeyNotFoundError(EntityNotFoundError):
    def __init__(self, message: str = "Key not found"):
        super().__init__(message)

# --- Already Exists Errors (409) ---
class EntityAlreadyExistsError(KeyServerError):
    pass

class DuplicateKeyError(EntityAlreadyExistsError):
    def __init__(self, key_id: str = None, message: str = None):
        if message is None:
            message = f"Key ID {key_id} already exists" if key_id else "Key ID already exists"
        super().__init__(message)

# --- Invalid Input Errors (400) ---
class InvalidInputError(KeyServerError):
    pass

class MissingFieldError(InvalidInputError):
    def __init__(self, field: str, message: str = None):
        if message is None:
            message = f"{field} is required"
        super().__init__(message)

class InvalidDurationError(InvalidInputError):
    def __init__(self, hours=None, message: str = None):
        if message is None:
            message = "Hours must be a positive number"
        super().__init__(message)

class InvalidTimestampError(InvalidInputError):
    def __init__(self, value=None, message: str = None):
        if message is None:
            message = f"Invalid expiry timestamp: {value!r}" if value is not None else "Invalid expiry timestamp"
        super().__init__(message)

# --- Authentication Errors (401) ---
class AuthError(KeyServerError):
    pass

class InvalidCredentialsError(AuthError):
    def __init__(self, message: str = "Invalid password"):
        super().__init__(message)

class UnauthenticatedError(AuthError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)

class SessionExpiredError(UnauthenticatedError):
    def __init__(self, message: str = "Session expired"):
        super().__init__(message)

# --- System Errors (500) ---
class StoreFailureError(KeyServerError):
    def __init__(self, operation: str, original_error: str = ""):
        self.operation = operation
        self.original_error = original_error
        super().__init__(f"Store failure during {operation}: {original_error}")
