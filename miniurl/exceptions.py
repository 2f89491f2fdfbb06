"""Error taxonomy for miniurl.

Routes translate these into HTTP responses; short code collisions are not
exceptions at all (see ``miniurl.enums.InsertStatus``) and never leave the
allocator.
"""

__all__ = [
    "MiniURLError",
    "InvalidURLError",
    "AllocationExhaustedError",
    "StorageError",
    "ShortCodeNotFoundError",
]


class MiniURLError(Exception):
    """Base exception for all application-specific errors."""

    error_code = "app:miniurl_error"


class InvalidURLError(MiniURLError):
    """Raised when a submitted destination URL is malformed or not http(s)."""

    error_code = "input:invalid_url"


class AllocationExhaustedError(MiniURLError):
    """Raised when every allocation attempt collided with an existing code."""

    error_code = "allocation:exhausted"

    def __init__(self, attempts: int):
        super().__init__(f"Failed to generate unique short code after {attempts} attempts")
        self.attempts = attempts


class StorageError(MiniURLError):
    """Raised when the store fails for any reason other than a short code collision."""

    error_code = "storage:failure"


class ShortCodeNotFoundError(MiniURLError):
    """Raised when a short code does not exist in the store."""

    error_code = "lookup:not_found"

    def __init__(self, short_code: str):
        super().__init__(f"Short code not found: {short_code}")
        self.short_code = short_code
