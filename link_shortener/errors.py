"""Exception hierarchy for the link shortener."""


class LinkShortenerError(Exception):
    """Base class for all link shortener errors."""


class ValidationError(LinkShortenerError, ValueError):
    """Malformed user input (URL or short code). Not retryable."""


class ConflictError(LinkShortenerError):
    """A short code is already taken."""

    def __init__(self, short_code: str, message: str = ""):
        self.short_code = short_code
        super().__init__(message or f"Short code '{short_code}' already exists")


class CodeAlreadyExistsError(ConflictError):
    """Raised by the store when an insert hits an existing short code."""


class CustomCodeTakenError(ConflictError):
    """Raised when a caller-supplied custom code is already in use."""

    def __init__(self, short_code: str):
        super().__init__(short_code, f"Custom code '{short_code}' already exists")


class AllocationExhaustedError(LinkShortenerError):
    """Every generated candidate collided within the attempt ceiling."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Failed to generate unique short code after {attempts} attempts")


class NotFoundError(LinkShortenerError):
    """Unknown short code."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' not found")


class StoreError(LinkShortenerError):
    """Underlying storage failure."""
