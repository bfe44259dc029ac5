# chat_relay/errors.py
"""
Error types raised while handling a chat request.

Every error carries the HTTP status it maps to and a short label that ends up
in the ``error`` field of the JSON body; the exception message becomes the
``details`` field for server errors.
"""


class RelayError(Exception):
    """Base class for all request-level failures."""
    status_code = 500
    error = "Failed to process chat message"


class MissingInput(RelayError):
    """Raised when a request carries neither a message nor a file."""
    status_code = 400
    error = "Message or file is required"


class InvalidHistory(RelayError):
    """Raised when the history field is not a JSON array."""
    status_code = 400
    error = "History must be a JSON array"


class UnsupportedFileType(RelayError):
    """Raised when an upload is neither audio nor PDF."""

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__(f"Only audio and PDF files are allowed (got {mime_type})")


class PayloadTooLarge(RelayError):
    """Raised when an upload exceeds the configured size ceiling."""

    def __init__(self, limit_bytes: int):
        self.limit_bytes = limit_bytes
        super().__init__(f"File too large (limit is {limit_bytes // (1024 * 1024)}MB)")


class IOFailure(RelayError):
    """Raised when an upload cannot be written to the staging directory."""
    pass


class UpstreamFailure(RelayError):
    """Raised when the Gemini call fails, including invalid credentials."""
    pass
