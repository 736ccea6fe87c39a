"""Custom exception classes for the Collector.

Each class carries the ``message_code`` and HTTP status reported to the
producer in the JSON error body.
"""

from fastapi import status


class CollectorError(Exception):
    """
    Base exception class for all per-request collector failures.
    """
    message_code = "ErrorSlug"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message_text: str = ""):
        super().__init__(message_text)
        self.message_text = message_text


class ValidationError(CollectorError):
    """
    Raised when request metadata is missing or inconsistent.
    """
    message_code = "ValidationError"
    status_code = status.HTTP_400_BAD_REQUEST


class MethodNotAllowedError(ValidationError):
    """
    Raised when the upload endpoint is called with a method other than POST.
    """
    message_code = "MethodNotAllowed"


class MissingHeaderError(ValidationError):
    """
    Raised when a required protocol header is absent or empty.
    """

    def __init__(self, header: str, message_code: str):
        super().__init__(f"Missing required header {header}")
        self.header = header
        self.message_code = message_code


class CountingError(ValidationError):
    """
    Raised when CURRENT_FILE_COUNTER is inconsistent with TOTAL_FILE_COUNT.
    """
    message_code = "CountingError"


class DecodeError(ValidationError):
    """
    Raised when the request body cannot be decompressed.
    """
    message_code = "DecodeError"


class ChecksumFailError(CollectorError):
    """
    Raised when the body fingerprint does not match the checksum header.
    """
    message_code = "ChecksumFail"


class ParseError(CollectorError):
    """
    Raised when the body is not a valid chunk envelope.
    """
    message_code = "ParseError"


class StorageError(CollectorError):
    """
    Raised when a chunk cannot be persisted.
    """
    message_code = "ErrorSlug"
