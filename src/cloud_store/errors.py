"""
Typed errors for the cloud store.

Each error carries the HTTP status code the protocol layer should answer with,
so callers above the accessor can translate failures without inspecting
messages.
"""

from typing import Optional

from botocore.exceptions import ClientError

# Error codes boto3 reports when an object or bucket is simply not there
NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}


class CloudStoreError(Exception):
    """Base exception for all cloud store errors."""
    status_code: int = 500

    def __init__(self, message: str = "", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class StorageError(CloudStoreError):
    """Raised when the object store fails for a reason other than absence."""
    status_code = 500


class NotFoundError(CloudStoreError):
    """Raised when an identifier or storage key does not exist."""
    status_code = 404


class BadRequestError(CloudStoreError):
    """Raised for malformed identifiers."""
    status_code = 400


class NotImplementedHttpError(CloudStoreError):
    """Raised for identifiers that collide with reserved key syntax."""
    status_code = 501


class UnsupportedMediaTypeError(CloudStoreError):
    """Raised when a representation or serialization format cannot be handled."""
    status_code = 415


class InternalServerError(CloudStoreError):
    """Raised for configuration or programming defects, never for client mistakes."""
    status_code = 500


def is_not_found(error: BaseException) -> bool:
    """Check whether a botocore error means the object or bucket is absent."""
    if not isinstance(error, ClientError):
        return False
    code = str(error.response.get("Error", {}).get("Code", ""))
    return code in NOT_FOUND_CODES
