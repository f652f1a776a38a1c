"""
Error types for cloudsync.

This module defines all exception types raised by the engine:
- CloudError: Base exception, carries a store-style numeric code
- StoreError: A remote schema store call failed
- StoreConnectionError: The remote store could not be reached
- InvalidFieldError: A field declaration is malformed
- RegistryFrozenError: Registration attempted after setup started

Invariants:
    - All errors inherit from CloudError
    - Codes follow the remote store's numbering so they can be
      surfaced to clients unchanged
    - Error messages are actionable
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Optional


class ErrorCode(IntEnum):
    """Error codes shared with the remote store."""

    OTHER_CAUSE = -1
    INTERNAL_SERVER_ERROR = 1
    CONNECTION_FAILED = 100
    OBJECT_NOT_FOUND = 101
    INVALID_CLASS_NAME = 103
    INVALID_JSON = 107
    INCORRECT_TYPE = 111
    SCRIPT_FAILED = 141
    INVALID_SCHEMA_OPERATION = 255


class CloudError(Exception):
    """Base exception for all cloudsync errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: int = ErrorCode.OTHER_CAUSE,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = int(code)
        self.details = details or {}


class StoreError(CloudError):
    """A schema store operation failed.

    Raised when:
    - The store rejects a class/field/index mutation
    - The master key lacks permission
    - A concurrent change conflicts with ours
    """

    def __init__(
        self,
        message: str,
        code: int = ErrorCode.OTHER_CAUSE,
        class_name: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            details={"class_name": class_name, "status_code": status_code},
        )
        self.class_name = class_name
        self.status_code = status_code


class StoreConnectionError(StoreError):
    """Failed to reach the schema store."""

    def __init__(self, message: str, address: Optional[str] = None) -> None:
        super().__init__(message, code=ErrorCode.CONNECTION_FAILED)
        self.details["address"] = address
        self.address = address


class InvalidFieldError(CloudError, ValueError):
    """A field declaration is invalid.

    Raised when:
    - The field type is not one of the supported kinds
    - A Pointer/Relation is missing its target class
    - A kind-specific option is used on the wrong kind
    """

    def __init__(self, message: str, field_name: Optional[str] = None) -> None:
        super().__init__(
            message,
            code=ErrorCode.INCORRECT_TYPE,
            details={"field": field_name},
        )
        self.field_name = field_name


class RegistryFrozenError(CloudError):
    """Registry is frozen and cannot be modified."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=ErrorCode.INVALID_SCHEMA_OPERATION)
