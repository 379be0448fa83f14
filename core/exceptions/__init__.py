"""
Waitly – centralised custom exceptions.

Import these from `core.exceptions` across the project instead of redefining
ad-hoc `Exception` subclasses in each app.
"""

from __future__ import annotations

from .custom_exceptions import (
    APIException,
    ConcurrencyConflictException,
    InvalidDataException,
    InvalidOperationException,
    PermissionDeniedException,
    ResourceNotFoundException,
)

__all__ = [
    "APIException",
    "ConcurrencyConflictException",
    "InvalidDataException",
    "InvalidOperationException",
    "PermissionDeniedException",
    "ResourceNotFoundException",
]
