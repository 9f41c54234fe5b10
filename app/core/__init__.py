"""
Core module initialization.
Exports configuration, logging utilities and application exceptions.
"""

from app.core.config import get_settings, Settings, EnvironmentMode, StorageBackend
from app.core.exceptions import (
    AppError,
    FieldError,
    NotFoundError,
    SessionClosedError,
    ValidationError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "StorageBackend",
    "AppError",
    "FieldError",
    "NotFoundError",
    "SessionClosedError",
    "ValidationError",
]
