"""
Utility modules for the reports cache services.

Provides common utilities for:
- Structured logging
- Error handling
"""

from .logging import setup_logging
from .errors import DataProcessingError, ValidationError, StorageError, DocumentNotFoundError

__all__ = [
    "setup_logging",
    "DataProcessingError",
    "ValidationError",
    "StorageError",
    "DocumentNotFoundError",
]
