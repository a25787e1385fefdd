"""
Core framework components for async refresh services.

Provides base classes and abstractions for building long-running,
observable services.
"""

from .service import AsyncService
from .config import ServiceConfig
from .metrics import MetricsCollector

__all__ = [
    "AsyncService",
    "ServiceConfig",
    "MetricsCollector",
]
