"""
Schema definitions for the reports cache pipeline.

Provides type-safe models for:
- Registry apps
- Aggregate buckets and cache documents
- Refresh windows and cycle context
"""

from .models import (
    App,
    AggregateBucket,
    CacheDocument,
    CycleContext,
    FullRebuildWindow,
    IncrementalWindow,
    ScopeTriple,
    TimePeriod,
)

__all__ = [
    "App",
    "AggregateBucket",
    "CacheDocument",
    "CycleContext",
    "FullRebuildWindow",
    "IncrementalWindow",
    "ScopeTriple",
    "TimePeriod",
]
