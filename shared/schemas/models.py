"""
Data models for the reports cache pipeline.

Defines the registry, aggregate and cache document structures used
by the refresh engine, plus the window and cycle values passed
through each refresh pass.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Union

from shared.utils.errors import ValidationError


# 2017-02-20 UTC predates every stored transaction, so a full rebuild from here
# covers all history. Used only as the full-rebuild start.
FULL_REBUILD_ANCHOR = int(datetime(2017, 2, 20, tzinfo=timezone.utc).timestamp())

INITIALIZED_MARKER_ID = "initialized:initialized"


class TimePeriod(str, Enum):
    """Bucket granularity; each period has its own cache database."""
    HOUR = "hour"
    DAY = "day"
    MONTH = "month"


TIME_PERIODS: List[TimePeriod] = [TimePeriod.HOUR, TimePeriod.DAY, TimePeriod.MONTH]


@dataclass(frozen=True)
class App:
    """Registry entry for one application and its partners."""
    app_id: str
    partner_ids: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_doc(cls, doc: Mapping[str, Any]) -> "App":
        """Validate a registry document into an App."""
        app_id = doc.get("appId")
        if not isinstance(app_id, str) or not app_id:
            raise ValidationError(
                "Registry document has no usable appId",
                field="appId",
                value=app_id,
                details={"doc_id": doc.get("_id")},
            )

        partner_ids = doc.get("partnerIds", {})
        if not isinstance(partner_ids, Mapping):
            raise ValidationError(
                f"Registry document for {app_id} has malformed partnerIds",
                field="partnerIds",
                value=partner_ids,
                details={"doc_id": doc.get("_id")},
            )

        return cls(app_id=app_id, partner_ids=dict(partner_ids))

    @property
    def partners(self) -> List[str]:
        """Partner ids in registry key order."""
        return list(self.partner_ids.keys())


@dataclass
class AggregateBucket:
    """One aggregation unit produced by the analytics collaborator."""
    iso_date: str
    start: int
    usd_value: Union[Decimal, float, int]
    num_txs: int
    currency_codes: List[str] = field(default_factory=list)
    currency_pairs: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AggregateBucket":
        """Build from the camelCase shape used on the wire."""
        return cls(
            iso_date=data["isoDate"],
            start=data["start"],
            usd_value=data["usdValue"],
            num_txs=data["numTxs"],
            currency_codes=data.get("currencyCodes", []),
            currency_pairs=data.get("currencyPairs", []),
        )


@dataclass
class CacheDocument:
    """Persisted cache entry for one (app, partner, bucket)."""
    doc_id: str
    timestamp: int
    usd_value: Union[Decimal, float, int]
    num_txs: int
    currency_codes: List[str] = field(default_factory=list)
    currency_pairs: List[str] = field(default_factory=list)
    rev: Optional[str] = None

    @staticmethod
    def make_id(app_id: str, partner_id: str, iso_date: str) -> str:
        """Identity key shared by every cycle that covers the bucket."""
        return f"{app_id}_{partner_id}:{iso_date}"

    def to_doc(self) -> Dict[str, Any]:
        """Convert to the stored document shape."""
        doc: Dict[str, Any] = {"_id": self.doc_id}
        if self.rev is not None:
            doc["_rev"] = self.rev
        doc.update({
            "timestamp": self.timestamp,
            "usdValue": float(self.usd_value) if isinstance(self.usd_value, Decimal) else self.usd_value,
            "numTxs": self.num_txs,
            "currencyCodes": self.currency_codes,
            "currencyPairs": self.currency_pairs,
        })
        return doc


@dataclass(frozen=True)
class IncrementalWindow:
    """Rolling window: trailing lookback months plus the current month."""
    start: int
    end: float

    reconcile_revisions: ClassVar[bool] = True
    kind: ClassVar[str] = "incremental"


@dataclass(frozen=True)
class FullRebuildWindow:
    """Whole-history window used until the initialization marker exists."""
    end: float

    reconcile_revisions: ClassVar[bool] = False
    kind: ClassVar[str] = "full_rebuild"

    @property
    def start(self) -> int:
        return FULL_REBUILD_ANCHOR


RefreshWindow = Union[IncrementalWindow, FullRebuildWindow]


@dataclass(frozen=True)
class CycleContext:
    """Immutable per-cycle values built once the window is known."""
    cycle_id: str
    window: RefreshWindow
    started_at: float

    def to_log(self) -> Dict[str, Any]:
        return {
            "cycle_id": self.cycle_id,
            "window": self.window.kind,
            "start": self.window.start,
            "end": self.window.end,
        }


@dataclass(frozen=True)
class ScopeTriple:
    """One unit of refresh work."""
    app_id: str
    partner_id: str
    period: TimePeriod
