"""Typed results produced by the conflict engine and slot enumerator."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ConflictType(str, Enum):
    """Closed set of conflict sources"""

    AVAILABILITY = "availability"
    BOOKING = "booking"
    EXCEPTION = "exception"


class ConflictSeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class AvailabilityConflict:
    """One reason a proposed interval cannot be booked."""

    conflict_type: ConflictType
    conflict_with: str
    reason: str
    severity: ConflictSeverity = ConflictSeverity.HIGH
    reference_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.conflict_type.value,
            "conflict_with": self.conflict_with,
            "reason": self.reason,
            "severity": self.severity.value,
            "reference_id": self.reference_id,
        }


@dataclass(frozen=True)
class TimeSlot:
    """A candidate interval, free or occupied."""

    start: datetime
    end: datetime
    available: bool = True
    conflict_reason: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "available": self.available,
            "conflict_reason": self.conflict_reason,
        }


@dataclass(frozen=True)
class ConflictVerdict:
    """Aggregated result of a conflict check."""

    conflicts: List[AvailabilityConflict] = field(default_factory=list)
    suggested_times: List[TimeSlot] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def first_reason(self) -> Optional[str]:
        return self.conflicts[0].reason if self.conflicts else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_conflicts": self.has_conflicts,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "suggested_times": [s.to_dict() for s in self.suggested_times],
        }
