from dataclasses import dataclass, field
from datetime import date
from typing import Optional, List, Dict, Any


@dataclass(frozen=True)
class PeriodAssignment:
    date: date
    period_name: str
    period_order: int

    def to_dict(self):
        return {
            "date": self.date,
            "period_name": self.period_name,
            "period_order": self.period_order,
        }


@dataclass
class ValidationReport:
    null_counts: Dict[str, int]
    transaction_id_collisions: int
    duplicate_date_billno_count: int
    zero_or_negative_count: int
    min_date: Optional[date]
    max_date: Optional[date]
    total: int = 0
    within_expected_window: Optional[bool] = None
    flagged_rows: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def null_total(self) -> int:
        return sum(self.null_counts.values())

    @property
    def has_warnings(self) -> bool:
        return bool(
            self.null_total
            or self.duplicate_date_billno_count
            or self.zero_or_negative_count
            or self.within_expected_window is False
        )

    def to_dict(self):
        return {
            "total": self.total,
            "null_counts": dict(self.null_counts),
            "transaction_id_collisions": self.transaction_id_collisions,
            "duplicate_date_billno_count": self.duplicate_date_billno_count,
            "zero_or_negative_count": self.zero_or_negative_count,
            "min_date": self.min_date.isoformat() if self.min_date else None,
            "max_date": self.max_date.isoformat() if self.max_date else None,
            "within_expected_window": self.within_expected_window,
            "flagged_rows": list(self.flagged_rows),
        }
