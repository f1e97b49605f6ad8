"""
ETL Errors - Fatal conditions raised by the ingestion layer.

Data-quality anomalies are NOT errors; they are reported by the DQ engine.
"""
from typing import Any, List, Optional


class PosImpactError(Exception):
    """Base class for all pipeline errors."""


class ParseError(PosImpactError):
    """A raw field could not be converted to its canonical type."""

    def __init__(self, row: int, field: str, value: Any, reason: Optional[str] = None):
        self.row = row
        self.field = field
        self.value = value
        self.reason = reason or f"Cannot parse {field}"
        if row == 0:
            # Row 0 is the header line
            super().__init__(f"Header: {self.reason}")
        else:
            super().__init__(f"Row {row}: {self.reason} (value={value!r})")


class DuplicateKeyError(PosImpactError):
    """transaction_id assigned to more than one record. Indicates an ingestion bug."""

    def __init__(self, colliding_ids: List[int]):
        self.colliding_ids = sorted(colliding_ids)
        super().__init__(f"transaction_id collision for ids: {self.colliding_ids}")
