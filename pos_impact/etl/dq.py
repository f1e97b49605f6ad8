"""
Data Quality Engine - Read-only checks over the cleaned sales set.

Checks (all independent, none blocking):
- NULLS: missing values per required field
- ID_COLLISION: transaction_id held by more than one record (ingestion bug)
- DUPLICATE_BILL: (date, bill_no) held by more than one record
- NON_POSITIVE_AMOUNT: total_amt <= 0, gross_amt < 0 or gst_amt < 0
- COVERAGE: min/max date against the expected window

Anomalies are surfaced for manual review; records are never repaired or removed.
"""
import logging
from collections import Counter
from datetime import date
from typing import List, Dict, Any, Optional, Sequence

from .models import ValidationReport
from .schema import CleanedTransactionRecord, REQUIRED_FIELDS


class DataQualityEngine:
    """
    Deterministic rule-based validation for the cleaned dataset.
    """

    def __init__(self, expected_start: Optional[date] = None, expected_end: Optional[date] = None):
        self.expected_start = expected_start
        self.expected_end = expected_end
        self.flagged_rows: List[Dict[str, Any]] = []

    def validate(self, records: Sequence[CleanedTransactionRecord]) -> ValidationReport:
        self.flagged_rows = []

        null_counts = self._count_nulls(records)
        collisions = self._count_id_collisions(records)
        duplicate_pairs = self._count_duplicate_bills(records)
        non_positive = self._count_non_positive(records)

        dates = [rec["date"] for rec in records if rec.get("date") is not None]
        min_date = min(dates) if dates else None
        max_date = max(dates) if dates else None

        report = ValidationReport(
            null_counts=null_counts,
            transaction_id_collisions=collisions,
            duplicate_date_billno_count=duplicate_pairs,
            zero_or_negative_count=non_positive,
            min_date=min_date,
            max_date=max_date,
            total=len(records),
            within_expected_window=self._check_coverage(min_date, max_date),
            flagged_rows=list(self.flagged_rows),
        )
        self._log_report(report)
        return report

    # ─────────────────────────────────────────────────────────────
    # Checks
    # ─────────────────────────────────────────────────────────────

    def _count_nulls(self, records: Sequence[CleanedTransactionRecord]) -> Dict[str, int]:
        counts = {field: 0 for field in REQUIRED_FIELDS}
        for rec in records:
            missing = [field for field in REQUIRED_FIELDS if rec.get(field) is None]
            for field in missing:
                counts[field] += 1
            if missing:
                self._add_flag(rec, "MISSING_VALUE", f"Missing {', '.join(missing)}")
        return counts

    def _count_id_collisions(self, records: Sequence[CleanedTransactionRecord]) -> int:
        counts = Counter(rec.get("transaction_id") for rec in records)
        return sum(1 for n in counts.values() if n > 1)

    def _count_duplicate_bills(self, records: Sequence[CleanedTransactionRecord]) -> int:
        first_seen: Dict[tuple, int] = {}
        counts: Counter = Counter()
        for rec in records:
            # Missing bill numbers on the same date group together, as in SQL GROUP BY
            key = (rec.get("date"), rec.get("bill_no"))
            counts[key] += 1
            if key in first_seen:
                self._add_flag(rec, "DUPLICATE_BILL",
                               f"Same date and bill as transaction {first_seen[key]}")
            else:
                first_seen[key] = rec.get("transaction_id")
        return sum(1 for n in counts.values() if n > 1)

    def _count_non_positive(self, records: Sequence[CleanedTransactionRecord]) -> int:
        count = 0
        for rec in records:
            reasons = []
            total, gross, gst = rec.get("total_amt"), rec.get("gross_amt"), rec.get("gst_amt")
            if total is not None and total <= 0:
                reasons.append("total_amt <= 0")
            if gross is not None and gross < 0:
                reasons.append("gross_amt < 0")
            if gst is not None and gst < 0:
                reasons.append("gst_amt < 0")
            if reasons:
                count += 1
                self._add_flag(rec, "NON_POSITIVE_AMOUNT", "; ".join(reasons))
        return count

    def _check_coverage(self, min_date: Optional[date], max_date: Optional[date]) -> Optional[bool]:
        if self.expected_start is None and self.expected_end is None:
            return None
        if min_date is None:
            return False
        if self.expected_start is not None and min_date < self.expected_start:
            return False
        if self.expected_end is not None and max_date > self.expected_end:
            return False
        return True

    def _add_flag(self, rec: CleanedTransactionRecord, flag_type: str, reason: str) -> None:
        self.flagged_rows.append({
            "transaction_id": rec.get("transaction_id"),
            "date": rec.get("date"),
            "bill_no": rec.get("bill_no"),
            "total_amt": rec.get("total_amt"),
            "flag_type": flag_type,
            "reason": reason
        })

    def _log_report(self, report: ValidationReport) -> None:
        logging.info(f"Validated {report.total} records, date range {report.min_date} to {report.max_date}")
        if report.null_total:
            logging.warning(f"Missing values: {report.null_counts}")
        if report.duplicate_date_billno_count:
            logging.warning(f"{report.duplicate_date_billno_count} duplicate (date, bill_no) pairs")
        if report.zero_or_negative_count:
            logging.warning(f"{report.zero_or_negative_count} records with zero or negative amounts")
        if report.within_expected_window is False:
            logging.warning(f"Date range outside expected window {self.expected_start} to {self.expected_end}")
        if report.transaction_id_collisions:
            logging.error(f"{report.transaction_id_collisions} transaction_id collisions")
