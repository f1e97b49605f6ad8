"""
Transform Layer - Deterministic parsing and surrogate key assignment.

This module implements:
1. Field parsing (DD-MM-YYYY dates, integer bill numbers, decimal amounts)
2. Parse error policy (fail the batch or quarantine the row)
3. Stable sort by (date, bill_no) and 1-based transaction_id assignment
4. Surrogate key uniqueness check
"""
import logging
import re
from collections import Counter
from datetime import datetime, date
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Any, Optional, Sequence, Tuple

from .config import Config, ERROR_POLICIES
from .errors import ParseError, DuplicateKeyError
from .schema import CleanedTransactionRecord, RawTransactionRecord, RejectedRecord


class SalesTransformer:
    """
    Deterministic transformer for POS line items.
    Same input always yields the same transaction_id for the same logical record.
    """

    def __init__(self, date_format: str = Config.SOURCE_DATE_FORMAT,
                 on_parse_error: str = Config.ON_PARSE_ERROR):
        if on_parse_error not in ERROR_POLICIES:
            raise ValueError(f"on_parse_error must be one of {ERROR_POLICIES}, got {on_parse_error!r}")
        self.date_format = date_format
        self.on_parse_error = on_parse_error
        self.date_pattern = re.compile(r'^\d{1,2}-\d{1,2}-\d{4}$')
        self.rejected: List[RejectedRecord] = []

    def parse(self, raw_records: Sequence[RawTransactionRecord]) -> List[CleanedTransactionRecord]:
        """
        Main entry point: raw rows -> cleaned, numbered rows.

        Args:
            raw_records: Rows from the extract layer, in source order

        Returns:
            Cleaned records ordered by transaction_id

        Raises:
            ParseError: a field is unparseable and the policy is 'fail'
            DuplicateKeyError: transaction_id assignment produced a collision
        """
        self.rejected = []
        parsed: List[Dict[str, Any]] = []

        # Quarantined rows must be gone before the global sort
        for idx, raw in enumerate(raw_records):
            row_num = idx + 1
            try:
                parsed.append(self._parse_row(raw, row_num))
            except ParseError as e:
                if self.on_parse_error == "fail":
                    logging.error(f"Batch aborted: {e}")
                    raise
                self._quarantine(raw, e)

        if self.rejected:
            logging.warning(f"Quarantined {len(self.rejected)} of {len(raw_records)} rows")

        records = assign_transaction_ids(parsed)
        check_unique_ids(records)
        logging.info(f"Parsed {len(records)} records")
        return records

    def get_rejected(self) -> List[RejectedRecord]:
        return list(self.rejected)

    # ─────────────────────────────────────────────────────────────
    # Field Parsing
    # ─────────────────────────────────────────────────────────────

    def _parse_row(self, raw: RawTransactionRecord, row_num: int) -> Dict[str, Any]:
        # customer_name is deliberately not read
        return {
            "date": self._parse_date(raw.get("date_text"), row_num),
            "bill_no": self._parse_bill_no(raw.get("bill_no"), row_num),
            "sales_type": self._clean_text(raw.get("sales_type")),
            "gross_amt": self._parse_amount(raw.get("gross_amt"), "gross_amt", row_num),
            "gst_amt": self._parse_amount(raw.get("gst_amt"), "gst_amt", row_num),
            "total_amt": self._parse_amount(raw.get("total_amt"), "total_amt", row_num),
        }

    def _parse_date(self, val: Optional[str], row_num: int) -> date:
        text = self._clean_text(val)
        if text is None:
            raise ParseError(row_num, "date_text", val, "Missing date")
        if not self.date_pattern.match(text):
            raise ParseError(row_num, "date_text", val, "Date is not DD-MM-YYYY")
        try:
            return datetime.strptime(text, self.date_format).date()
        except ValueError:
            raise ParseError(row_num, "date_text", val, "Invalid calendar date")

    def _parse_bill_no(self, val: Optional[str], row_num: int) -> Optional[int]:
        text = self._clean_text(val)
        if text is None:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise ParseError(row_num, "bill_no", val, "Bill number is not an integer")
        if not number.is_finite() or number != number.to_integral_value():
            raise ParseError(row_num, "bill_no", val, "Bill number is not an integer")
        return int(number)

    def _parse_amount(self, val: Optional[str], field: str, row_num: int) -> Optional[Decimal]:
        text = self._clean_text(val)
        if text is None:
            return None
        try:
            amount = Decimal(text.replace(',', ''))
        except InvalidOperation:
            raise ParseError(row_num, field, val, f"{field} is not a decimal amount")
        if not amount.is_finite():
            raise ParseError(row_num, field, val, f"{field} is not a decimal amount")
        return amount

    def _clean_text(self, val: Any) -> Optional[str]:
        if val is None:
            return None
        text = str(val).strip()
        return text if text else None

    def _quarantine(self, raw: RawTransactionRecord, error: ParseError) -> None:
        data = {k: v for k, v in raw.items() if k != "customer_name"}
        self.rejected.append({
            "row": error.row,
            "field": error.field,
            "reason": error.reason,
            "data": data
        })
        logging.warning(f"Quarantined row {error.row}: {error.reason}")


# ─────────────────────────────────────────────────────────────
# Ordering & Surrogate Keys
# ─────────────────────────────────────────────────────────────

def sort_key(record: Dict[str, Any]) -> Tuple[date, bool, int]:
    """(date, bill_no) ascending; missing bill numbers sort last within a date."""
    bill_no = record.get("bill_no")
    return (record["date"], bill_no is None, bill_no if bill_no is not None else 0)


def assign_transaction_ids(parsed: Sequence[Dict[str, Any]]) -> List[CleanedTransactionRecord]:
    """
    Stable sort then rank. Ties on (date, bill_no) keep their input order,
    which fixes which record receives the lower id.
    """
    ordered = sorted(parsed, key=sort_key)
    return [
        {
            "date": rec["date"],
            "transaction_id": rank,
            "bill_no": rec["bill_no"],
            "sales_type": rec["sales_type"],
            "gross_amt": rec["gross_amt"],
            "gst_amt": rec["gst_amt"],
            "total_amt": rec["total_amt"],
        }
        for rank, rec in enumerate(ordered, 1)
    ]


def check_unique_ids(records: Sequence[CleanedTransactionRecord]) -> None:
    counts = Counter(rec["transaction_id"] for rec in records)
    colliding = [tx_id for tx_id, n in counts.items() if n > 1]
    if colliding:
        raise DuplicateKeyError(colliding)
