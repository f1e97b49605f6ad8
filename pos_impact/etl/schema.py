"""
Sales Schema - Strict TypedDicts for the deterministic POS ETL pipeline.

Raw rows keep the source values as text; cleaned rows carry canonical types.
CustomerName is read from the source but never appears in a cleaned or
rejected row.
"""
from datetime import date
from decimal import Decimal
from io import BytesIO
from typing import TypedDict, Dict, Any, Optional, List

from .models import ValidationReport


# Source header -> raw record key
SOURCE_COLUMNS = {
    "Date": "date_text",
    "Bill No": "bill_no",
    "CustomerName": "customer_name",
    "SalesType": "sales_type",
    "GrossAmt": "gross_amt",
    "GST Amt": "gst_amt",
    "TotAmt": "total_amt",
}

# Column order of the cleaned dataset
CLEANED_COLUMNS = [
    "date",
    "transaction_id",
    "bill_no",
    "sales_type",
    "gross_amt",
    "gst_amt",
    "total_amt",
]

# Fields checked for missing values by the DQ engine
REQUIRED_FIELDS = ["date", "bill_no", "sales_type", "gross_amt", "gst_amt", "total_amt"]


class RawTransactionRecord(TypedDict):
    """One POS line item as exported by the till"""
    date_text: Optional[str]      # DD-MM-YYYY
    bill_no: Optional[str]        # Store-assigned, not unique across dates
    customer_name: Optional[str]  # Dropped during parsing
    sales_type: Optional[str]     # CASH | CARD | SPLIT (free text)
    gross_amt: Optional[str]
    gst_amt: Optional[str]
    total_amt: Optional[str]


class CleanedTransactionRecord(TypedDict):
    """Validated record - single source of truth for every report."""
    date: date
    transaction_id: int           # 1-based rank over (date, bill_no)
    bill_no: Optional[int]
    sales_type: Optional[str]
    gross_amt: Optional[Decimal]
    gst_amt: Optional[Decimal]
    total_amt: Optional[Decimal]


class RejectedRecord(TypedDict):
    """Quarantined raw row (customer_name removed)"""
    row: int                      # 1-based position in the source
    field: str
    reason: str
    data: Dict[str, Any]


class ExtractionPayload(TypedDict):
    """Output from Extract layer"""
    document_hash: str            # SHA256 for idempotency
    rows: List[RawTransactionRecord]
    source_file: str


class PipelineResult(TypedDict, total=False):
    """
    Final frame yielded by ETLPipeline.process.
    Success carries output_buffer/records/stats/validation; failure carries error/error_type.
    """
    success: bool
    output_buffer: BytesIO        # Rendered csv / xlsx / txt
    records: List[CleanedTransactionRecord]
    stats: Dict[str, Any]         # Audit data: counts, validation dict, period view, reports
    validation: ValidationReport
    error: str
    error_type: str               # Exception class name
