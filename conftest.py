"""Shared fixtures for the ETL tests"""
import pytest


SOURCE_HEADER = "Date,Bill No,CustomerName,SalesType,GrossAmt,GST Amt,TotAmt"


def raw_row(date_text, bill_no, total="100.00", sales_type="CASH", gross=None, gst=None, customer="Walk-in"):
    """Raw record as produced by the extract layer (all text)."""
    if gross is None:
        gross = total
    if gst is None:
        gst = "0.00"
    return {
        "date_text": date_text,
        "bill_no": None if bill_no is None else str(bill_no),
        "customer_name": customer,
        "sales_type": sales_type,
        "gross_amt": gross,
        "gst_amt": gst,
        "total_amt": total,
    }


@pytest.fixture
def make_raw():
    return raw_row


@pytest.fixture
def write_csv(tmp_path):
    def _write(lines, name="sales.csv"):
        path = tmp_path / name
        path.write_text("\n".join([SOURCE_HEADER] + list(lines)) + "\n", encoding="utf-8")
        return str(path)
    return _write
