"""Tests for parsing, transaction_id assignment and the DQ engine"""
import logging
from datetime import date
from decimal import Decimal

import pytest

from pos_impact.etl.dq import DataQualityEngine
from pos_impact.etl.errors import ParseError, DuplicateKeyError
from pos_impact.etl.schema import CLEANED_COLUMNS
from pos_impact.etl.transform import SalesTransformer, check_unique_ids


# ─────────────────────────────────────────────────────────────
# Parsing & ordering
# ─────────────────────────────────────────────────────────────

def test_bills_on_same_date_numbered_by_bill_no(make_raw):
    rows = [make_raw("01-01-2024", 5, "100.00"), make_raw("01-01-2024", 3, "50.00")]
    records = SalesTransformer().parse(rows)

    assert [(r["bill_no"], r["transaction_id"]) for r in records] == [(3, 1), (5, 2)]
    assert records[0]["total_amt"] == Decimal("50.00")


def test_output_length_and_ids_are_one_to_n(make_raw):
    rows = [
        make_raw("15-03-2025", 2),
        make_raw("01-01-2024", 9),
        make_raw("02-01-2024", 1),
        make_raw("15-03-2025", 1),
        make_raw("01-01-2024", 9),
    ]
    records = SalesTransformer().parse(rows)

    assert len(records) == len(rows)
    assert sorted(r["transaction_id"] for r in records) == list(range(1, len(rows) + 1))


def test_ids_follow_date_then_bill_order(make_raw):
    rows = [
        make_raw("02-01-2024", 1),
        make_raw("01-01-2024", 9),
        make_raw("31-12-2023", 40),
        make_raw("01-01-2024", 2),
    ]
    records = sorted(SalesTransformer().parse(rows), key=lambda r: r["transaction_id"])

    for a, b in zip(records, records[1:]):
        assert a["date"] < b["date"] or (a["date"] == b["date"] and a["bill_no"] <= b["bill_no"])
    assert records[0]["date"] == date(2023, 12, 31)


def test_ties_keep_input_order(make_raw):
    rows = [
        make_raw("01-01-2024", 7, "20.00"),
        make_raw("01-01-2024", 1, "5.00"),
        make_raw("01-01-2024", 7, "10.00"),
    ]
    records = SalesTransformer().parse(rows)

    tied = [r for r in records if r["bill_no"] == 7]
    assert [r["total_amt"] for r in tied] == [Decimal("20.00"), Decimal("10.00")]
    assert [r["transaction_id"] for r in tied] == [2, 3]


def test_missing_bill_no_sorts_last_within_date(make_raw):
    rows = [make_raw("01-01-2024", None), make_raw("01-01-2024", 8), make_raw("02-01-2024", 1)]
    records = SalesTransformer().parse(rows)

    assert [r["bill_no"] for r in records] == [8, None, 1]


def test_parse_is_idempotent(make_raw):
    rows = [make_raw("03-02-2024", b % 4, f"{b}.50") for b in range(12)]
    transformer = SalesTransformer()

    assert transformer.parse(rows) == transformer.parse(rows)


def test_customer_name_is_dropped(make_raw):
    records = SalesTransformer().parse([make_raw("01-01-2024", 1, customer="Jane Doe")])

    assert list(records[0].keys()) == CLEANED_COLUMNS
    assert "Jane Doe" not in records[0].values()


def test_amounts_parse_to_decimal(make_raw):
    row = make_raw("01-01-2024", 1, total="1,234.50", gross="1,100.00", gst="134.50")
    record = SalesTransformer().parse([row])[0]

    assert record["total_amt"] == Decimal("1234.50")
    assert record["gross_amt"] == Decimal("1100.00")
    assert record["gst_amt"] == Decimal("134.50")


def test_blank_optional_fields_become_none(make_raw):
    row = make_raw("01-01-2024", 1, sales_type="  ", gst="")
    record = SalesTransformer().parse([row])[0]

    assert record["sales_type"] is None
    assert record["gst_amt"] is None


@pytest.mark.parametrize("date_text", ["2024-01-01", "01/01/2024", "31-02-2024", "1-1-24", None, ""])
def test_bad_date_fails_batch(make_raw, date_text):
    rows = [make_raw("01-01-2024", 1), make_raw(date_text, 2)]

    with pytest.raises(ParseError) as exc:
        SalesTransformer(on_parse_error="fail").parse(rows)

    assert exc.value.row == 2
    assert exc.value.field == "date_text"


@pytest.mark.parametrize("field,overrides", [
    ("total_amt", {"total": "abc", "gross": "1.00"}),
    ("gross_amt", {"total": "1.00", "gross": "12..5"}),
    ("gst_amt", {"total": "1.00", "gst": "NaN"}),
])
def test_bad_amount_raises_parse_error(make_raw, field, overrides):
    with pytest.raises(ParseError) as exc:
        SalesTransformer().parse([make_raw("01-01-2024", 1, **overrides)])

    assert exc.value.field == field


def test_bad_bill_no_raises_parse_error(make_raw):
    row = make_raw("01-01-2024", 1)
    row["bill_no"] = "12a"

    with pytest.raises(ParseError) as exc:
        SalesTransformer().parse([row])

    assert exc.value.field == "bill_no"


def test_header_error_message_has_no_row_number():
    err = ParseError(0, "TotAmt", None, "Missing source column 'TotAmt'")

    assert str(err) == "Header: Missing source column 'TotAmt'"
    assert str(ParseError(3, "bill_no", "12a")) == "Row 3: Cannot parse bill_no (value='12a')"


def test_quarantine_excludes_rows_before_numbering(make_raw):
    rows = [
        make_raw("02-01-2024", 1),
        make_raw("not a date", 2, customer="Jane Doe"),
        make_raw("01-01-2024", 3),
    ]
    transformer = SalesTransformer(on_parse_error="quarantine")
    records = transformer.parse(rows)

    assert [r["transaction_id"] for r in records] == [1, 2]
    assert [r["bill_no"] for r in records] == [3, 1]

    rejected = transformer.get_rejected()
    assert len(rejected) == 1
    assert rejected[0]["row"] == 2
    assert rejected[0]["field"] == "date_text"
    assert "customer_name" not in rejected[0]["data"]


def test_unknown_error_policy_rejected():
    with pytest.raises(ValueError):
        SalesTransformer(on_parse_error="ignore")


def test_colliding_ids_raise_duplicate_key_error():
    records = [
        {"date": date(2024, 1, 1), "transaction_id": 1},
        {"date": date(2024, 1, 1), "transaction_id": 2},
        {"date": date(2024, 1, 2), "transaction_id": 2},
    ]

    with pytest.raises(DuplicateKeyError) as exc:
        check_unique_ids(records)

    assert exc.value.colliding_ids == [2]


# ─────────────────────────────────────────────────────────────
# Data quality
# ─────────────────────────────────────────────────────────────

def test_duplicate_date_bill_reported_not_rejected(make_raw):
    rows = [make_raw("01-01-2024", 7), make_raw("01-01-2024", 7), make_raw("02-01-2024", 7)]
    records = SalesTransformer().parse(rows)
    report = DataQualityEngine().validate(records)

    assert len(records) == 3
    assert report.duplicate_date_billno_count == 1
    assert report.transaction_id_collisions == 0
    flags = [f for f in report.flagged_rows if f["flag_type"] == "DUPLICATE_BILL"]
    assert len(flags) == 1
    assert flags[0]["transaction_id"] == 2


def test_duplicate_pairs_counted_per_pair(make_raw):
    rows = [make_raw("01-01-2024", 7)] * 3 + [make_raw("01-01-2024", 8)] * 2
    report = DataQualityEngine().validate(SalesTransformer().parse(rows))

    assert report.duplicate_date_billno_count == 2


def test_negative_total_counted_and_kept(make_raw):
    rows = [make_raw("01-01-2024", 1, total="-10", gross="0"), make_raw("01-01-2024", 2)]
    records = SalesTransformer().parse(rows)
    report = DataQualityEngine().validate(records)

    assert len(records) == 2
    assert report.zero_or_negative_count == 1


def test_zero_or_negative_rules(make_raw):
    rows = [
        make_raw("01-01-2024", 1, total="0.00"),
        make_raw("01-01-2024", 2, total="10.00", gross="-1.00"),
        make_raw("01-01-2024", 3, total="10.00", gst="-0.50"),
        make_raw("01-01-2024", 4, total="-5.00", gross="-5.00"),
        make_raw("01-01-2024", 5, total="10.00", gross="0.00"),
    ]
    report = DataQualityEngine().validate(SalesTransformer().parse(rows))

    assert report.zero_or_negative_count == 4


def test_null_counts_per_field(make_raw):
    rows = [
        make_raw("01-01-2024", None, sales_type=""),
        make_raw("01-01-2024", 2, gst=""),
        make_raw("01-01-2024", 3),
    ]
    report = DataQualityEngine().validate(SalesTransformer().parse(rows))

    assert report.null_counts == {
        "date": 0, "bill_no": 1, "sales_type": 1,
        "gross_amt": 0, "gst_amt": 1, "total_amt": 0,
    }
    assert report.has_warnings


def test_date_range_and_coverage_window(make_raw):
    rows = [make_raw("05-06-2024", 1), make_raw("01-01-2024", 1), make_raw("28-02-2025", 1)]
    records = SalesTransformer().parse(rows)

    report = DataQualityEngine().validate(records)
    assert report.min_date == date(2024, 1, 1)
    assert report.max_date == date(2025, 2, 28)
    assert report.within_expected_window is None

    bounded = DataQualityEngine(date(2024, 1, 1), date(2024, 12, 31)).validate(records)
    assert bounded.within_expected_window is False


def test_clean_data_has_no_warnings(make_raw):
    report = DataQualityEngine().validate(SalesTransformer().parse([make_raw("01-01-2024", 1)]))

    assert not report.has_warnings
    assert report.flagged_rows == []


def test_validate_does_not_mutate(make_raw):
    records = SalesTransformer().parse([make_raw("01-01-2024", 7, total="-1")] * 2)
    snapshot = [dict(r) for r in records]

    DataQualityEngine().validate(records)

    assert records == snapshot


def test_empty_set_report():
    report = DataQualityEngine().validate([])

    assert report.total == 0
    assert report.min_date is None and report.max_date is None
    assert report.to_dict()["min_date"] is None


def test_anomalies_logged_as_warnings(make_raw, caplog):
    records = SalesTransformer().parse([make_raw("01-01-2024", 7)] * 2)

    with caplog.at_level(logging.WARNING):
        DataQualityEngine().validate(records)

    assert any("duplicate (date, bill_no)" in r.message for r in caplog.records)
