"""
Load Layer - Cleaned dataset export and multi-sheet Excel report.

Excel output:
1. Cleaned Sales sheet - the cleaned dataset
2. Period View sheet - date -> period_name, period_order
3. Period Summary / Weekday Weekend / Payment Mix / Monthly Trend /
   Monthly By Period / Post-Closure Weekly / Lag Effect sheets - period reports
4. Data Quality Report sheet - validation counts and flagged rows
5. Rejected Rows sheet - quarantined source rows
6. Audit Trail sheet - processing metadata
"""
from io import BytesIO
from typing import List, Dict, Any, Sequence

import pandas as pd
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter

from .schema import CleanedTransactionRecord, CLEANED_COLUMNS


def records_frame(records: Sequence[CleanedTransactionRecord]) -> pd.DataFrame:
    """Cleaned records as a DataFrame with the output column order and a nullable bill_no."""
    df = pd.DataFrame(list(records), columns=CLEANED_COLUMNS)
    df["bill_no"] = df["bill_no"].astype("Int64")
    return df


class UniversalLoader:
    """
    Exporter for the cleaned snapshot.
    Supported: 'csv', 'xlsx', 'txt'
    """

    def __init__(self):
        self.currency_format = '#,##0.00'
        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(start_color="2D5016", end_color="2D5016", fill_type="solid")
        self.warning_fill = PatternFill(start_color="FEE2E2", end_color="FEE2E2", fill_type="solid")
        self.success_fill = PatternFill(start_color="DCFCE7", end_color="DCFCE7", fill_type="solid")
        self.border = Border(bottom=Side(style='thin', color='DDDDDD'))

    def generate(self, records: Sequence[CleanedTransactionRecord], audit_data: Dict[str, Any],
                 target_format: str = "csv") -> BytesIO:
        if target_format == "csv":
            return self._generate_csv(records)
        elif target_format == "txt":
            return self._generate_text(audit_data)
        elif target_format == "xlsx":
            return self._generate_excel(records, audit_data)
        raise ValueError(f"Unsupported output format: {target_format}")

    def _generate_csv(self, records: Sequence[CleanedTransactionRecord]) -> BytesIO:
        output = BytesIO()
        records_frame(records).to_csv(output, index=False)
        output.seek(0)
        return output

    def _generate_excel(self, records: Sequence[CleanedTransactionRecord], audit_data: Dict[str, Any]) -> BytesIO:
        output = BytesIO()
        reports: Dict[str, pd.DataFrame] = audit_data.get("reports", {})

        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            # ════════════════════════════════════════════════════════════════
            # DATA SHEETS
            # ════════════════════════════════════════════════════════════════
            records_frame(records).to_excel(writer, sheet_name="Cleaned Sales", index=False)
            pd.DataFrame(audit_data.get("period_view", []),
                         columns=["date", "period_name", "period_order"]).to_excel(
                writer, sheet_name="Period View", index=False)

            for sheet_name, key in [("Period Summary", "period_summary"),
                                    ("Weekday Weekend", "weekday_weekend"),
                                    ("Payment Mix", "payment_mix"),
                                    ("Monthly Trend", "monthly_trend"),
                                    ("Monthly By Period", "monthly_by_period"),
                                    ("Post-Closure Weekly", "post_closure_weekly"),
                                    ("Lag Effect", "lag_effect")]:
                if key in reports:
                    reports[key].to_excel(writer, sheet_name=sheet_name, index=False)

            rejected = audit_data.get("rejected", [])
            pd.DataFrame(
                [{"row": r["row"], "field": r["field"], "reason": r["reason"], **r["data"]} for r in rejected],
                columns=["row", "field", "reason", "date_text", "bill_no", "sales_type",
                         "gross_amt", "gst_amt", "total_amt"],
            ).to_excel(writer, sheet_name="Rejected Rows", index=False)

            wb = writer.book
            for ws in wb.worksheets:
                self._style_header(ws)
                self._auto_width(ws)
                ws.freeze_panes = "A2"

            self._write_dq_sheet(wb.create_sheet("Data Quality Report"), audit_data.get("validation", {}))
            self._write_audit_sheet(wb.create_sheet("Audit Trail"), audit_data)

        output.seek(0)
        return output

    # ════════════════════════════════════════════════════════════════
    # DATA QUALITY REPORT
    # ════════════════════════════════════════════════════════════════

    def _write_dq_sheet(self, ws, validation: Dict[str, Any]) -> None:
        ws.cell(row=1, column=1, value="DATA QUALITY REPORT").font = Font(bold=True, size=14)
        ws.merge_cells('A1:D1')

        row = 3
        ws.cell(row=row, column=1, value="Summary Statistics").font = Font(bold=True, size=12)
        row += 1

        stat_items = [("Total Records", validation.get("total", 0))]
        for field, count in validation.get("null_counts", {}).items():
            stat_items.append((f"Missing {field}", count))
        stat_items += [
            ("transaction_id Collisions", validation.get("transaction_id_collisions", 0)),
            ("Duplicate (date, bill_no) Pairs", validation.get("duplicate_date_billno_count", 0)),
            ("Zero or Negative Amounts", validation.get("zero_or_negative_count", 0)),
            ("First Date", validation.get("min_date")),
            ("Last Date", validation.get("max_date")),
        ]

        for key, val in stat_items:
            ws.cell(row=row, column=1, value=key)
            c = ws.cell(row=row, column=2, value=val)
            if isinstance(val, int) and val > 0 and key != "Total Records":
                c.fill = self.warning_fill
            row += 1

        row += 1
        ws.cell(row=row, column=1, value="Flagged Rows Detail").font = Font(bold=True, size=12)
        row += 1

        flagged_rows: List[Dict[str, Any]] = validation.get("flagged_rows", [])
        if flagged_rows:
            flag_headers = ["transaction_id", "Date", "Bill No", "Total", "Flag Type", "Reason"]
            for col_idx, header in enumerate(flag_headers, 1):
                cell = ws.cell(row=row, column=col_idx, value=header)
                cell.font = self.header_font
                cell.fill = self.header_fill
            row += 1

            for flag in flagged_rows:
                ws.cell(row=row, column=1, value=flag.get("transaction_id"))
                ws.cell(row=row, column=2, value=flag.get("date"))
                ws.cell(row=row, column=3, value=flag.get("bill_no"))
                total = flag.get("total_amt")
                c = ws.cell(row=row, column=4, value=float(total) if total is not None else None)
                c.number_format = self.currency_format
                ws.cell(row=row, column=5, value=flag.get("flag_type", ""))
                ws.cell(row=row, column=6, value=flag.get("reason", ""))
                row += 1
        else:
            ws.cell(row=row, column=1, value="No flagged rows - all data passed quality checks").fill = self.success_fill

        self._auto_width(ws)

    def _write_audit_sheet(self, ws, audit_data: Dict[str, Any]) -> None:
        ws.cell(row=1, column=1, value="AUDIT TRAIL").font = Font(bold=True, size=14)

        uplift = audit_data.get("uplift", {})
        items = [
            ("Source File", audit_data.get("source_file")),
            ("Document Hash", audit_data.get("document_hash")),
            ("Processed At", audit_data.get("timestamp")),
            ("Processing Time (ms)", audit_data.get("processing_time_ms")),
            ("Source Rows", audit_data.get("source_rows")),
            ("Cleaned Rows", audit_data.get("total_rows")),
            ("Rejected Rows", audit_data.get("rejected_rows")),
            ("Parse Error Policy", audit_data.get("on_parse_error")),
            ("Closure Date", audit_data.get("closure_date")),
            ("Post-Closure End", audit_data.get("post_closure_end")),
        ] + [(key.replace('_', ' ').title(), val) for key, val in uplift.items()]

        for row, (key, val) in enumerate(items, 3):
            ws.cell(row=row, column=1, value=key).font = Font(bold=True)
            ws.cell(row=row, column=2, value=val)

        self._auto_width(ws)

    def _generate_text(self, audit_data: Dict[str, Any]) -> BytesIO:
        """Plain-text run summary"""
        output = BytesIO()
        validation = audit_data.get("validation", {})
        lines = [f"POS IMPACT RUN REPORT - {audit_data.get('timestamp')}\n", "=" * 50 + "\n\n"]

        lines.append(f"Source: {audit_data.get('source_file')}\n")
        lines.append(f"Rows: {audit_data.get('total_rows')} cleaned, {audit_data.get('rejected_rows', 0)} rejected\n")
        lines.append(f"Date range: {validation.get('min_date')} to {validation.get('max_date')}\n\n")

        lines.append("Data quality\n")
        for field, count in validation.get("null_counts", {}).items():
            lines.append(f"  missing {field:<12} {count:>8}\n")
        lines.append(f"  id collisions        {validation.get('transaction_id_collisions', 0):>8}\n")
        lines.append(f"  duplicate bills      {validation.get('duplicate_date_billno_count', 0):>8}\n")
        lines.append(f"  zero/negative        {validation.get('zero_or_negative_count', 0):>8}\n\n")

        summary = audit_data.get("reports", {}).get("period_summary")
        if summary is not None:
            lines.append("Average daily sales by period\n")
            for rec in summary.to_dict(orient="records"):
                lines.append(f"  {rec['period_name']:<14} {rec['mean_daily_sales']:>12.2f} over {rec['days']} days\n")

        output.write("".join(lines).encode('utf-8'))
        output.seek(0)
        return output

    def _style_header(self, ws) -> None:
        for cell in ws[1]:
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = Alignment(horizontal='center')
            cell.border = self.border

    def _auto_width(self, ws) -> None:
        """Auto-adjust column widths"""
        for col_idx, column in enumerate(ws.columns, 1):
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            ws.column_dimensions[get_column_letter(col_idx)].width = min(max_length + 4, 60)
