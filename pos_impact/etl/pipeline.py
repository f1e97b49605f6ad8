"""
ETL Pipeline Orchestrator - Coordinates Extract, Parse, Validate, Classify, Metrics and Load.

Flow: Extract → Parse → DQ → Period Classification → Metrics → Load

Parse errors are resolved (fail or quarantine) before transaction_id
assignment, so a failed batch never produces partially numbered output.
"""
import logging
import time
from datetime import date, datetime
from typing import Dict, Any, Iterator, Optional, Sequence, Tuple

from .config import Config
from .dq import DataQualityEngine
from .extract import ParserFactory
from .load import UniversalLoader
from .metrics import PeriodMetrics
from .period import PeriodClassifier
from .schema import RawTransactionRecord, PipelineResult
from .transform import SalesTransformer


class ETLPipeline:
    """
    Batch pipeline for one POS export. Each run builds a fresh snapshot.
    """

    def __init__(self, closure_date: Optional[date] = None, post_closure_end: Optional[date] = None,
                 on_parse_error: Optional[str] = None):
        self.on_parse_error = on_parse_error or Config.ON_PARSE_ERROR
        self.transformer = SalesTransformer(on_parse_error=self.on_parse_error)
        self.dq_engine = DataQualityEngine(Config.EXPECTED_START, Config.EXPECTED_END)
        self.classifier = PeriodClassifier(closure_date, post_closure_end)
        self.loader = UniversalLoader()

    def run(self, raw_records: Sequence[RawTransactionRecord]) -> Dict[str, Any]:
        """
        Clean, validate and label an in-memory batch.

        Raises:
            ParseError: unparseable field under the 'fail' policy
            DuplicateKeyError: transaction_id collision
        """
        records = self.transformer.parse(raw_records)
        rejected = self.transformer.get_rejected()
        report = self.dq_engine.validate(records)

        period_view = self.classifier.classify_all(rec["date"] for rec in records)
        logging.info(f"Classified {len(period_view)} distinct dates")

        return {
            "records": records,
            "rejected": rejected,
            "validation": report,
            "period_view": period_view,
            "metrics": PeriodMetrics(records, period_view, self.classifier.closure_date),
        }

    def process(self, file_path: str, file_type: str, target_format: str = "csv") -> Iterator[Tuple[int, str, Optional[PipelineResult]]]:
        """
        Process a file through the complete ETL pipeline.
        Yields (percentage, message, result_dict)
        """
        start_time = time.time()

        try:
            # ─── 1. Extract (0-20%) ───
            yield 10, "Reading sales export...", None
            parser = ParserFactory.get_parser(file_type)
            raw_data = parser.parse(file_path)
            yield 20, f"Read {len(raw_data['rows'])} rows.", None

            # ─── 2-4. Parse, Validate, Classify (20-60%) ───
            yield 25, "Parsing and numbering transactions...", None
            batch = self.run(raw_data["rows"])
            records = batch["records"]
            report = batch["validation"]
            yield 60, f"Cleaned {len(records)} records, {len(batch['rejected'])} rejected.", None

            # ─── 5. Period Metrics (60-80%) ───
            yield 65, "Computing period metrics...", None
            metrics: PeriodMetrics = batch["metrics"]
            reports = {
                "period_summary": metrics.period_summary(),
                "weekday_weekend": metrics.weekday_weekend_split(),
                "payment_mix": metrics.payment_mix(),
                "monthly_trend": metrics.monthly_trend(),
                "monthly_by_period": metrics.monthly_period_summary(),
                "post_closure_weekly": metrics.post_closure_weekly(),
                "lag_effect": metrics.lag_effect(),
            }
            uplift = metrics.uplift_retention()
            yield 80, "Metrics Complete.", None

            # ─── Audit Data ───
            processing_time = (time.time() - start_time) * 1000
            boundaries = self.classifier.get_boundaries()

            audit_data = {
                "document_hash": raw_data.get("document_hash"),
                "source_file": raw_data.get("source_file"),
                "processing_time_ms": processing_time,
                "source_rows": len(raw_data["rows"]),
                "total_rows": len(records),
                "rejected_rows": len(batch["rejected"]),
                "rejected": batch["rejected"],
                "on_parse_error": self.on_parse_error,
                "closure_date": boundaries["closure_date"].isoformat(),
                "post_closure_end": boundaries["post_closure_end"].isoformat(),
                "validation": report.to_dict(),
                "period_view": [a.to_dict() for a in batch["period_view"].values()],
                "reports": reports,
                "uplift": uplift,
                "timestamp": datetime.now().isoformat(),
            }

            yield 85, "Preparing output...", None
            output_buffer = self.loader.generate(records, audit_data, target_format)
            yield 95, "Finalizing...", None

            yield 100, "Done", {
                "success": True,
                "output_buffer": output_buffer,
                "records": records,
                "stats": audit_data,
                "validation": report,
            }

        except Exception as e:
            logging.exception("PIPELINE_ERROR")
            yield 0, f"Error: {str(e)}", {
                "success": False,
                "error": str(e),
                "error_type": type(e).__name__,
                "stats": {}
            }
