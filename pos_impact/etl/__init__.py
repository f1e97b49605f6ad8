"""
ETL Package - Deterministic POS sales cleaning and period labelling

Modules:
- extract: CSV/XLSX reading into raw text rows
- transform: Field parsing, stable ordering and transaction_id assignment
- dq: Data Quality validation report
- period: Competitor-event period classifier
- metrics: Period-scoped sales statistics
- load: CSV / Excel / text export
- pipeline: Main orchestrator
- schema: TypedDict definitions
"""
from .errors import PosImpactError, ParseError, DuplicateKeyError
from .models import PeriodAssignment, ValidationReport
from .period import PeriodClassifier
from .pipeline import ETLPipeline
from .schema import RawTransactionRecord, CleanedTransactionRecord, PipelineResult

__all__ = [
    'ETLPipeline',
    'PeriodClassifier',
    'PeriodAssignment',
    'ValidationReport',
    'RawTransactionRecord',
    'CleanedTransactionRecord',
    'PipelineResult',
    'PosImpactError',
    'ParseError',
    'DuplicateKeyError',
]
