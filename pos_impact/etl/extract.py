import hashlib
import logging
from abc import ABC, abstractmethod
from typing import List, Dict, Any

import pandas as pd

from .errors import ParseError
from .schema import SOURCE_COLUMNS, ExtractionPayload, RawTransactionRecord


# CustomerName may be absent from an anonymised export
OPTIONAL_SOURCE_COLUMNS = {"CustomerName"}


class BaseParser(ABC):
    @abstractmethod
    def read_frame(self, file_path: str) -> pd.DataFrame:
        pass

    def parse(self, file_path: str) -> ExtractionPayload:
        """
        Returns the raw payload:
        {
            "document_hash": "...",
            "rows": [{"date_text": "01-01-2024", "bill_no": "5", ...}, ...],
            "source_file": "..."
        }

        Every value stays text; typing happens in the transform layer.
        """
        file_hash = self.get_file_hash(file_path)
        logging.info(f"Extracting sales export: {file_path}")

        df = self.read_frame(file_path)
        df.columns = [str(c).strip() for c in df.columns]
        self._check_columns(df.columns.tolist())

        rows = [self._to_raw_record(row) for row in df.to_dict(orient="records")]
        logging.info(f"Extracted {len(rows)} rows ({file_hash[:12]})")

        return {
            "document_hash": file_hash,
            "rows": rows,
            "source_file": file_path
        }

    def get_file_hash(self, file_path: str) -> str:
        sha256_hash = hashlib.sha256()
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
        return sha256_hash.hexdigest()

    def _check_columns(self, columns: List[str]) -> None:
        for header in SOURCE_COLUMNS:
            if header not in columns and header not in OPTIONAL_SOURCE_COLUMNS:
                raise ParseError(0, header, None, f"Missing source column '{header}'")

    def _to_raw_record(self, row: Dict[str, Any]) -> RawTransactionRecord:
        record = {}
        for header, key in SOURCE_COLUMNS.items():
            value = row.get(header)
            if value is None or pd.isna(value):
                record[key] = None
                continue
            text = str(value).strip()
            record[key] = text if text else None
        return record


class CSVParser(BaseParser):
    def read_frame(self, file_path: str) -> pd.DataFrame:
        return pd.read_csv(file_path, dtype=str, keep_default_na=False)


class ExcelParser(BaseParser):
    def read_frame(self, file_path: str) -> pd.DataFrame:
        return pd.read_excel(file_path, dtype=str, keep_default_na=False, engine="openpyxl")


class ParserFactory:
    @staticmethod
    def get_parser(file_type: str) -> BaseParser:
        ft = file_type.lower().lstrip('.')
        if ft == 'csv':
            return CSVParser()
        elif ft == 'xlsx':
            return ExcelParser()
        else:
            raise ValueError(f"Unsupported file type: {file_type}")
