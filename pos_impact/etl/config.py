"""
ETL Configuration - Period boundaries, error policy and output locations.

Every setting has a default and can be overridden through the environment,
so a refresh with different event dates needs no code change.
"""
import os
from datetime import date, datetime
from typing import Optional


ERROR_POLICIES = ["fail", "quarantine"]


def _env_date(name: str, default: Optional[str]) -> Optional[date]:
    value = os.environ.get(name, default)
    if value is None or value.strip() == "":
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}")


def _env_policy(name: str, default: str) -> str:
    value = os.environ.get(name, default).strip().lower()
    if value not in ERROR_POLICIES:
        raise ValueError(f"{name} must be one of {ERROR_POLICIES}, got {value!r}")
    return value


class Config:
    SOURCE_DATE_FORMAT = "%d-%m-%Y"

    # Competitor closed on CLOSURE_DATE; a new competitor opened the day after POST_CLOSURE_END.
    CLOSURE_DATE = _env_date("POS_CLOSURE_DATE", "2025-04-01")
    POST_CLOSURE_END = _env_date("POS_POST_CLOSURE_END", "2025-07-31")

    # Lag analysis: baseline is [BASELINE_START, CLOSURE_DATE), window is [CLOSURE_DATE, LAG_WINDOW_END)
    BASELINE_START = _env_date("POS_BASELINE_START", "2025-01-01")
    LAG_WINDOW_END = _env_date("POS_LAG_WINDOW_END", "2025-05-31")

    # Optional coverage sanity window for the validation report
    EXPECTED_START = _env_date("POS_EXPECTED_START", None)
    EXPECTED_END = _env_date("POS_EXPECTED_END", None)

    ON_PARSE_ERROR = _env_policy("POS_ON_PARSE_ERROR", "fail")

    OUTPUT_FOLDER = os.environ.get("POS_OUTPUT_FOLDER", "outputs")
    LOG_FILE = os.environ.get("LOG_FILE", "pos_impact.log")
    ALLOWED_EXTENSIONS = {'csv', 'xlsx'}
