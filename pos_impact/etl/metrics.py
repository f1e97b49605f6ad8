"""
Period Metrics - Descriptive, diagnostic and causal statistics per period.

Every report is built from the cleaned records joined to the period view on
date. Transactions are counted as records; distinct bill numbers are
reported alongside because duplicate (date, bill_no) pairs make the two
differ.
"""
from datetime import date, timedelta
from typing import Dict, Any, List, Mapping, Optional, Sequence

import pandas as pd

from .config import Config
from .models import PeriodAssignment
from .period import PRE_CLOSURE, POST_CLOSURE, POST_OPENING
from .schema import CleanedTransactionRecord, CLEANED_COLUMNS


PAYMENT_TYPES = ["CASH", "CARD", "SPLIT"]
WEEKEND_DAYS = {5, 6}  # Saturday, Sunday


def _to_float(val: Any) -> float:
    return float(val) if val is not None else float("nan")


def _round(val: Optional[float], digits: int = 2) -> Optional[float]:
    if val is None or pd.isna(val):
        return None
    return round(float(val), digits)


class PeriodMetrics:
    """
    pandas-backed period reports over one cleaned snapshot.

    Usage:
        metrics = PeriodMetrics(records, classifier.classify_all(dates))
        metrics.period_summary()
    """

    def __init__(self, records: Sequence[CleanedTransactionRecord],
                 period_view: Mapping[date, PeriodAssignment],
                 closure_date: Optional[date] = None):
        self.closure_date = closure_date or Config.CLOSURE_DATE
        self.sales = self._build_frame(records, period_view)

    def _build_frame(self, records: Sequence[CleanedTransactionRecord],
                     period_view: Mapping[date, PeriodAssignment]) -> pd.DataFrame:
        df = pd.DataFrame(list(records), columns=CLEANED_COLUMNS)
        df["period_name"] = [period_view[d].period_name for d in df["date"]]
        df["period_order"] = pd.Series([period_view[d].period_order for d in df["date"]], dtype="int64")
        df["date"] = pd.to_datetime(df["date"])
        for col in ("gross_amt", "gst_amt", "total_amt"):
            df[col] = df[col].map(_to_float).astype(float)
        return df

    # ─────────────────────────────────────────────────────────────
    # Descriptive
    # ─────────────────────────────────────────────────────────────

    def transaction_value_summary(self) -> Dict[str, Optional[float]]:
        totals = self.sales["total_amt"]
        return {
            "avg_transaction_value": _round(totals.mean()),
            "min_transaction_value": _round(totals.min()),
            "max_transaction_value": _round(totals.max()),
        }

    def daily_sales(self) -> pd.DataFrame:
        daily = self.sales.groupby(["date", "period_name", "period_order"], as_index=False).agg(
            daily_sales=("total_amt", "sum"),
            daily_transactions=("transaction_id", "count"),
            distinct_bills=("bill_no", "nunique"),
            avg_bill_value=("total_amt", "mean"),
        )
        daily["day_type"] = daily["date"].dt.dayofweek.map(
            lambda d: "Weekend" if d in WEEKEND_DAYS else "Weekday"
        )
        return daily.sort_values("date").reset_index(drop=True)

    def monthly_trend(self) -> pd.DataFrame:
        df = self.sales.assign(month=self.sales["date"].dt.to_period("M").dt.to_timestamp())
        return df.groupby("month", as_index=False).agg(
            total_sales=("total_amt", "sum"),
            transaction_count=("transaction_id", "count"),
        )

    def period_summary(self) -> pd.DataFrame:
        summary = self.daily_sales().groupby(["period_order", "period_name"], as_index=False).agg(
            days=("date", "count"),
            mean_daily_sales=("daily_sales", "mean"),
            median_daily_sales=("daily_sales", "median"),
            stddev_daily_sales=("daily_sales", "std"),
            min_daily_sales=("daily_sales", "min"),
            max_daily_sales=("daily_sales", "max"),
            avg_daily_transactions=("daily_transactions", "mean"),
            avg_bill_value=("avg_bill_value", "mean"),
        )
        columns = ["period_name", "period_order"] + [
            c for c in summary.columns if c not in ("period_name", "period_order")
        ]
        return summary.sort_values("period_order")[columns].reset_index(drop=True)

    def monthly_period_summary(self) -> pd.DataFrame:
        df = self.sales.assign(month=self.sales["date"].dt.to_period("M"))
        monthly = df.groupby(["month", "period_name", "period_order"], as_index=False).agg(
            monthly_sales=("total_amt", "sum"),
            monthly_transactions=("transaction_id", "count"),
        )
        result = monthly.groupby(["period_order", "period_name"], as_index=False).agg(
            avg_monthly_sales=("monthly_sales", "mean"),
            avg_monthly_transactions=("monthly_transactions", "mean"),
        )
        return result[["period_name", "period_order", "avg_monthly_sales", "avg_monthly_transactions"]]

    # ─────────────────────────────────────────────────────────────
    # Diagnostic
    # ─────────────────────────────────────────────────────────────

    def weekday_weekend_split(self) -> pd.DataFrame:
        result = self.daily_sales().groupby(["period_order", "period_name", "day_type"], as_index=False).agg(
            avg_daily_transactions=("distinct_bills", "mean"),
            avg_daily_sales=("daily_sales", "mean"),
            avg_bill_value=("avg_bill_value", "mean"),
        )
        return result[["period_name", "period_order", "day_type",
                       "avg_daily_transactions", "avg_daily_sales", "avg_bill_value"]]

    def payment_mix(self) -> pd.DataFrame:
        rows: List[Dict[str, Any]] = []
        for (order, name), group in self.sales.groupby(["period_order", "period_name"]):
            total = len(group)
            row = {"period_name": name, "period_order": order}
            for sales_type in PAYMENT_TYPES:
                share = 100.0 * int((group["sales_type"] == sales_type).sum()) / total
                row[f"{sales_type.lower()}_pct"] = round(share, 2)
            rows.append(row)
        columns = ["period_name", "period_order"] + [f"{t.lower()}_pct" for t in PAYMENT_TYPES]
        return pd.DataFrame(rows, columns=columns)

    def post_closure_weekly(self) -> pd.DataFrame:
        daily = self.daily_sales()
        daily = daily[daily["period_name"] == POST_CLOSURE].copy()
        anchor = pd.Timestamp(self.closure_date - timedelta(days=1))
        daily["week_number"] = (daily["date"] - anchor).dt.days // 7 + 1
        return daily.groupby("week_number", as_index=False).agg(
            avg_daily_sales=("daily_sales", "mean"),
            total_weekly_sales=("daily_sales", "sum"),
        )

    # ─────────────────────────────────────────────────────────────
    # Causal
    # ─────────────────────────────────────────────────────────────

    def lag_effect(self, baseline_start: Optional[date] = None,
                   window_end: Optional[date] = None) -> pd.DataFrame:
        """
        Daily uplift against the pre-closure baseline for the days right after the closure.

        Args:
            baseline_start: First day of the baseline (baseline ends the day before closure)
            window_end: Exclusive end of the observed post-closure window
        """
        baseline_start = pd.Timestamp(baseline_start or Config.BASELINE_START)
        window_end = pd.Timestamp(window_end or Config.LAG_WINDOW_END)
        closure = pd.Timestamp(self.closure_date)

        daily = self.daily_sales()
        in_baseline = (daily["date"] >= baseline_start) & (daily["date"] < closure)
        baseline_avg = daily.loc[in_baseline, "daily_sales"].mean()

        post = daily[(daily["date"] >= closure) & (daily["date"] < window_end)].copy()
        post["baseline_avg"] = baseline_avg
        post["uplift_amount"] = post["daily_sales"] - baseline_avg
        post["above_baseline_flag"] = (post["daily_sales"] > baseline_avg).astype(int)
        return post[["period_name", "date", "daily_sales", "baseline_avg",
                     "uplift_amount", "above_baseline_flag"]].reset_index(drop=True)

    def uplift_retention(self) -> Dict[str, Optional[float]]:
        """
        How much of the uplift captured after the closure survived the new opening.

        retention_percent = (post_opening - pre_closure) / (post_closure - pre_closure) * 100
        """
        averages = self.period_summary().set_index("period_name")["mean_daily_sales"]
        pre = averages.get(PRE_CLOSURE)
        post_closure = averages.get(POST_CLOSURE)
        post_opening = averages.get(POST_OPENING)

        captured = post_closure - pre if pre is not None and post_closure is not None else None
        lost = post_closure - post_opening if post_closure is not None and post_opening is not None else None
        retention = None
        if captured and post_opening is not None:
            retention = (post_opening - pre) / captured * 100.0

        return {
            "pre_closure_avg_daily_sales": _round(pre),
            "post_closure_avg_daily_sales": _round(post_closure),
            "post_opening_avg_daily_sales": _round(post_opening),
            "uplift_captured_post_closure_avg": _round(captured),
            "uplift_lost_post_opening_avg": _round(lost),
            "retention_percent_post_opening_avg": _round(retention),
        }
