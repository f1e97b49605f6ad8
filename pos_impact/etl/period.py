"""
PeriodClassifier - Labels each calendar date with its competitor-event window.

Windows (default boundaries from Config):
- Pre-Closure:  date <  closure_date
- Post-Closure: closure_date <= date <= post_closure_end
- Post-Opening: date >  post_closure_end

Both boundary days belong to Post-Closure. The three windows partition the
calendar, so every date has exactly one label.
"""
from datetime import date
from typing import Dict, Iterable, List, Optional

from .config import Config
from .models import PeriodAssignment


PRE_CLOSURE = "Pre-Closure"
POST_CLOSURE = "Post-Closure"
POST_OPENING = "Post-Opening"

# Chronological order; index + 1 is the period_order
PERIOD_NAMES = [PRE_CLOSURE, POST_CLOSURE, POST_OPENING]


class PeriodClassifier:
    """
    Pure, memoised date -> period lookup.

    Usage:
        classifier = PeriodClassifier()
        classifier.classify(date(2025, 4, 1)).period_name
        # Returns: "Post-Closure"
    """

    def __init__(self, closure_date: Optional[date] = None, post_closure_end: Optional[date] = None):
        self.closure_date = closure_date or Config.CLOSURE_DATE
        self.post_closure_end = post_closure_end or Config.POST_CLOSURE_END
        if self.closure_date > self.post_closure_end:
            raise ValueError(
                f"closure_date {self.closure_date} is after post_closure_end {self.post_closure_end}"
            )
        self._cache: Dict[date, PeriodAssignment] = {}

    def classify(self, day: date) -> PeriodAssignment:
        cached = self._cache.get(day)
        if cached is not None:
            return cached

        if day < self.closure_date:
            name = PRE_CLOSURE
        elif day <= self.post_closure_end:
            name = POST_CLOSURE
        else:
            name = POST_OPENING

        assignment = PeriodAssignment(day, name, PERIOD_NAMES.index(name) + 1)
        self._cache[day] = assignment
        return assignment

    def classify_all(self, dates: Iterable[date]) -> Dict[date, PeriodAssignment]:
        """
        Classify each distinct date once.

        Returns:
            Dict keyed by date in ascending order - the period view used as a
            join key by every period-scoped report.
        """
        return {day: self.classify(day) for day in sorted(set(dates))}

    def get_boundaries(self) -> Dict[str, date]:
        """Return current boundaries for transparency/audit."""
        return {
            "closure_date": self.closure_date,
            "post_closure_end": self.post_closure_end,
        }

    def period_view(self, dates: Iterable[date]) -> List[Dict]:
        return [a.to_dict() for a in self.classify_all(dates).values()]
