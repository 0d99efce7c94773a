# src/hrtpk/helpers.py
from collections import defaultdict
from typing import Iterable, Sequence

from .types import Analyte, DoseEvent


def sort_events(events: Iterable[DoseEvent]) -> list[DoseEvent]:
    """Events by time; ties keep their input order."""
    return sorted(events, key=lambda e: e.time_h)


def split_events_by_analyte(events: Sequence[DoseEvent]) -> dict[Analyte, list[DoseEvent]]:
    """
    Group events by the analyte they raise (E2 pool vs CPA pool).
    Input order is preserved inside each group.
    """
    buckets: dict[Analyte, list[DoseEvent]] = defaultdict(list)
    for e in events:
        buckets[e.ester.analyte].append(e)
    return dict(buckets)
