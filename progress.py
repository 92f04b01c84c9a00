"""
Route progress derivation.

Progress is never stored; it is computed from the visit statuses of a
route's stops whenever a route is serialized or queried.
"""
import math
from collections import Counter

from statuses import VisitStatus


def round_half_up(value):
    return int(math.floor(value + 0.5))


def compute_progress(statuses):
    """
    Summarize an iterable of visit statuses.

    ``progress`` counts collected and skipped stops as processed. A route
    with no stops reports 0% and is considered complete.
    """
    counts = Counter(VisitStatus(s) for s in statuses)
    total = sum(counts.values())
    collected = counts[VisitStatus.COLLECTED]
    skipped = counts[VisitStatus.SKIPPED]
    processed = collected + skipped

    return {
        "progress": round_half_up(100 * processed / total) if total else 0,
        "totalBins": total,
        "collectedBins": collected,
        "pendingBins": counts[VisitStatus.PENDING],
        "skippedBins": skipped,
        "isComplete": processed == total,
    }
