"""Tideline — Alert Ranker."""

from collections import Counter

from backend.models import AlertPriority, VesselAlert

MAX_ALERTS = 25

PRIORITY_RANK = {
    AlertPriority.CRITICAL: 0,
    AlertPriority.HIGH: 1,
    AlertPriority.MEDIUM: 2,
    AlertPriority.LOW: 3,
}


def rank_alerts(alerts: list[VesselAlert], limit: int = MAX_ALERTS) -> list[VesselAlert]:
    """Most urgent first, nearest first within a priority; truncated to ``limit``.

    The id tie-break makes the order total, so identical inputs always
    produce the same list.
    """
    ranked = sorted(alerts, key=lambda a: (PRIORITY_RANK[a.priority], a.distance_km, a.id))
    return ranked[:limit]


def summarize_alerts(alerts: list[VesselAlert]) -> dict:
    """Counts per priority and per zone for status displays."""
    by_priority = Counter(a.priority.value for a in alerts)
    by_zone = Counter(a.zone.name for a in alerts)
    return {
        "total": len(alerts),
        "by_priority": {p.value: by_priority.get(p.value, 0) for p in PRIORITY_RANK},
        "by_zone": dict(by_zone.most_common()),
        "approaching": sum(1 for a in alerts if a.approach),
    }
