"""Filtering and grouping helpers behind the dashboard and analytics pages.

Everything here works on the in-memory list returned by
``QuotationRepository.list()`` and never touches the database, so the same
inputs always give the same outputs.
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from quote_tracker import STATUS_FILTER_ALL, Quotation


def _display_key(value: str) -> str:
    return value[:1].upper() + value[1:]


def matches_query(quotation: Quotation, query: str) -> bool:
    """Return True when ``query`` occurs in the client, item or SL number."""

    if not query:
        return True
    needle = query.lower()
    return (
        needle in quotation.client.lower()
        or needle in quotation.item.lower()
        or needle in str(quotation.sl_number).lower()
    )


def filter_quotations(
    quotations: Iterable[Quotation], query: str = "", status: str = STATUS_FILTER_ALL
) -> List[Quotation]:
    """Apply the list view search box and status selector.

    The input order is kept as-is; the store already returns the newest
    quotations first.
    """

    filtered = [q for q in quotations if matches_query(q, query)]
    if status != STATUS_FILTER_ALL:
        filtered = [q for q in filtered if q.status == status]
    return filtered


def status_counts(quotations: Iterable[Quotation]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for quotation in quotations:
        key = _display_key(quotation.status)
        counts[key] = counts.get(key, 0) + 1
    return counts


def source_counts(quotations: Iterable[Quotation]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for quotation in quotations:
        key = _display_key(quotation.source.replace("_", " "))
        counts[key] = counts.get(key, 0) + 1
    return counts


def monthly_trend(quotations: Iterable[Quotation]) -> Dict[str, int]:
    """Count quotations per short month name.

    The year is not part of the bucket, so January 2023 and January 2024
    share the ``"Jan"`` bucket.
    """

    counts: Dict[str, int] = {}
    for quotation in quotations:
        month = quotation.date.strftime("%b")
        counts[month] = counts.get(month, 0) + 1
    return counts


def top_clients(quotations: Iterable[Quotation], limit: int = 5) -> List[Tuple[str, int]]:
    """Return ``(client, count)`` pairs for the busiest clients.

    Client names are compared exactly. Ties keep the order in which the
    clients were first seen.
    """

    counts = Counter(q.client for q in quotations)
    ranked = sorted(counts.items(), key=lambda pair: pair[1], reverse=True)
    return ranked[:limit]


@dataclass(frozen=True)
class DashboardStats:
    total_quotations: int
    pending_quotations: int
    confirmed_quotations: int
    total_purchase_orders: int
    conversion_rate: int


def dashboard_stats(
    quotations: Sequence[Quotation], purchase_order_count: int = 0
) -> DashboardStats:
    total = len(quotations)
    pending = sum(1 for q in quotations if q.status == "pending")
    confirmed = sum(1 for q in quotations if q.status == "confirmed")
    conversion = (confirmed / total) * 100 if total > 0 else 0.0
    return DashboardStats(
        total_quotations=total,
        pending_quotations=pending,
        confirmed_quotations=confirmed,
        total_purchase_orders=purchase_order_count,
        conversion_rate=int(math.floor(conversion + 0.5)),
    )


__all__ = [
    "DashboardStats",
    "dashboard_stats",
    "filter_quotations",
    "matches_query",
    "monthly_trend",
    "source_counts",
    "status_counts",
    "top_clients",
]
