"""Aggregate statistics over cart contents."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .models import CartEntry


@dataclass(frozen=True)
class AggregateStats:
    """Derived cart totals."""

    item_count: int
    total_hours: int


def compute_totals(entries: Sequence[CartEntry]) -> AggregateStats:
    """Count entries and sum their hours."""
    return AggregateStats(item_count=len(entries), total_hours=sum(entry.hours for entry in entries))
