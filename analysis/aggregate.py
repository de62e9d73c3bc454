"""
Aggregations over capacity records.

Handles:
- Totals across the fixed energy-source enumeration
- Component-wise and total differences between two records
- Sign classification of a delta (positive / negative / zero)
- Per-source share of the total

All functions iterate ENERGY_SOURCES in order and coerce values through
safe_num, so results do not depend on mapping insertion order.
"""
from dataclasses import dataclass
from typing import Dict, Literal, Mapping

from context import ENERGY_SOURCES
from core.records import CapacityRecord, round2, safe_num

DeltaSign = Literal["positive", "negative", "zero"]


@dataclass(frozen=True)
class RecordDelta:
    """Difference ``end - start`` per source and in total."""

    per_source: Dict[str, float]
    total: float

    @property
    def sign(self) -> DeltaSign:
        return classify_delta(self.total)


def total(record: Mapping[str, float]) -> float:
    """
    Sum of every energy source in ``record``.

    Examples:
        >>> total({"Wind": 15, "Coal": 50})
        65.0
    """
    return sum(safe_num(record.get(source)) for source in ENERGY_SOURCES)


def difference(start: Mapping[str, float], end: Mapping[str, float]) -> RecordDelta:
    """
    Component-wise ``end - start`` plus the difference of the totals.

    Examples:
        >>> delta = difference({"Solar": 20}, {"Solar": 35})
        >>> delta.per_source["Solar"], delta.total, delta.sign
        (15.0, 15.0, 'positive')
    """
    per_source = {
        source: safe_num(end.get(source)) - safe_num(start.get(source))
        for source in ENERGY_SOURCES
    }
    return RecordDelta(per_source=per_source, total=total(end) - total(start))


def classify_delta(value: float) -> DeltaSign:
    """Sign of ``value`` after rounding to two decimals."""
    rounded = round2(safe_num(value))
    if rounded > 0:
        return "positive"
    if rounded < 0:
        return "negative"
    return "zero"


def shares(record: Mapping[str, float]) -> CapacityRecord:
    """Fraction of the total contributed by each source (all 0.0 when the total is 0)."""
    grand_total = total(record)
    if grand_total == 0:
        return {source: 0.0 for source in ENERGY_SOURCES}
    return {source: safe_num(record.get(source)) / grand_total for source in ENERGY_SOURCES}
