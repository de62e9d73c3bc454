"""
Historical capacity ledger.

Handles:
- Ingesting the monthly capacity CSV (``Month`` column + source columns)
- Normalizing month spellings and ordering entries chronologically
- Month lookups and start/end comparisons (net capacity addition)

Rows with an unrecognized month are skipped. Duplicate months are kept in
CSV order; lookups bind to the first one, which is incidental rather than a
guarantee, so duplicates are reported through duplicate_months().
"""
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from analysis.aggregate import RecordDelta, difference, total
from config import DEFAULT_COMPARISON_MONTHS
from context import ENERGY_SOURCES, HISTORY_CSV_ADVISORY, MONTH_COLUMN
from core.csv_parser import parse_csv
from core.fetcher import CsvLoadError
from core.months import minus_months, month_sort_key, normalize_month
from core.records import CapacityRecord, round2, safe_num

log = logging.getLogger("RatedCapacity")


class LedgerLoadError(Exception):
    """Raised when the historical CSV cannot be turned into a ledger."""


@dataclass(frozen=True)
class HistoricalEntry:
    month: str
    values: CapacityRecord

    @property
    def total(self) -> float:
        return total(self.values)


@dataclass(frozen=True)
class Comparison:
    """Start/end snapshot pair. Deltas are None when either month has no data."""

    start_month: str
    end_month: str
    start: Optional[HistoricalEntry]
    end: Optional[HistoricalEntry]
    delta: Optional[RecordDelta]

    @property
    def has_data(self) -> bool:
        return self.delta is not None

    @property
    def net_addition(self) -> Optional[float]:
        return round2(self.delta.total) if self.delta else None

    @property
    def sign(self) -> Optional[str]:
        return self.delta.sign if self.delta else None


def _find_month_column(header: List[str]) -> Optional[int]:
    for i, name in enumerate(header):
        if name.strip().lower() == MONTH_COLUMN.lower():
            return i
    return None


def build_ledger(text: str) -> List[HistoricalEntry]:
    """
    Parse historical CSV text into entries sorted ascending by month.

    Raises:
        LedgerLoadError: If the header has no ``Month`` column

    Examples:
        >>> entries = build_ledger("Month,Coal\\n01/2023,50\\n31/12/2022,48")
        >>> [e.month for e in entries]
        ['12/2022', '01/2023']
    """
    parsed = parse_csv(text)
    month_idx = _find_month_column(parsed.header)
    if month_idx is None:
        raise LedgerLoadError(f"No '{MONTH_COLUMN}' column in header {parsed.header}")

    entries: List[HistoricalEntry] = []
    skipped = 0
    for row in parsed.rows:
        month = normalize_month(row[month_idx] if month_idx < len(row) else None)
        if month is None:
            skipped += 1
            continue
        values = {source: safe_num(parsed.get(row, source)) for source in ENERGY_SOURCES}
        entries.append(HistoricalEntry(month=month, values=values))

    if skipped:
        log.info(f"Skipped {skipped} row(s) with unrecognized months")

    # sorted() is stable: duplicate months keep CSV order
    return sorted(entries, key=lambda e: month_sort_key(e.month))


class HistoricalLedger:
    """Chronologically sorted monthly capacity snapshots."""

    def __init__(self, entries: Optional[List[HistoricalEntry]] = None):
        self._entries: List[HistoricalEntry] = sorted(
            entries or [], key=lambda e: month_sort_key(e.month)
        )
        self.loaded = entries is not None

    def load(self, load_csv: Callable[[], str]) -> bool:
        """
        Replace the ledger with the CSV returned by ``load_csv``.

        Never raises: on any failure the ledger is emptied and ``loaded``
        becomes False.
        """
        try:
            self._entries = build_ledger(load_csv())
        except (CsvLoadError, LedgerLoadError) as e:
            log.error(f"❌ Historical ledger not loaded: {e}")
            self._entries = []
            self.loaded = False
            return False

        self.loaded = True
        dupes = self.duplicate_months()
        if dupes:
            log.warning(f"⚠️ Duplicate months in historical CSV: {dupes}")
        log.info(f"✅ Historical ledger loaded: {len(self._entries)} entries")
        return True

    @property
    def advisory(self) -> Optional[str]:
        return None if self.loaded else HISTORY_CSV_ADVISORY

    @property
    def entries(self) -> List[HistoricalEntry]:
        return list(self._entries)

    @property
    def months(self) -> List[str]:
        return [e.month for e in self._entries]

    @property
    def latest_month(self) -> Optional[str]:
        return self._entries[-1].month if self._entries else None

    def duplicate_months(self) -> List[str]:
        counts = Counter(self.months)
        return [m for m in dict.fromkeys(self.months) if counts[m] > 1]

    def entry_for(self, month: str) -> Optional[HistoricalEntry]:
        """
        Entry whose month equals ``month`` (any accepted spelling).

        No interpolation: a month absent from the CSV returns None.
        """
        key = normalize_month(month)
        if key is None:
            return None
        for entry in self._entries:
            if entry.month == key:
                return entry
        return None

    def default_range(self, span: int = DEFAULT_COMPARISON_MONTHS) -> Optional[Tuple[str, str]]:
        """(start, end) with end at the latest month and start ``span`` months earlier."""
        end = self.latest_month
        if end is None:
            return None
        return minus_months(end, span), end

    def compare(self, start_month: str, end_month: str) -> Comparison:
        """
        Compare the snapshots at ``start_month`` and ``end_month``.

        Raises:
            ValueError: If either month is not a recognizable month string
        """
        start_key = normalize_month(start_month)
        end_key = normalize_month(end_month)
        if start_key is None or end_key is None:
            bad = start_month if start_key is None else end_month
            raise ValueError(f"Unrecognized month: {bad!r}")

        start = self.entry_for(start_key)
        end = self.entry_for(end_key)
        delta = difference(start.values, end.values) if start and end else None
        return Comparison(
            start_month=start_key,
            end_month=end_key,
            start=start,
            end=end,
            delta=delta,
        )
