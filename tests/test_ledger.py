"""
Tests for core/ledger.py and the pandas views in analysis/stats.py.
"""
import math

import pytest

from analysis.stats import comparison_to_frame, frame_to_rows, ledger_to_frame, rows_to_preview
from context import ENERGY_SOURCES, HISTORY_CSV_ADVISORY
from core.fetcher import CsvLoadError
from core.ledger import HistoricalEntry, HistoricalLedger, LedgerLoadError, build_ledger


MIXED_MONTHS_CSV = (
    "Month,Coal,Solar\n"
    "01/2023,50,20\n"
    "31/12/2022,48,18\n"
    "13-01-2023,51,21\n"
)

HISTORY_CSV = (
    "Month,Coal,Oil & Gas,Nuclear,Hydro,Solar,Wind,Small-Hydro,Bio Power\n"
    "01/2024,52,10,8,5,24,12,1.5,2.5\n"
    "01/2023,50,10,8,5,15,8,1.5,2.5\n"
    "06/2023,51,10,8,5,19,10,1.5,2.5\n"
)


def ledger_from(text):
    ledger = HistoricalLedger()
    ledger.load(lambda: text)
    return ledger


def failing_loader():
    raise CsvLoadError("Failed to fetch /data/capacity.csv")


class TestBuildLedger:

    def test_mixed_month_formats_sorted(self):
        """Duplicates survive and keep CSV order after the stable sort."""
        entries = build_ledger(MIXED_MONTHS_CSV)
        assert [e.month for e in entries] == ["12/2022", "01/2023", "01/2023"]
        assert [e.values["Coal"] for e in entries] == [48.0, 50.0, 51.0]

    def test_missing_source_columns_are_zero(self):
        entries = build_ledger(MIXED_MONTHS_CSV)
        assert entries[0].values["Wind"] == 0.0
        assert set(entries[0].values) == set(ENERGY_SOURCES)

    def test_month_header_case_insensitive(self):
        entries = build_ledger(" month ,Coal\n02/2024,10\n")
        assert entries[0].month == "02/2024"

    def test_bad_months_skipped(self):
        entries = build_ledger("Month,Coal\nJan 2023,1\n02/2023,2\n,3\n")
        assert [e.month for e in entries] == ["02/2023"]

    def test_short_rows(self):
        entries = build_ledger("Coal,Month\n5\n7,03/2023\n")
        assert [e.month for e in entries] == ["03/2023"]
        assert entries[0].values["Coal"] == 7.0

    def test_missing_month_column(self):
        with pytest.raises(LedgerLoadError):
            build_ledger("Date,Coal\n01/2023,50\n")


class TestHistoricalLedger:

    def test_load_and_months(self):
        ledger = ledger_from(HISTORY_CSV)
        assert ledger.loaded is True
        assert ledger.advisory is None
        assert ledger.months == ["01/2023", "06/2023", "01/2024"]
        assert ledger.latest_month == "01/2024"

    def test_missing_month_column_empties_ledger(self):
        """No exception escapes; the ledger ends empty with an advisory."""
        ledger = ledger_from(HISTORY_CSV)
        assert ledger.load(lambda: "Date,Coal\n01/2023,50\n") is False
        assert ledger.entries == []
        assert ledger.loaded is False
        assert ledger.advisory == HISTORY_CSV_ADVISORY

    def test_fetch_failure(self):
        ledger = HistoricalLedger()
        assert ledger.load(failing_loader) is False
        assert ledger.months == []
        assert ledger.latest_month is None
        assert ledger.default_range() is None

    def test_entry_for_accepts_any_spelling(self):
        ledger = ledger_from(HISTORY_CSV)
        assert ledger.entry_for("1/2023").month == "01/2023"
        assert ledger.entry_for("15/06/2023").values["Solar"] == 19.0

    def test_entry_for_missing_month(self):
        ledger = ledger_from(HISTORY_CSV)
        assert ledger.entry_for("03/2023") is None
        assert ledger.entry_for("not a month") is None

    def test_duplicates_reported(self):
        ledger = ledger_from(MIXED_MONTHS_CSV)
        assert ledger.duplicate_months() == ["01/2023"]
        assert ledger.entry_for("01/2023").values["Coal"] == 50.0

    def test_entries_from_constructor_are_sorted(self):
        ledger = HistoricalLedger([
            HistoricalEntry("02/2024", {s: 1.0 for s in ENERGY_SOURCES}),
            HistoricalEntry("11/2023", {s: 2.0 for s in ENERGY_SOURCES}),
        ])
        assert ledger.months == ["11/2023", "02/2024"]
        assert ledger.loaded is True


class TestCompare:

    def test_net_addition_positive(self):
        comparison = ledger_from(HISTORY_CSV).compare("01/2023", "01/2024")
        assert comparison.has_data
        assert comparison.start.total == 100.0
        assert comparison.end.total == 115.0
        assert comparison.net_addition == 15.0
        assert comparison.sign == "positive"
        assert comparison.delta.per_source["Solar"] == 9.0
        assert comparison.delta.per_source["Coal"] == 2.0

    def test_reverse_is_negative(self):
        comparison = ledger_from(HISTORY_CSV).compare("01/2024", "01/2023")
        assert comparison.net_addition == -15.0
        assert comparison.sign == "negative"

    def test_same_month_is_zero(self):
        comparison = ledger_from(HISTORY_CSV).compare("06/2023", "06/2023")
        assert comparison.net_addition == 0.0
        assert comparison.sign == "zero"

    def test_missing_month_yields_no_data(self):
        comparison = ledger_from(HISTORY_CSV).compare("02/2023", "01/2024")
        assert comparison.start is None
        assert comparison.end is not None
        assert comparison.has_data is False
        assert comparison.net_addition is None
        assert comparison.sign is None

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            ledger_from(HISTORY_CSV).compare("2023-01", "01/2024")

    def test_default_range(self):
        ledger = ledger_from(HISTORY_CSV)
        assert ledger.default_range() == ("01/2023", "01/2024")
        assert ledger.default_range(7) == ("06/2023", "01/2024")


class TestLedgerFrames:

    def test_ledger_frame_totals_and_change(self):
        df = ledger_to_frame(ledger_from(HISTORY_CSV).entries)
        assert list(df["Month"]) == ["01/2023", "06/2023", "01/2024"]
        assert list(df["Total"]) == [100.0, 107.0, 115.0]
        assert math.isnan(df["Change"].iloc[0])
        assert list(df["Change"].iloc[1:]) == [7.0, 8.0]

    def test_frame_rows_are_json_safe(self):
        rows = frame_to_rows(ledger_to_frame(ledger_from(HISTORY_CSV).entries))
        assert rows[0]["Change"] is None
        assert rows[2]["Total"] == 115.0

    def test_huge_values_do_not_break_rounding(self):
        df = ledger_to_frame(ledger_from("Month,Coal\n01/2023,1e307\n02/2023,1e307\n").entries)
        assert list(df["Total"]) == [1e307, 1e307]
        assert df["Change"].iloc[1] == 0.0

    def test_empty_ledger(self):
        df = ledger_to_frame([])
        assert df.empty
        assert frame_to_rows(df) == []
        assert rows_to_preview(df) == "No rows."

    def test_comparison_frame(self):
        comparison = ledger_from(HISTORY_CSV).compare("01/2023", "01/2024")
        df = comparison_to_frame(comparison)
        assert list(df.columns) == ["Source", "01/2023", "01/2024", "Delta"]
        assert len(df) == len(ENERGY_SOURCES) + 1
        total_row = df[df["Source"] == "Total"].iloc[0]
        assert total_row["Delta"] == 15.0

    def test_comparison_frame_without_data(self):
        comparison = ledger_from(HISTORY_CSV).compare("02/2023", "01/2024")
        assert comparison_to_frame(comparison).empty

    def test_preview(self):
        preview = rows_to_preview(ledger_to_frame(ledger_from(HISTORY_CSV).entries))
        assert "01/2024" in preview
        assert "Total" in preview


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
