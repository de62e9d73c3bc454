"""
Capacity snapshot: installed capacity, PLF assumptions and rated capacity.

Handles:
- Parsing the single-row current-capacity CSV
- Resolving the startup state (persisted > CSV > zeros)
- Editable installed / PLF records persisted after every mutation
- Rated capacity derived on every read: installed * PLF / 100

Persistence is best-effort and last-write-wins: a failed write is logged
and dropped, and the in-memory record stays authoritative. Each mutation
and its write run under one lock, so storage sees records in mutation order.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from analysis.aggregate import total
from config import PLF_MAX, PLF_MIN, PLF_POLICY
from context import (
    CAPACITY_CSV_ADVISORY,
    ENERGY_SOURCES,
    STORAGE_KEY_INSTALLED,
    STORAGE_KEY_PLF,
)
from core.csv_parser import parse_csv
from core.fetcher import CsvLoadError
from core.records import (
    CapacityRecord,
    coerce_record,
    overlay_record,
    round2,
    safe_num,
    source_key,
    zero_record,
)
from core.storage import KeyValueStore

log = logging.getLogger("RatedCapacity")


@dataclass
class InitialState:
    installed: CapacityRecord
    plf: CapacityRecord
    csv_loaded: bool


def parse_capacity_csv(text: str) -> Optional[CapacityRecord]:
    """
    Parse the current-capacity CSV (header of source names + one numeric row).

    Rows after the first data row are ignored.

    Returns:
        Full capacity record, or None when there is no data row or any of
        the eight source columns is missing from the header

    Examples:
        >>> rec = parse_capacity_csv(
        ...     "Coal,Oil & Gas,Nuclear,Hydro,Solar,Wind,Small-Hydro,Bio Power\\n"
        ...     "50,10,8,5,20,15,2,3"
        ... )
        >>> rec["Oil & Gas"]
        10.0
    """
    parsed = parse_csv(text)
    if not parsed.rows:
        return None

    row = parsed.rows[0]
    cells = {name: (row[i] if i < len(row) else "") for i, name in enumerate(parsed.header)}
    missing = [source for source in ENERGY_SOURCES if source not in cells]
    if missing:
        log.warning(f"⚠️ Capacity CSV missing columns: {missing}")
        return None
    return coerce_record(cells)


def load_persisted_record(storage: KeyValueStore, key: str) -> Optional[Dict[str, float]]:
    """
    Energy-source values stored under ``key``.

    Only keys actually present in storage are returned, so callers can
    overlay a partial record. None means nothing usable is stored.
    """
    obj = storage.read_json(key)
    if not isinstance(obj, dict):
        return None
    return {source: safe_num(obj[source]) for source in ENERGY_SOURCES if source in obj}


def resolve_initial_state(
    persisted_plf: Optional[Mapping[str, Any]],
    persisted_installed: Optional[Mapping[str, Any]],
    csv_record: Optional[Mapping[str, Any]],
) -> InitialState:
    """
    Apply the startup priority policy to already-fetched inputs.

    PLF: persisted keys overlay a zero record.
    Installed: persisted state (overlaid on zeros) wins over the CSV record,
    which wins over zeros. ``csv_loaded`` is False only when neither
    persisted state nor a CSV record is available.
    """
    plf = overlay_record(zero_record(), persisted_plf)

    if persisted_installed is not None:
        return InitialState(
            installed=overlay_record(zero_record(), persisted_installed),
            plf=plf,
            csv_loaded=True,
        )
    if csv_record is not None:
        return InitialState(installed=coerce_record(csv_record), plf=plf, csv_loaded=True)
    return InitialState(installed=zero_record(), plf=plf, csv_loaded=False)


class CapacitySnapshotStore:
    """Live installed / PLF records with derived rated capacity."""

    def __init__(self, storage: KeyValueStore, plf_policy: str = PLF_POLICY):
        self.storage = storage
        self.plf_policy = plf_policy
        self._installed = zero_record()
        self._plf = zero_record()
        self.csv_loaded = True
        self._lock = threading.Lock()

    # ----- startup -----

    def bootstrap(self, load_csv: Callable[[], str]) -> InitialState:
        """
        Restore persisted state, falling back to the current-capacity CSV.

        ``load_csv`` is only called when no installed state is persisted.
        CSV failures never raise; they clear ``csv_loaded`` so the shell can
        show the advisory while manual entry stays available.
        """
        persisted_plf = load_persisted_record(self.storage, STORAGE_KEY_PLF)
        persisted_installed = load_persisted_record(self.storage, STORAGE_KEY_INSTALLED)

        csv_record = None
        if persisted_installed is None:
            csv_record = self._load_capacity_csv(load_csv)
        else:
            log.info("✅ Installed capacity restored from storage")

        state = resolve_initial_state(persisted_plf, persisted_installed, csv_record)
        with self._lock:
            self._installed = state.installed
            self._plf = {source: self._bound_plf(v) for source, v in state.plf.items()}
            self.csv_loaded = state.csv_loaded
        return state

    def _load_capacity_csv(self, load_csv: Callable[[], str]) -> Optional[CapacityRecord]:
        try:
            record = parse_capacity_csv(load_csv())
        except CsvLoadError:
            return None
        if record is None:
            log.warning("⚠️ Capacity CSV could not be parsed; manual entry required")
        else:
            log.info(f"✅ Installed capacity loaded from CSV (total {round2(total(record)):.2f} GW)")
        return record

    # ----- reads -----

    @property
    def installed(self) -> CapacityRecord:
        return dict(self._installed)

    @property
    def plf(self) -> CapacityRecord:
        return dict(self._plf)

    @property
    def rated(self) -> CapacityRecord:
        return {
            source: round2(safe_num(self._installed[source]) * safe_num(self._plf[source]) / 100)
            for source in ENERGY_SOURCES
        }

    @property
    def installed_total(self) -> float:
        return round2(total(self._installed))

    @property
    def rated_total(self) -> float:
        return round2(total(self.rated))

    @property
    def advisory(self) -> Optional[str]:
        return None if self.csv_loaded else CAPACITY_CSV_ADVISORY

    # ----- mutations -----

    def set_installed(self, source: Any, value: Any) -> CapacityRecord:
        return self.update_installed({source: value})

    def set_plf(self, source: Any, value: Any) -> CapacityRecord:
        return self.update_plf({source: value})

    def update_installed(self, values: Mapping[Any, Any]) -> CapacityRecord:
        """
        Replace installed capacity for the given sources and persist the whole record.

        Raises:
            KeyError: If any key is not a tracked energy source (nothing is applied)
        """
        updates = {source_key(k): safe_num(v) for k, v in values.items()}
        with self._lock:
            self._installed = {**self._installed, **updates}
            self._persist(STORAGE_KEY_INSTALLED, self._installed)
            return self.installed

    def update_plf(self, values: Mapping[Any, Any]) -> CapacityRecord:
        """
        Replace PLF % for the given sources and persist the whole record.

        Under the "clamp" policy values are bounded to [0, 100].

        Raises:
            KeyError: If any key is not a tracked energy source (nothing is applied)
        """
        updates = {source_key(k): self._bound_plf(safe_num(v)) for k, v in values.items()}
        with self._lock:
            self._plf = {**self._plf, **updates}
            self._persist(STORAGE_KEY_PLF, self._plf)
            return self.plf

    def _bound_plf(self, value: float) -> float:
        if self.plf_policy == "clamp":
            return min(PLF_MAX, max(PLF_MIN, value))
        return value

    def _persist(self, key: str, record: CapacityRecord) -> None:
        if not self.storage.write_json(key, dict(record)):
            log.debug(f"Dropped persistence write for {key}")

    def snapshot(self) -> Dict[str, Any]:
        """Everything the dashboard renders for the rated capacity table."""
        with self._lock:
            return {
                "sources": list(ENERGY_SOURCES),
                "installed": self.installed,
                "plf": self.plf,
                "rated": self.rated,
                "installed_total": self.installed_total,
                "rated_total": self.rated_total,
                "csv_loaded": self.csv_loaded,
                "advisory": self.advisory,
            }
