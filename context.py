# === context.py v1.0 ===
# Energy source catalogue, storage keys and advisory strings shared by the engine and the API.

from enum import Enum
from typing import Tuple


class EnergySource(str, Enum):
    """Fixed, ordered set of generation categories tracked by the dashboard."""

    COAL = "Coal"
    OIL_GAS = "Oil & Gas"
    NUCLEAR = "Nuclear"
    HYDRO = "Hydro"
    SOLAR = "Solar"
    WIND = "Wind"
    SMALL_HYDRO = "Small-Hydro"
    BIO_POWER = "Bio Power"


# Display / aggregation order. Also the exact CSV header names.
ENERGY_SOURCES: Tuple[str, ...] = tuple(s.value for s in EnergySource)

# --- Durable storage keys ---
STORAGE_KEY_INSTALLED = "ratedCapacity_installed"
STORAGE_KEY_PLF = "ratedCapacity_plf"

# --- Historical CSV ---
MONTH_COLUMN = "Month"

# --- Advisories surfaced to the dashboard shell ---
CAPACITY_CSV_ADVISORY = "Capacity.csv not loaded – enter values manually."
HISTORY_CSV_ADVISORY = "capacity.csv not loaded – historical comparison unavailable."
