"""
Application configuration and constants.

Collects environment variables and tunables for the rated capacity
engine and its HTTP API in one place.
"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# ===================================================================
# Environment Variables
# ===================================================================

# CSV sources (http(s) URL or local path)
CAPACITY_CSV_URL = os.getenv("CAPACITY_CSV_URL", "data/Capacity.csv")
HISTORY_CSV_URL = os.getenv("HISTORY_CSV_URL", "data/capacity.csv")

# Durable key-value storage
STORAGE_DB_URL = os.getenv("STORAGE_DB_URL", "sqlite:///rated_capacity.db")

# API Security (optional: when unset, mutations are open)
APP_SECRET_KEY = os.getenv("APP_SECRET_KEY")

# Network
FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "10"))

# PLF entry policy: "clamp" keeps PLF within [0, 100], "unclamped" stores it as typed
PLF_POLICY = os.getenv("PLF_POLICY", "clamp").lower()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ===================================================================
# Validation
# ===================================================================

PLF_POLICIES = {"clamp", "unclamped"}

if PLF_POLICY not in PLF_POLICIES:
    raise RuntimeError(f"PLF_POLICY must be one of {sorted(PLF_POLICIES)}, got {PLF_POLICY!r}")

# ===================================================================
# Analysis Configuration
# ===================================================================

# Default look-back window for start/end comparisons
DEFAULT_COMPARISON_MONTHS = int(os.getenv("DEFAULT_COMPARISON_MONTHS", "12"))

# PLF bounds applied under the "clamp" policy
PLF_MIN = 0.0
PLF_MAX = 100.0

# ===================================================================
# Storage Configuration
# ===================================================================

STORAGE_TABLE = "kv_store"
