"""
Pydantic models for API requests and responses.
"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator

from context import ENERGY_SOURCES


class CapacityUpdate(BaseModel):
    """
    Partial update of the installed or PLF record.

    Attributes:
        values: Energy source display name -> new value. Non-numeric values
            are accepted and coerce to 0, matching manual entry in the table.
    """
    values: Dict[str, Any] = Field(..., description="Source name -> number, e.g. {'Coal': 60}")

    @field_validator("values")
    @classmethod
    def _known_sources(cls, v):
        """Reject empty updates and unknown energy sources."""
        if not v:
            raise ValueError("values cannot be empty")
        unknown = [k for k in v if k not in ENERGY_SOURCES]
        if unknown:
            raise ValueError(f"Unknown energy sources: {unknown}")
        return v


class SnapshotResponse(BaseModel):
    """
    Rated capacity table as rendered by the dashboard.

    Attributes:
        sources: Energy sources in display order
        installed: Installed capacity (GW) per source
        plf: PLF % per source
        rated: Rated capacity (GW) per source, installed * PLF / 100
        installed_total: Sum of installed capacity
        rated_total: Sum of rated capacity
        csv_loaded: False when Capacity.csv could not be loaded
        advisory: Message to show when csv_loaded is False
    """
    sources: List[str]
    installed: Dict[str, float]
    plf: Dict[str, float]
    rated: Dict[str, float]
    installed_total: float
    rated_total: float
    csv_loaded: bool
    advisory: Optional[str] = None


class LedgerEntryModel(BaseModel):
    """
    One month of the historical ledger.

    Attributes:
        month: Normalized month (MM/YYYY)
        values: Installed capacity (GW) per source
        total: Sum over all sources, rounded to 2 decimals
    """
    month: str
    values: Dict[str, float]
    total: float


class LedgerResponse(BaseModel):
    """Month list of the historical ledger plus its load status."""
    months: List[str]
    loaded: bool
    advisory: Optional[str] = None
    duplicate_months: List[str] = Field(default_factory=list)


class ComparisonResponse(BaseModel):
    """
    Start/end comparison. Missing months leave the delta fields empty.

    Attributes:
        start_month: Normalized start month (MM/YYYY)
        end_month: Normalized end month (MM/YYYY)
        start: Snapshot at start_month, if present in the ledger
        end: Snapshot at end_month, if present in the ledger
        delta: Per-source end - start (GW)
        net_addition: Total end - start, rounded to 2 decimals
        sign: positive / negative / zero classification of net_addition
        table: Per-source start / end / delta rows plus a Total row
    """
    start_month: str
    end_month: str
    start: Optional[LedgerEntryModel] = None
    end: Optional[LedgerEntryModel] = None
    delta: Optional[Dict[str, float]] = None
    net_addition: Optional[float] = None
    sign: Optional[str] = None
    table: List[Dict[str, Any]] = Field(default_factory=list)


class MetricsResponse(BaseModel):
    """
    Metrics endpoint response model.

    Attributes:
        status: Service health status
        metrics: Counters from utils.metrics
    """
    status: str
    metrics: Dict[str, Any]
