"""
Capacity records: one non-negative number per energy source.

Every record carries all eight ENERGY_SOURCES keys. Anything that is not a
finite number coerces to 0.0 instead of raising.
"""
import math
from typing import Any, Dict, Mapping, Optional

from context import ENERGY_SOURCES, EnergySource

CapacityRecord = Dict[str, float]


def safe_num(value: Any) -> float:
    """
    Coerce ``value`` to a finite float, falling back to 0.0.

    Examples:
        >>> safe_num(" 12.5 ")
        12.5
        >>> safe_num("abc"), safe_num(None), safe_num(float("inf"))
        (0.0, 0.0, 0.0)
        >>> safe_num("1_000")
        0.0
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value or "_" in value:
            return 0.0
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0.0
    return n if math.isfinite(n) else 0.0


def round2(value: float) -> float:
    """
    Round half-up to two decimals on the cents-scaled value.

    Values too large to scale come back unchanged; non-finite input is 0.0.

    Examples:
        >>> round2(0.125)
        0.13
        >>> round2(-0.125)
        -0.12
        >>> round2(1e307)
        1e+307
    """
    scaled = value * 100 + 0.5
    if not math.isfinite(scaled):
        return safe_num(value)
    return math.floor(scaled) / 100


def zero_record() -> CapacityRecord:
    return {source: 0.0 for source in ENERGY_SOURCES}


def coerce_record(values: Optional[Mapping[str, Any]]) -> CapacityRecord:
    """Full record from an arbitrary mapping; unknown keys are ignored, missing keys are 0."""
    values = values or {}
    return {source: safe_num(values.get(source)) for source in ENERGY_SOURCES}


def overlay_record(base: Mapping[str, float], overrides: Optional[Mapping[str, Any]]) -> CapacityRecord:
    """
    Copy of ``base`` with the energy-source keys present in ``overrides`` replaced.

    Keys absent from ``overrides`` keep their ``base`` value.
    """
    out = coerce_record(base)
    for source in ENERGY_SOURCES:
        if overrides and source in overrides:
            out[source] = safe_num(overrides[source])
    return out


def source_key(source: Any) -> str:
    """
    Record key for ``source`` (an EnergySource or its display name).

    Raises:
        KeyError: If ``source`` is not one of the tracked energy sources
    """
    key = source.value if isinstance(source, EnergySource) else str(source)
    if key not in ENERGY_SOURCES:
        raise KeyError(f"Unknown energy source: {source!r}")
    return key
