# astrotransform/core/constants.py
# -*- coding: utf-8 -*-
"""
Core constants & env-driven defaults for the coordinate transform.

Purpose
-------
Single source of truth for:
- unit conversion factors (hours/degrees/radians)
- site parameter ranges
- supported Julian date range (years 0100–9999)
- atmosphere defaults (standard pressure, wavelength, humidity)

Design
------
- Pure-Python, no external dependencies.
- Safe to import from any core module.
- `CFG` is read once from the environment at import time.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple
import math
import os

__all__ = [
    # units
    "HOURS2RADIANS", "DEGREES2RADIANS", "RADIANS2HOURS", "RADIANS2DEGREES",
    # ranges
    "LATITUDE_RANGE", "LONGITUDE_RANGE", "ELEVATION_RANGE", "TEMPERATURE_RANGE",
    "PRESSURE_RANGE", "HUMIDITY_RANGE",
    # julian dates
    "JULIAN_DATE_SENTINEL", "JULIAN_DATE_MINIMUM", "JULIAN_DATE_MAXIMUM",
    # atmosphere
    "STANDARD_PRESSURE_HPA", "ABSOLUTE_ZERO_CELSIUS",
    # config
    "CFG",
]

# ── unit conversion ──────────────────────────────────────────────────────────
HOURS2RADIANS: float = math.pi / 12.0
DEGREES2RADIANS: float = math.pi / 180.0
RADIANS2HOURS: float = 12.0 / math.pi
RADIANS2DEGREES: float = 180.0 / math.pi

# ── site parameter ranges (inclusive) ────────────────────────────────────────
LATITUDE_RANGE: Tuple[float, float] = (-90.0, 90.0)          # degrees
LONGITUDE_RANGE: Tuple[float, float] = (-180.0, 180.0)       # degrees, east positive
ELEVATION_RANGE: Tuple[float, float] = (-300.0, 10000.0)     # metres
TEMPERATURE_RANGE: Tuple[float, float] = (-273.15, 100.0)    # Celsius
PRESSURE_RANGE: Tuple[float, float] = (0.0, 1200.0)          # hPa (mbar)
HUMIDITY_RANGE: Tuple[float, float] = (0.0, 1.0)             # fraction

# ── julian dates ─────────────────────────────────────────────────────────────
# 0.0 means "derive from the wall clock on every recompute".
JULIAN_DATE_SENTINEL: float = 0.0
# 0100-01-01 00:00:00 and 9999-12-31 23:59:59.999
_OLE_JD_OFFSET = 2415018.5
JULIAN_DATE_MINIMUM: float = -657435.0 + _OLE_JD_OFFSET            # 1757583.5
JULIAN_DATE_MAXIMUM: float = 2958465.99999999 + _OLE_JD_OFFSET     # 5373484.49999999

# ── atmosphere ───────────────────────────────────────────────────────────────
STANDARD_PRESSURE_HPA: float = 1013.25
ABSOLUTE_ZERO_CELSIUS: float = -273.15


# ── config (single source) ───────────────────────────────────────────────────
def _float_env(name: str, default: float) -> float:
    v = os.getenv(name, "").strip()
    if not v:
        return default
    return float(v)


@dataclass(frozen=True)
class _TransformCfg:
    wavelength_um: float       # observing wavelength fed to the refraction model
    dut1_seconds: float        # default UT1-UTC for new transforms
    relative_humidity: float   # default site RH


CFG = _TransformCfg(
    wavelength_um=_float_env("ASTRO_WAVELENGTH_UM", 0.55),                  # 550 nm
    dut1_seconds=_float_env("ASTRO_DUT1_BROADCAST", 0.0),
    relative_humidity=_float_env("ASTRO_DEFAULT_RH", 0.5),
)
