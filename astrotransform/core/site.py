# astrotransform/core/site.py
from __future__ import annotations

from typing import Callable, Optional, Tuple
import math

from astrotransform.core.constants import (
    ABSOLUTE_ZERO_CELSIUS,
    CFG,
    DEGREES2RADIANS,
    ELEVATION_RANGE,
    HUMIDITY_RANGE,
    LATITUDE_RANGE,
    LONGITUDE_RANGE,
    PRESSURE_RANGE,
    STANDARD_PRESSURE_HPA,
    TEMPERATURE_RANGE,
)
from astrotransform.core.engine import Observer
from astrotransform.core.errors import RangeError, UninitializedError

__all__ = ["SiteParameters", "barometric_pressure"]


def barometric_pressure(elevation_m: float, temperature_c: float) -> float:
    """
    Site pressure (hPa) from elevation and ambient temperature.

    Raises RangeError ("SitePressure") when the lapse-corrected temperature is
    not above absolute zero or the result falls outside PRESSURE_RANGE.
    """
    t_kelvin = temperature_c - 0.0065 * elevation_m - ABSOLUTE_ZERO_CELSIUS
    if not t_kelvin > 0.0:
        raise RangeError("SitePressure", f"derived at {elevation_m}m, {temperature_c}C", PRESSURE_RANGE)
    exponent = -elevation_m / (29.3 * t_kelvin)
    # checked in log space so exp() can not overflow
    if exponent > math.log(PRESSURE_RANGE[1] / STANDARD_PRESSURE_HPA):
        raise RangeError("SitePressure", f"derived at {elevation_m}m, {temperature_c}C", PRESSURE_RANGE)
    return STANDARD_PRESSURE_HPA * math.exp(exponent)


def _check(loc: str, value: float, bounds: Tuple[float, float]) -> float:
    v = float(value)
    if math.isnan(v) or v < bounds[0] or v > bounds[1]:
        raise RangeError(loc, value, bounds)
    return v


class SiteParameters:
    """
    Observing site and ambient conditions.

    Unset values are None. `on_change` fires whenever a stored value actually
    changes so the owner can mark its caches dirty.
    """

    def __init__(self, on_change: Optional[Callable[[str], None]] = None):
        self._on_change = on_change or (lambda _name: None)
        self._latitude: Optional[float] = None
        self._longitude: Optional[float] = None
        self._elevation: Optional[float] = None
        self._temperature: Optional[float] = None
        self._pressure: Optional[float] = None
        self._pressure_explicit = False
        self._humidity: float = CFG.relative_humidity
        self._ut1_utc: float = CFG.dut1_seconds

    def _store(self, attr: str, value: float) -> None:
        if getattr(self, attr) != value:
            setattr(self, attr, value)
            self._on_change(attr.lstrip("_"))

    def _require(self, name: str, value: Optional[float]) -> float:
        if value is None:
            raise UninitializedError(f"Site {name} has not been set")
        return value

    # ── site ───────────────────────────────────────────────────────────
    @property
    def latitude(self) -> float:
        return self._require("latitude", self._latitude)

    @latitude.setter
    def latitude(self, value: float) -> None:
        self._store("_latitude", _check("SiteLatitude", value, LATITUDE_RANGE))

    @property
    def longitude(self) -> float:
        return self._require("longitude", self._longitude)

    @longitude.setter
    def longitude(self, value: float) -> None:
        self._store("_longitude", _check("SiteLongitude", value, LONGITUDE_RANGE))

    @property
    def elevation(self) -> float:
        return self._require("elevation", self._elevation)

    @elevation.setter
    def elevation(self, value: float) -> None:
        self._store("_elevation", _check("SiteElevation", value, ELEVATION_RANGE))

    # ── atmosphere ─────────────────────────────────────────────────────
    @property
    def temperature(self) -> float:
        return self._require("temperature", self._temperature)

    @temperature.setter
    def temperature(self, value: float) -> None:
        self._store("_temperature", _check("SiteTemperature", value, TEMPERATURE_RANGE))

    @property
    def pressure(self) -> float:
        """Explicit pressure, or the barometric value derived on every request."""
        if self._pressure_explicit:
            return self._pressure  # type: ignore[return-value]
        if self._elevation is None or self._temperature is None:
            raise UninitializedError("Site atmospheric pressure has not been set")
        return barometric_pressure(self._elevation, self._temperature)

    @pressure.setter
    def pressure(self, value: float) -> None:
        v = _check("SitePressure", value, PRESSURE_RANGE)
        # Derivation is disabled for good once a pressure has been supplied.
        self._pressure_explicit = True
        self._store("_pressure", v)

    @property
    def pressure_is_derived(self) -> bool:
        return not self._pressure_explicit

    @property
    def humidity(self) -> float:
        return self._humidity

    @humidity.setter
    def humidity(self, value: float) -> None:
        self._store("_humidity", _check("SiteRelativeHumidity", value, HUMIDITY_RANGE))

    @property
    def ut1_utc(self) -> float:
        return self._ut1_utc

    @ut1_utc.setter
    def ut1_utc(self, value: float) -> None:
        v = float(value)
        if not math.isfinite(v):
            raise RangeError("DeltaUT1", value, (-math.inf, math.inf))
        self._store("_ut1_utc", v)

    # ── derived ────────────────────────────────────────────────────────
    @property
    def complete(self) -> bool:
        return None not in (self._latitude, self._longitude, self._elevation, self._temperature)

    def observer(self) -> Observer:
        """ERFA-ready observer with the actual atmosphere; requires a complete site."""
        return Observer(
            longitude=self.longitude * DEGREES2RADIANS,
            latitude=self.latitude * DEGREES2RADIANS,
            height=self.elevation,
            ut1_utc=self._ut1_utc,
            pressure=self.pressure,
            temperature=self.temperature,
            humidity=self._humidity,
            wavelength=CFG.wavelength_um,
        )
