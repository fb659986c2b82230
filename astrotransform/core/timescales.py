# astrotransform/core/timescales.py
# -----------------------------------------------------------------------------
# Dual Julian-date store (TT / UTC) with a wall-clock sentinel.
#
# Public API:
#   TimeBasis(engine, clock=None, on_change=None)
#     .julian_date_tt / .julian_date_utc   (0.0 = "use the wall clock")
#     .uses_wall_clock
#     .resolve() -> Epoch
#   wall_clock_utc(engine, clock) -> (utc1, utc2)
#
# Guarantees:
#   • Setting one scale converts to the other immediately through ERFA:
#       TT  → TAI → UTC     (erfa.tttai → taiutc)
#       UTC → TAI → TT      (erfa.utctai → taitt)
#   • Values outside 0100-01-01 .. 9999-12-31 are rejected (RangeError).
#   • The sentinel is re-resolved on every resolve(), never frozen.
#   • Two-part JD arithmetic for every ERFA call; floats only at the edge.
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple
import math

from astrotransform.core.constants import (
    JULIAN_DATE_MAXIMUM,
    JULIAN_DATE_MINIMUM,
    JULIAN_DATE_SENTINEL,
)
from astrotransform.core.engine import ErfaEngine, split_jd
from astrotransform.core.errors import RangeError

__all__ = ["Epoch", "TimeBasis", "wall_clock_utc", "utc_now"]

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Epoch:
    """One resolved instant, in ERFA two-part form on both scales."""
    utc1: float
    utc2: float
    tt1: float
    tt2: float
    from_wall_clock: bool

    @property
    def jd_utc(self) -> float:
        return math.fsum((self.utc1, self.utc2))

    @property
    def jd_tt(self) -> float:
        return math.fsum((self.tt1, self.tt2))


def wall_clock_utc(engine: ErfaEngine, clock: Clock) -> Tuple[float, float]:
    """Current instant as a two-part UTC JD (calendar → JD via ERFA dtf2d)."""
    now = clock()
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    sec = now.second + now.microsecond / 1e6
    return engine.calendar_to_julian(now.year, now.month, now.day, now.hour, now.minute, sec, "UTC")


def _validate_jd(loc: str, value: float) -> float:
    v = float(value)
    if v == JULIAN_DATE_SENTINEL:
        return v
    if math.isnan(v) or v < JULIAN_DATE_MINIMUM or v > JULIAN_DATE_MAXIMUM:
        raise RangeError(loc, value, (JULIAN_DATE_MINIMUM, JULIAN_DATE_MAXIMUM))
    return v


class TimeBasis:
    def __init__(
        self,
        engine: ErfaEngine,
        clock: Optional[Clock] = None,
        on_change: Optional[Callable[[str], None]] = None,
    ):
        self._engine = engine
        self._clock = clock or utc_now
        self._on_change = on_change or (lambda _name: None)
        self._tt: float = JULIAN_DATE_SENTINEL
        self._utc: float = JULIAN_DATE_SENTINEL

    @property
    def julian_date_tt(self) -> float:
        return self._tt

    @julian_date_tt.setter
    def julian_date_tt(self, value: float) -> None:
        v = _validate_jd("JulianDateTT", value)
        if v == JULIAN_DATE_SENTINEL:
            self._tt = self._utc = JULIAN_DATE_SENTINEL
        else:
            u1, u2 = self._engine.time_scale_convert(*split_jd(v), "TT", "UTC")
            self._tt, self._utc = v, math.fsum((u1, u2))
        self._on_change("julian_date_tt")

    @property
    def julian_date_utc(self) -> float:
        return self._utc

    @julian_date_utc.setter
    def julian_date_utc(self, value: float) -> None:
        v = _validate_jd("JulianDateUTC", value)
        if v == JULIAN_DATE_SENTINEL:
            self._tt = self._utc = JULIAN_DATE_SENTINEL
        else:
            t1, t2 = self._engine.time_scale_convert(*split_jd(v), "UTC", "TT")
            self._utc, self._tt = v, math.fsum((t1, t2))
        self._on_change("julian_date_utc")

    @property
    def uses_wall_clock(self) -> bool:
        return self._utc == JULIAN_DATE_SENTINEL

    def resolve(self) -> Epoch:
        """The instant to compute for; the sentinel reads the clock every time."""
        if self.uses_wall_clock:
            utc1, utc2 = wall_clock_utc(self._engine, self._clock)
            tt1, tt2 = self._engine.time_scale_convert(utc1, utc2, "UTC", "TT")
            return Epoch(utc1, utc2, tt1, tt2, True)
        utc1, utc2 = split_jd(self._utc)
        tt1, tt2 = split_jd(self._tt)
        return Epoch(utc1, utc2, tt1, tt2, False)
