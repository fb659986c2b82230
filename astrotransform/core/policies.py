# astrotransform/core/policies.py
"""
Refraction policies for the forward (catalog → topocentric/observed) chain.

Two pure strategies, one chosen per recompute from the observed-mode flag:

- `original_plan`: one forward call. The single refraction flag decides
  whether the topocentric outputs see the real atmosphere or none at all.
  No observed outputs.
- `observed_plan`: two forward calls of the same transform. Topocentric
  outputs always use zero atmosphere, observed outputs the real one.

`project` runs whichever plan it is given; it never applies a refraction
correction after the fact.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from astrotransform.core.constants import RADIANS2DEGREES, RADIANS2HOURS
from astrotransform.core.engine import ErfaEngine, ObservedPlace, Observer

__all__ = [
    "HorizonPlace",
    "RefractionPlan",
    "Projection",
    "original_plan",
    "observed_plan",
    "select_policy",
    "project",
]


@dataclass(frozen=True)
class HorizonPlace:
    ra: float          # hours, equinox based
    dec: float         # degrees
    azimuth: float     # degrees, N=0 E=90
    elevation: float   # degrees


@dataclass(frozen=True)
class RefractionPlan:
    topocentric: Observer            # atmosphere behind the topocentric outputs
    observed: Optional[Observer]     # None: observed outputs are not produced


@dataclass(frozen=True)
class Projection:
    topocentric: HorizonPlace
    observed: Optional[HorizonPlace]


Policy = Callable[[Observer, bool], RefractionPlan]


def original_plan(observer: Observer, refraction: bool) -> RefractionPlan:
    return RefractionPlan(topocentric=observer if refraction else observer.dry(), observed=None)


def observed_plan(observer: Observer, refraction: bool) -> RefractionPlan:
    # The refraction flag is ignored in observed mode.
    return RefractionPlan(topocentric=observer.dry(), observed=observer)


def select_policy(observed_mode: bool) -> Policy:
    return observed_plan if observed_mode else original_plan


def to_horizon(engine: ErfaEngine, place: ObservedPlace) -> HorizonPlace:
    """ERFA observed place → hours/degrees with an equinox-based RA."""
    return HorizonPlace(
        ra=engine.normalize_angle(place.ra_cio - place.eo) * RADIANS2HOURS,
        dec=place.dec * RADIANS2DEGREES,
        azimuth=place.azimuth * RADIANS2DEGREES,
        elevation=90.0 - place.zenith_distance * RADIANS2DEGREES,
    )


def project(
    engine: ErfaEngine,
    ra_rad: float,
    dec_rad: float,
    utc1: float,
    utc2: float,
    plan: RefractionPlan,
) -> Projection:
    """Catalog RA/Dec (radians) → topocentric and, if planned, observed places."""
    topo = to_horizon(engine, engine.catalog_to_observed(ra_rad, dec_rad, utc1, utc2, plan.topocentric))
    observed = None
    if plan.observed is not None:
        observed = to_horizon(engine, engine.catalog_to_observed(ra_rad, dec_rad, utc1, utc2, plan.observed))
    return Projection(topocentric=topo, observed=observed)
