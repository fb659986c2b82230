# astrotransform/utils/config.py
import os
import json
import logging
import yaml

from astrotransform.core.transform import Transform
from astrotransform.version import VERSION

log = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}

# config key -> Transform attribute, in the order they are applied
_SITE_KEYS = (
    ("latitude", "site_latitude"),
    ("longitude", "site_longitude"),
    ("elevation", "site_elevation"),
    ("temperature", "site_temperature"),
    ("pressure", "site_pressure"),
    ("relative_humidity", "site_relative_humidity"),
    ("delta_ut1", "delta_ut1"),
)
_TIME_KEYS = (
    ("julian_date_utc", "julian_date_utc"),
    ("julian_date_tt", "julian_date_tt"),
)


class AttrDict(dict):
    """Dict that also supports attribute access: cfg.site and cfg['site'] both work."""
    def __getattr__(self, item):
        try:
            return self[item]
        except KeyError as e:
            raise AttributeError(item) from e
    def __setattr__(self, key, value):
        self[key] = value

def _to_attr(obj):
    if isinstance(obj, dict):
        return AttrDict({k: _to_attr(v) for k, v in obj.items()})
    if isinstance(obj, list):
        return [_to_attr(x) for x in obj]
    return obj

def _load_json_if(path):
    if not path:
        return {}
    try:
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f) or {}
    except (OSError, ValueError) as e:
        # Keep going even if optional files can't be read
        log.warning("Ignoring unreadable JSON file %s: %s", path, e)
        return {}
    return {}

def load_config(path: str):
    """
    Load YAML config from `path`:

        site:  {latitude, longitude, elevation, temperature,
                pressure, relative_humidity, delta_ut1}
        time:  {julian_date_utc | julian_date_tt}
        mode:  {observed: bool, refraction: bool}

    Env overrides:
      - ASTRO_SITE_JSON       (path to a JSON file merged over `site`)
      - ASTRO_OBSERVED_MODE   (overrides mode.observed)
      - ASTRO_DUT1_BROADCAST  (overrides site.delta_ut1)
    Returns an AttrDict for convenient access.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    site = dict(data.get("site") or {})
    site.update(_load_json_if(os.getenv("ASTRO_SITE_JSON")))

    dut1 = os.getenv("ASTRO_DUT1_BROADCAST")
    if dut1:
        site["delta_ut1"] = float(dut1)
    data["site"] = site

    mode = dict(data.get("mode") or {})
    observed = os.getenv("ASTRO_OBSERVED_MODE")
    if observed:
        mode["observed"] = observed.strip().lower() in _TRUE
    data["mode"] = mode

    data.setdefault("time", {})
    return _to_attr(data)

def apply_config(transform: Transform, cfg) -> Transform:
    """Push `site`, `time` and `mode` sections into `transform` (observed mode before refraction)."""
    mode = cfg.get("mode") or {}
    if "observed" in mode:
        transform.observed_mode = bool(mode["observed"])
    if "refraction" in mode:
        transform.refraction = bool(mode["refraction"])

    site = cfg.get("site") or {}
    for key, attr in _SITE_KEYS:
        if site.get(key) is not None:
            setattr(transform, attr, site[key])

    time_cfg = cfg.get("time") or {}
    for key, attr in _TIME_KEYS:
        if time_cfg.get(key) is not None:
            setattr(transform, attr, time_cfg[key])
            break
    return transform

def transform_from_config(path: str, logger=None) -> Transform:
    cfg = load_config(path)
    log.debug("astrotransform %s: loaded transform config from %s", VERSION, path)
    return apply_config(Transform(logger), cfg)
