# astrotransform/core/errors.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

__all__ = [
    "TransformError",
    "UninitializedError",
    "UnavailableError",
    "RangeError",
    "ModeError",
    "AstrometryError",
]


class TransformError(Exception):
    """Base class for every error raised by the transform; carries a machine code."""
    code = "transform_error"

    def __init__(self, message: str, *, code: Optional[str] = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(f"{self.code}: {message}")


class UninitializedError(TransformError):
    """A value was read before anything was set to derive it from."""
    code = "uninitialized"


class UnavailableError(TransformError):
    """The value can not be derived because site parameters are incomplete."""
    code = "unavailable"


class ModeError(TransformError):
    """The operation requires a different observed-mode setting."""
    code = "invalid_mode"


class AstrometryError(TransformError):
    """An ERFA call failed."""
    code = "astrometry_failed"


class RangeError(TransformError, ValueError):
    """Argument outside its documented domain (has .errors() like a validator error)."""
    code = "out_of_range"

    def __init__(self, loc: str, value: Any, bounds: Tuple[Any, Any], *, upper_open: bool = False):
        self.loc = loc
        self.value = value
        self.bounds = bounds
        close = ")" if upper_open else "]"
        msg = f"{loc} must be within [{bounds[0]}, {bounds[1]}{close}, got {value!r}"
        self._details = [{"loc": [loc], "msg": msg, "type": "value_error.range"}]
        super().__init__(msg)

    def errors(self) -> List[Dict[str, Any]]:
        return list(self._details)
