import math
from typing import Any, Optional, Tuple

class CoordinateValidator:
    """Validation helpers for caller-supplied coordinates"""

    @staticmethod
    def to_number(value: Any) -> Optional[float]:
        """Convert ints, floats and numeric strings to a finite float."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(number) or math.isinf(number):
            return None
        return number

    @staticmethod
    def parse(lat: Any, lon: Any) -> Optional[Tuple[float, float]]:
        """Return (lat, lon) when both are present, numeric and in range."""
        lat_num = CoordinateValidator.to_number(lat)
        lon_num = CoordinateValidator.to_number(lon)
        if lat_num is None or lon_num is None:
            return None
        if not -90.0 <= lat_num <= 90.0 or not -180.0 <= lon_num <= 180.0:
            return None
        return lat_num, lon_num
