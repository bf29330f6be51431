from math import atan2, cos, radians, sin, sqrt

EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points in decimal degrees, in km,
    rounded to one decimal place.

    Coordinates must already be range-checked by the caller.
    """
    dlat = radians(lat2 - lat1)
    dlng = radians(lng2 - lng1)

    h = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(
        dlng / 2
    ) ** 2
    c = 2 * atan2(sqrt(h), sqrt(1 - h))
    return round(EARTH_RADIUS_KM * c, 1)
