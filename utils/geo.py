import math

EARTH_RADIUS_METERS = 6371008.8


def distance_meters(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Great-circle (haversine) distance between two [lng, lat] points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


def is_valid_point(lng, lat) -> bool:
    return -180.0 <= lng <= 180.0 and -90.0 <= lat <= 90.0
