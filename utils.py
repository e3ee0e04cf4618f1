import math

EARTH_RADIUS_KM = 6371

def haversine(lat1, lon1, lat2, lon2):
    """Calculate the great circle distance between two points on the earth"""
    R = EARTH_RADIUS_KM
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi/2)**2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda/2)**2
    return R * (2 * math.atan2(math.sqrt(a), math.sqrt(1-a)))

def distance_km(point_a, point_b):
    """Haversine distance between two objects exposing latitude/longitude"""
    return haversine(point_a.latitude, point_a.longitude, point_b.latitude, point_b.longitude)
