from models import PricingConfig

DEFAULT_RATE_PER_KM = 1.5

def get_rate(key, default=0):
    """Get pricing rate from the key-value store"""
    config = PricingConfig.query.filter_by(key=key).first()
    return float(config.value) if config else default

def distance_fare(distance_km, base_fare, per_km_rate=DEFAULT_RATE_PER_KM):
    """Per-kilometre component of a ride fare.

    The base fare is additive and never multiplied by the rate; it is accepted
    here so callers can pass a subscription's fare fields through unchanged.
    """
    return distance_km * per_km_rate

def total_fare(base_fare, distance_fare_component):
    """Base fare plus distance fare"""
    return base_fare + distance_fare_component
