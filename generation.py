# Recurring ride generation.
#
# RideGenerator turns a subscription into concrete rides by walking the
# calendar from the day after the subscription's checkpoint (or its start
# date) up to a horizon, creating one ride per day whose weekday is in the
# subscription's weekday set. Weekdays use 0=Sunday .. 6=Saturday.
#
# Storage is reached only through two collaborators:
#
#     ride_store.exists_for_kid_date_time(kid_id, day, pickup_time) -> bool
#     ride_store.create(ride_spec) -> ride
#     subscription_store.advance_checkpoint(subscription_id, expected, new) -> bool
#
# Callers must serialise generation per subscription. The checkpoint advance
# is a compare-and-swap against the value read when the run started, so an
# overlapping run surfaces as ConditionalUpdateConflict instead of a lost
# update.

from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Optional

from errors import ConditionalUpdateConflict
from lifecycle import ensure_can_generate
from models import RideType
from pricing import DEFAULT_RATE_PER_KM, distance_fare
from routing import AVERAGE_SPEED_KMH, estimate_travel_time
from utils import haversine

ONE_DAY = timedelta(days=1)

@dataclass(frozen=True)
class RideSpec:
    kid_id: int
    subscription_id: int
    ride_type: str
    scheduled_pickup_time: datetime
    scheduled_dropoff_time: Optional[datetime]
    pickup_address: str
    pickup_latitude: float
    pickup_longitude: float
    dropoff_address: str
    dropoff_latitude: float
    dropoff_longitude: float
    distance_km: float
    duration_minutes: int
    base_fare: float
    distance_fare: Optional[float]
    total_fare: float
    parent_notes: Optional[str] = None

    def as_dict(self):
        return asdict(self)

def weekday_number(day):
    """0=Sunday .. 6=Saturday"""
    return day.isoweekday() % 7

def iter_days(start, end):
    day = start
    while day <= end:
        yield day
        day += ONE_DAY

def count_rides_in_period(start, end, days_of_week):
    weekdays = set(days_of_week)
    return sum(1 for day in iter_days(start, end) if weekday_number(day) in weekdays)

def ride_type_for(pickup_time):
    return RideType.TO_SCHOOL if pickup_time.hour < 12 else RideType.FROM_SCHOOL

def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    return value

class RideGenerator:
    def __init__(self, ride_store, subscription_store,
                 per_km_rate=DEFAULT_RATE_PER_KM, average_speed_kmh=AVERAGE_SPEED_KMH):
        self.ride_store = ride_store
        self.subscription_store = subscription_store
        self.per_km_rate = per_km_rate
        self.average_speed_kmh = average_speed_kmh

    def walk_range(self, subscription, up_to_date):
        """First and last calendar day a run would cover (first > last means empty)"""
        checkpoint = subscription.last_ride_generated_date
        walk_start = subscription.start_date if checkpoint is None else checkpoint + ONE_DAY
        walk_end = _as_date(up_to_date)
        if subscription.end_date is not None and walk_end > subscription.end_date:
            walk_end = subscription.end_date
        return walk_start, walk_end

    def generate(self, subscription, up_to_date):
        """Create the rides due through up_to_date and return how many were created.

        Raises InvalidState before touching anything when the subscription is
        not ACTIVE or has auto-generation switched off, and
        ConditionalUpdateConflict when another run moved the checkpoint.
        """
        ensure_can_generate(subscription)

        expected_checkpoint = subscription.last_ride_generated_date
        walk_start, walk_end = self.walk_range(subscription, up_to_date)
        weekdays = set(subscription.days_of_week)

        distance = haversine(
            subscription.pickup_latitude, subscription.pickup_longitude,
            subscription.dropoff_latitude, subscription.dropoff_longitude,
        )
        duration = estimate_travel_time(distance, self.average_speed_kmh)
        if subscription.distance_fare is None:
            ride_distance_fare = distance_fare(distance, subscription.base_fare, self.per_km_rate)
        else:
            ride_distance_fare = subscription.distance_fare

        generated = 0
        for day in iter_days(walk_start, walk_end):
            if weekday_number(day) not in weekdays:
                continue
            if self.ride_store.exists_for_kid_date_time(subscription.kid_id, day, subscription.pickup_time):
                continue

            self.ride_store.create(self._build_spec(subscription, day, distance, duration, ride_distance_fare))
            generated += 1

        if generated > 0:
            # Advance to the horizon, not the last ride day, so skipped days are never rescanned
            advanced = self.subscription_store.advance_checkpoint(subscription.id, expected_checkpoint, walk_end)
            if not advanced:
                raise ConditionalUpdateConflict(subscription.id, expected_checkpoint, walk_end)
            subscription.last_ride_generated_date = walk_end

        return generated

    def _build_spec(self, subscription, day, distance, duration, ride_distance_fare):
        dropoff = None
        if subscription.dropoff_time is not None:
            dropoff = datetime.combine(day, subscription.dropoff_time)

        return RideSpec(
            kid_id=subscription.kid_id,
            subscription_id=subscription.id,
            ride_type=ride_type_for(subscription.pickup_time),
            scheduled_pickup_time=datetime.combine(day, subscription.pickup_time),
            scheduled_dropoff_time=dropoff,
            pickup_address=subscription.pickup_address,
            pickup_latitude=subscription.pickup_latitude,
            pickup_longitude=subscription.pickup_longitude,
            dropoff_address=subscription.dropoff_address,
            dropoff_latitude=subscription.dropoff_latitude,
            dropoff_longitude=subscription.dropoff_longitude,
            distance_km=round(distance, 2),
            duration_minutes=duration,
            base_fare=subscription.base_fare,
            distance_fare=ride_distance_fare,
            total_fare=subscription.total_fare_per_ride,
            parent_notes=subscription.parent_notes,
        )
