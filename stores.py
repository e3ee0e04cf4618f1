from datetime import datetime

from app import db
from errors import NotFound
from models import Ride, RideStatus, Subscription, SubscriptionStatus

class SqlRideStore:
    """RideStore over the rides table. Creates are flushed, not committed."""

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def exists_for_kid_date_time(self, kid_id, day, pickup_time):
        """True when the kid already has a live ride scheduled at day + pickup_time"""
        scheduled = datetime.combine(day, pickup_time)
        query = self.session.query(Ride.id).filter(
            Ride.kid_id == kid_id,
            Ride.scheduled_pickup_time == scheduled,
            Ride.status != RideStatus.CANCELLED,
        )
        return self.session.query(query.exists()).scalar()

    def create(self, ride_spec):
        ride = Ride(status=RideStatus.PENDING, **ride_spec.as_dict())
        self.session.add(ride)
        # Flush so the next day's existence check sees this ride
        self.session.flush()
        return ride

class SqlSubscriptionStore:
    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def load(self, subscription_id):
        subscription = self.session.get(Subscription, subscription_id)
        if subscription is None:
            raise NotFound(f"Subscription {subscription_id} not found")
        return subscription

    def advance_checkpoint(self, subscription_id, expected, new):
        """Set last_ride_generated_date to new only if it still equals expected"""
        rows = self.session.query(Subscription).filter(
            Subscription.id == subscription_id,
            Subscription.last_ride_generated_date.is_(None) if expected is None
            else Subscription.last_ride_generated_date == expected,
        ).update(
            {
                Subscription.last_ride_generated_date: new,
                Subscription.updated_at: datetime.utcnow(),
            },
            synchronize_session="fetch",
        )
        return rows == 1

    def find_active_for_generation(self, up_to_date):
        """ACTIVE auto-generating subscriptions started by up_to_date with days still to generate.

        The end date is compared with the checkpoint, not with up_to_date: the
        generator clamps the walk to end_date, so a subscription ending inside
        the horizon still gets its last rides.
        """
        return self.session.query(Subscription).filter(
            Subscription.status == SubscriptionStatus.ACTIVE,
            Subscription.auto_generate_rides.is_(True),
            Subscription.start_date <= up_to_date,
            db.or_(
                Subscription.end_date.is_(None),
                Subscription.last_ride_generated_date.is_(None),
                Subscription.last_ride_generated_date < Subscription.end_date,
            ),
        ).order_by(Subscription.start_date.asc(), Subscription.id.asc()).all()

    def find_past_end(self, today):
        return self.session.query(Subscription).filter(
            Subscription.status.in_([SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED]),
            Subscription.end_date.isnot(None),
            Subscription.end_date < today,
        ).all()
