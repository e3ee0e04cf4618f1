import calendar
import logging
import threading
from datetime import date, datetime, timedelta
from flask import current_app
from app import db
from errors import ConditionalUpdateConflict, InvalidInput, InvalidState, NotFound, ServiceError, Unauthorized
from generation import RideGenerator, count_rides_in_period
from models import Kid, School, Subscription, SubscriptionStatus, SubscriptionType
from pricing import distance_fare, get_rate, total_fare
from schemas import SubscriptionCreate, SubscriptionUpdate, parse
from stores import SqlRideStore, SqlSubscriptionStore
from utils import haversine
import lifecycle

logger = logging.getLogger(__name__)

# Months added to start_date when a subscription is created without an end date
DEFAULT_TERM_MONTHS = {
    SubscriptionType.WEEKLY: 3,
    SubscriptionType.MONTHLY: 6,
}

# One generation run per subscription at a time within this process.
# Subscriptions share a fixed set of lock stripes so memory stays bounded.
GENERATION_LOCK_STRIPES = 64
_generation_locks = [threading.Lock() for _ in range(GENERATION_LOCK_STRIPES)]

def _generation_lock(subscription_id):
    return _generation_locks[hash(subscription_id) % GENERATION_LOCK_STRIPES]

def add_months(day, months):
    """Same day-of-month `months` later, clamped to the last day of a shorter month"""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))

def default_end_date(start_date, subscription_type):
    months = DEFAULT_TERM_MONTHS.get(subscription_type)
    return add_months(start_date, months) if months else None

def default_horizon(today=None):
    """Date through which rides are generated when no horizon is given"""
    today = today or date.today()
    return today + timedelta(days=current_app.config.get("GENERATION_HORIZON_DAYS", 0))

def build_generator():
    return RideGenerator(
        SqlRideStore(),
        SqlSubscriptionStore(),
        per_km_rate=get_rate("rate_per_km", current_app.config["RATE_PER_KM"]),
        average_speed_kmh=current_app.config["AVERAGE_SPEED_KMH"],
    )

def get_subscription(subscription_id, user_id=None, is_admin=False):
    subscription = SqlSubscriptionStore().load(subscription_id)
    if user_id is not None and not is_admin and subscription.parent_id != user_id:
        raise Unauthorized(f"Subscription {subscription_id} does not belong to parent {user_id}")
    return subscription

def subscriptions_for_parent(parent_id, active_only=False):
    query = Subscription.query.filter_by(parent_id=parent_id)
    if active_only:
        query = query.filter_by(status=SubscriptionStatus.ACTIVE)
    return query.order_by(Subscription.created_at.desc()).all()

def create_subscription(data, user_id=None, is_admin=False, today=None):
    """Create a subscription and generate its first rides when it is eligible"""
    payload = parse(SubscriptionCreate, data)

    if not is_admin and user_id is not None and payload.parent_id != user_id:
        raise Unauthorized("Parent ID must match authenticated user")

    school = db.session.get(School, payload.school_id)
    if school is None:
        raise NotFound(f"School {payload.school_id} not found")
    kid = db.session.get(Kid, payload.kid_id)
    if kid is None:
        raise NotFound(f"Kid {payload.kid_id} not found")
    if not is_admin and kid.parent_id != payload.parent_id:
        raise Unauthorized(f"Kid {kid.id} does not belong to parent {payload.parent_id}")

    fields = payload.model_dump()
    if fields["end_date"] is None:
        fields["end_date"] = default_end_date(payload.start_date, payload.subscription_type)
        logger.info(f"Defaulted end date to {fields['end_date']} for {payload.subscription_type} subscription")

    if fields["total_fare_per_ride"] is None:
        distance = haversine(
            payload.pickup_latitude, payload.pickup_longitude,
            payload.dropoff_latitude, payload.dropoff_longitude,
        )
        per_ride_distance_fare = fields["distance_fare"]
        if per_ride_distance_fare is None:
            per_ride_distance_fare = distance_fare(
                distance, payload.base_fare, get_rate("rate_per_km", current_app.config["RATE_PER_KM"])
            )
        fields["total_fare_per_ride"] = round(total_fare(payload.base_fare, per_ride_distance_fare), 2)
        logger.info(f"Derived fare per ride ${fields['total_fare_per_ride']:.2f} for {distance:.2f} km")

    if fields["subscription_total"] is None:
        number_of_rides = count_rides_in_period(
            payload.start_date, fields["end_date"] or payload.start_date, payload.days_of_week
        )
        fields["subscription_total"] = round(number_of_rides * fields["total_fare_per_ride"], 2)
        logger.info(f"Subscription covers {number_of_rides} rides, total ${fields['subscription_total']:.2f}")

    subscription = Subscription(**fields)
    db.session.add(subscription)
    db.session.commit()
    logger.info(f"Created subscription {subscription.id} for kid {subscription.kid_id} "
                f"({subscription.status}, days {subscription.days_of_week})")

    if lifecycle.can_generate(subscription):
        generate_rides(subscription.id, default_horizon(today))

    return subscription

def update_subscription(subscription_id, data, user_id=None, is_admin=False, today=None):
    """Apply a sparse update; becoming eligible for generation again re-triggers it"""
    changes = parse(SubscriptionUpdate, data).changes()
    subscription = get_subscription(subscription_id, user_id, is_admin)
    previous_status = subscription.status
    previously_generating = lifecycle.can_generate(subscription)

    new_status = changes.pop("status", None)
    for field, value in changes.items():
        setattr(subscription, field, value)
    if subscription.end_date is not None and subscription.end_date < subscription.start_date:
        db.session.rollback()
        raise InvalidInput("End date must not be before start date")

    try:
        if new_status is not None:
            lifecycle.transition(subscription, new_status)
    except InvalidState:
        db.session.rollback()
        raise
    db.session.commit()

    if subscription.status != previous_status:
        logger.info(f"Subscription {subscription.id} status {previous_status} -> {subscription.status}")
    if changes:
        logger.info(f"Subscription {subscription.id} updated fields: {sorted(changes)}")

    # Re-entering ACTIVE or switching auto-generation back on catches up missed days
    if not previously_generating and lifecycle.can_generate(subscription):
        generate_rides(subscription.id, default_horizon(today))

    return subscription

def pause_subscription(subscription_id, user_id=None, is_admin=False):
    return update_subscription(subscription_id, {"status": SubscriptionStatus.PAUSED}, user_id, is_admin)

def resume_subscription(subscription_id, user_id=None, is_admin=False, today=None):
    """Reactivate a paused subscription and catch up the days missed while paused"""
    subscription = get_subscription(subscription_id, user_id, is_admin)
    lifecycle.resume(subscription)
    db.session.commit()
    logger.info(f"Subscription {subscription.id} resumed from checkpoint {subscription.last_ride_generated_date}")

    if lifecycle.can_generate(subscription):
        generate_rides(subscription.id, default_horizon(today))
    return subscription

def cancel_subscription(subscription_id, user_id=None, is_admin=False):
    return update_subscription(subscription_id, {"status": SubscriptionStatus.CANCELLED}, user_id, is_admin)

def generate_rides(subscription_id, up_to_date=None, max_retries=None):
    """Generate the rides due for one subscription and commit them.

    A checkpoint conflict rolls the run back and retries it from a fresh read.
    """
    up_to_date = up_to_date or default_horizon()
    if max_retries is None:
        max_retries = current_app.config.get("GENERATION_MAX_RETRIES", 3)

    with _generation_lock(subscription_id):
        attempt = 0
        while True:
            attempt += 1
            subscription = SqlSubscriptionStore().load(subscription_id)
            try:
                generated = build_generator().generate(subscription, up_to_date)
                db.session.commit()
            except ConditionalUpdateConflict as e:
                db.session.rollback()
                if attempt > max_retries:
                    logger.error(f"Subscription {subscription_id} - giving up after {attempt} attempts: {e}")
                    raise
                logger.warning(f"Subscription {subscription_id} - {e}; retrying (attempt {attempt + 1})")
                continue
            except Exception:
                db.session.rollback()
                raise

            if generated:
                logger.info(f"Subscription {subscription_id} - generated {generated} rides through {up_to_date}, "
                            f"checkpoint now {subscription.last_ride_generated_date}")
            else:
                logger.info(f"Subscription {subscription_id} - no new rides through {up_to_date}")
            return generated

def expire_ended_subscriptions(today=None):
    """Mark ACTIVE/PAUSED subscriptions whose end date has passed as EXPIRED"""
    today = today or date.today()
    expired = 0
    for subscription in SqlSubscriptionStore().find_past_end(today):
        if not lifecycle.is_past_end(subscription, today):
            continue
        lifecycle.expire(subscription, datetime.utcnow())
        expired += 1
        logger.info(f"Subscription {subscription.id} expired (end date {subscription.end_date})")
    db.session.commit()
    return expired

def generate_rides_for_all_active(up_to_date=None):
    """Run generation for every eligible subscription; one failure never stops the sweep"""
    up_to_date = up_to_date or default_horizon()
    subscriptions = SqlSubscriptionStore().find_active_for_generation(up_to_date)
    logger.info(f"Found {len(subscriptions)} subscriptions eligible for ride generation through {up_to_date}")

    summary = {"subscriptions": 0, "rides": 0, "failed": 0}
    for subscription_id in [s.id for s in subscriptions]:
        try:
            summary["rides"] += generate_rides(subscription_id, up_to_date)
            summary["subscriptions"] += 1
        except ServiceError as e:
            summary["failed"] += 1
            logger.error(f"Failed to generate rides for subscription {subscription_id}: {e}")

    logger.info(f"Generation sweep through {up_to_date}: {summary['rides']} rides for "
                f"{summary['subscriptions']} subscriptions, {summary['failed']} failed")
    return summary
