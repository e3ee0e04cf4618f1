# Subscription lifecycle.
#
#     ACTIVE  <-> PAUSED      pause / resume (resume re-arms generation)
#     ACTIVE  --> CANCELLED   terminal
#     PAUSED  --> CANCELLED   terminal
#     ACTIVE  --> EXPIRED     terminal, once the end date has passed
#     PAUSED  --> EXPIRED
#
# Ride generation is gated on can_generate(). Moving a subscription away from
# ACTIVE simply stops future generation; it is not an error.

from datetime import datetime

from errors import InvalidState
from models import SubscriptionStatus

TERMINAL_STATUSES = frozenset([SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED])

ALLOWED_TRANSITIONS = {
    SubscriptionStatus.ACTIVE: frozenset([
        SubscriptionStatus.PAUSED, SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED,
    ]),
    SubscriptionStatus.PAUSED: frozenset([
        SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED,
    ]),
    SubscriptionStatus.CANCELLED: frozenset(),
    SubscriptionStatus.EXPIRED: frozenset(),
}

ALL_STATUSES = frozenset(ALLOWED_TRANSITIONS)

def can_generate(subscription):
    return subscription.status == SubscriptionStatus.ACTIVE and bool(subscription.auto_generate_rides)

def ensure_can_generate(subscription):
    if subscription.status != SubscriptionStatus.ACTIVE:
        raise InvalidState(
            f"Cannot generate rides: subscription {subscription.id} is {subscription.status}. "
            "Only ACTIVE subscriptions can generate rides."
        )
    if not subscription.auto_generate_rides:
        raise InvalidState(
            f"Cannot generate rides: auto-generation is disabled for subscription {subscription.id}"
        )

def transition(subscription, new_status, now=None):
    """Move a subscription to new_status, stamping paused_at / cancelled_at.

    Setting the current status again is a no-op. Returns True when the status
    actually changed.
    """
    if new_status not in ALL_STATUSES:
        raise InvalidState(f"Unknown subscription status {new_status!r}")
    if new_status == subscription.status:
        return False
    if new_status not in ALLOWED_TRANSITIONS.get(subscription.status, frozenset()):
        raise InvalidState(
            f"Subscription {subscription.id} cannot move from {subscription.status} to {new_status}"
        )

    now = now or datetime.utcnow()
    subscription.status = new_status
    if new_status == SubscriptionStatus.PAUSED:
        subscription.paused_at = now
    elif new_status == SubscriptionStatus.CANCELLED:
        subscription.cancelled_at = now
    return True

def pause(subscription, now=None):
    if subscription.status != SubscriptionStatus.ACTIVE:
        raise InvalidState(f"Subscription {subscription.id} is {subscription.status}, not ACTIVE")
    return transition(subscription, SubscriptionStatus.PAUSED, now)

def resume(subscription, now=None):
    # Checkpoint is left alone so the next generation run catches up the gap
    if subscription.status != SubscriptionStatus.PAUSED:
        raise InvalidState(f"Subscription {subscription.id} is not paused")
    return transition(subscription, SubscriptionStatus.ACTIVE, now)

def cancel(subscription, now=None):
    return transition(subscription, SubscriptionStatus.CANCELLED, now)

def expire(subscription, now=None):
    return transition(subscription, SubscriptionStatus.EXPIRED, now)

def is_past_end(subscription, today):
    return subscription.end_date is not None and subscription.end_date < today
