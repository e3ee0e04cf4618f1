from datetime import date

import scheduling
import subscriptions
from app import db
from models import Ride, Subscription, SubscriptionStatus

def test_sweep_generates_final_days_then_expires(app, subscription_payload):
    ended = subscriptions.create_subscription(subscription_payload(end_date="2024-01-03"), today=date(2023, 12, 1))
    running = subscriptions.create_subscription(subscription_payload(pickup_time="15:00"), today=date(2023, 12, 1))
    ended_id, running_id = ended.id, running.id
    db.session.close()

    summary = scheduling.generate_scheduled_rides(app, today=date(2024, 1, 5))

    assert summary == {"subscriptions": 2, "rides": 8, "failed": 0}
    assert db.session.get(Subscription, ended_id).status == SubscriptionStatus.EXPIRED
    assert db.session.get(Subscription, ended_id).last_ride_generated_date == date(2024, 1, 3)
    assert Ride.query.filter_by(subscription_id=ended_id).count() == 3
    assert Ride.query.filter_by(subscription_id=running_id).count() == 5

def test_sweep_covers_subscription_ending_inside_horizon(app, subscription_payload):
    app.config["GENERATION_HORIZON_DAYS"] = 7
    subscription = subscriptions.create_subscription(
        subscription_payload(end_date="2024-01-10"), today=date(2023, 12, 1)
    )
    subscription_id = subscription.id
    db.session.close()

    summary = scheduling.generate_scheduled_rides(app, today=date(2024, 1, 5))

    assert summary == {"subscriptions": 1, "rides": 10, "failed": 0}
    assert Ride.query.filter_by(subscription_id=subscription_id).count() == 10
    assert db.session.get(Subscription, subscription_id).status == SubscriptionStatus.ACTIVE
    db.session.close()

    # Fully generated through its end date, so the next sweep leaves it alone
    assert scheduling.generate_scheduled_rides(app, today=date(2024, 1, 6)) == {
        "subscriptions": 0, "rides": 0, "failed": 0,
    }

def test_sweep_swallows_and_logs_errors(app, monkeypatch, caplog):
    def boom(up_to_date):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(scheduling, "generate_rides_for_all_active", boom)

    assert scheduling.generate_scheduled_rides(app, today=date(2024, 1, 5)) is None
    assert "database unavailable" in caplog.text
