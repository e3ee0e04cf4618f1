
import pytest

from app import create_app, db
from models import Driver, Kid, School, SubscriptionType

@pytest.fixture
def app():
    app = create_app('config.TestConfig')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def school(app):
    school = School(name="Hillside School", address="1 School Lane", latitude=12.97, longitude=77.59)
    db.session.add(school)
    db.session.commit()
    return school

@pytest.fixture
def kid(app, school):
    kid = Kid(parent_id=42, school_id=school.id, name="Asha")
    db.session.add(kid)
    db.session.commit()
    return kid

@pytest.fixture
def driver(app):
    driver = Driver(name="Ravi", current_latitude=0.0, current_longitude=0.0, available=True)
    db.session.add(driver)
    db.session.commit()
    return driver

@pytest.fixture
def subscription_payload(kid, school):
    def build(**overrides):
        payload = {
            "parent_id": kid.parent_id,
            "kid_id": kid.id,
            "school_id": school.id,
            "subscription_type": SubscriptionType.WEEKLY,
            "start_date": "2024-01-01",
            "days_of_week": [0, 1, 2, 3, 4, 5, 6],
            "pickup_time": "07:30",
            "dropoff_time": "08:10",
            "pickup_address": "12 Park Road",
            "pickup_latitude": 12.93,
            "pickup_longitude": 77.62,
            "dropoff_address": school.address,
            "dropoff_latitude": school.latitude,
            "dropoff_longitude": school.longitude,
            "base_fare": 5.0,
            "total_fare_per_ride": 10.0,
        }
        payload.update(overrides)
        return payload
    return build
