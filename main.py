"""School Ride Subscription Service

Turns parents' standing ride orders into individual scheduled rides and plans
pickup routes for school runs.

Commands:
  - Initialize DB (creates tables):
      python main.py init_db

  - Seed demo data (schools, drivers, kids and subscriptions):
      python main.py seed

  - Generate rides for every active subscription through a date (default: today):
      python main.py generate [YYYY-MM-DD]

  - Propose an optimized pickup route for a school's subscribed kids:
      python main.py optimize <school_id> <driver_id>

  - Run the background generation sweep until interrupted:
      python main.py runscheduler

Subscription Lifecycle:
  - ACTIVE: rides are generated up to the horizon on every sweep
  - PAUSED: generation is frozen; resuming catches up the missed days
  - CANCELLED: terminal, no further rides
  - EXPIRED: terminal, set once the end date has passed
"""

import sys
import time
import math
import random
import logging
from datetime import date, datetime, timedelta
from faker import Faker

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Configuration constants
CITY_CENTER = (12.9716, 77.5946)  # Bangalore coordinates
CITY_RADIUS_KM = 15
NUM_SCHOOLS = 2
NUM_DRIVERS = 5
KIDS_PER_SCHOOL = 6

# Initialize faker for generating random names
faker = Faker()

from app import create_app, db
from errors import ServiceError
from models import Driver, Kid, PricingConfig, Ride, School, Subscription, SubscriptionStatus, SubscriptionType
from route_planning import optimize_route
from scheduling import generate_scheduled_rides
from subscriptions import create_subscription, generate_rides_for_all_active

# Create Flask application
app = create_app()
logging.getLogger().setLevel(app.config["LOG_LEVEL"])

# ---------------- HELPERS ----------------
def random_point_within_km(center, radius_km):
    """Generate a random point within a given radius from a center point"""
    # 1 deg lat ~ 111 km; 1 deg lon ~ 111 km * cos(lat)
    r = random.random()**0.5 * radius_km
    theta = random.random() * 2 * math.pi
    dx = r * math.cos(theta)
    dy = r * math.sin(theta)
    dlat = dy / 111.0
    dlng = dx / (111.0 * math.cos(math.radians(center[0])))
    return (center[0] + dlat, center[1] + dlng)

# ---------------- SEEDING ----------------
def seed_pricing():
    """Initialize pricing configuration in the database"""
    if PricingConfig.query.count() == 0:
        db.session.add(PricingConfig(key="rate_per_km", value=str(app.config["RATE_PER_KM"])))
        db.session.commit()
        logger.info("Pricing configuration seeded")
    else:
        logger.info("Pricing configuration already exists")

def seed_data():
    """Create schools, drivers, kids and one morning subscription per kid"""
    if School.query.count() > 0:
        logger.info("Seed data already exists in the database")
        return

    for i in range(NUM_DRIVERS):
        lat, lng = random_point_within_km(CITY_CENTER, CITY_RADIUS_KM)
        db.session.add(Driver(name=faker.name(), current_latitude=lat, current_longitude=lng, available=True))

    schools = []
    for i in range(NUM_SCHOOLS):
        lat, lng = random_point_within_km(CITY_CENTER, CITY_RADIUS_KM)
        school = School(name=f"{faker.last_name()} School", address=faker.street_address(), latitude=lat, longitude=lng)
        db.session.add(school)
        schools.append(school)
    db.session.commit()

    created = 0
    start = date.today() - timedelta(days=date.today().weekday())  # this Monday
    for school in schools:
        for k in range(KIDS_PER_SCHOOL):
            parent_id = random.randint(1000, 9999)
            kid = Kid(parent_id=parent_id, school_id=school.id, name=faker.first_name())
            db.session.add(kid)
            db.session.commit()

            home = random_point_within_km((school.latitude, school.longitude), 5)
            try:
                create_subscription({
                    "parent_id": parent_id,
                    "kid_id": kid.id,
                    "school_id": school.id,
                    "subscription_type": random.choice([SubscriptionType.WEEKLY, SubscriptionType.MONTHLY]),
                    "start_date": start,
                    "days_of_week": [1, 2, 3, 4, 5],
                    "pickup_time": random.choice(["07:15", "07:30", "07:45"]),
                    "dropoff_time": "08:15",
                    "pickup_address": faker.street_address(),
                    "pickup_latitude": home[0],
                    "pickup_longitude": home[1],
                    "dropoff_address": school.address,
                    "dropoff_latitude": school.latitude,
                    "dropoff_longitude": school.longitude,
                    "base_fare": 5.0,
                }, is_admin=True)
                created += 1
            except ServiceError as e:
                logger.error(f"Could not create subscription for kid {kid.id}: {e}")

    logger.info(f"Created {NUM_SCHOOLS} schools, {NUM_DRIVERS} drivers and {created} subscriptions")

# ---------------- REPORTING ----------------
def generate_summary():
    """Summarize subscriptions and generated rides"""
    from sqlalchemy import func

    by_status = dict(db.session.query(Subscription.status, func.count(Subscription.id)).group_by(Subscription.status).all())
    total_rides = Ride.query.count()
    subscription_rides = Ride.query.filter(Ride.subscription_id.isnot(None)).count()

    logger.info("\n=== SUBSCRIPTION SUMMARY ===")
    for status, count in sorted(by_status.items()):
        logger.info(f"{status}: {count}")
    logger.info(f"Total rides: {total_rides} ({subscription_rides} from subscriptions)")

    return {
        "subscriptions_by_status": by_status,
        "total_rides": total_rides,
        "subscription_rides": subscription_rides,
    }

# ---------------- CLI ENTRYPOINT ----------------
def init_db():
    """Initialize the database tables"""
    with app.app_context():
        db.create_all()
        logger.info("Database initialized")

def run_seed():
    with app.app_context():
        db.create_all()
        seed_pricing()
        seed_data()
        generate_summary()

def run_generate(up_to=None):
    """Generate rides for all active subscriptions through up_to"""
    with app.app_context():
        db.create_all()
        up_to_date = datetime.strptime(up_to, "%Y-%m-%d").date() if up_to else date.today()
        start_time = time.time()
        summary = generate_rides_for_all_active(up_to_date)
        logger.info(f"Generation completed in {time.time() - start_time:.2f} seconds: {summary}")
        generate_summary()

def run_optimize(school_id, driver_id):
    """Propose a route through the pickups of every active subscription at a school"""
    with app.app_context():
        pickups = [
            {"latitude": s.pickup_latitude, "longitude": s.pickup_longitude, "address": s.pickup_address}
            for s in Subscription.query.filter_by(school_id=school_id, status=SubscriptionStatus.ACTIVE).all()
        ]
        if not pickups:
            logger.warning(f"No active subscriptions for school {school_id}")
            return
        route = optimize_route({"school_id": school_id, "driver_id": driver_id, "waypoints": pickups})
        logger.info(f"Route {route.id}: {route.estimated_distance_km:.2f} km, {route.estimated_duration_minutes} min")
        for waypoint in route.waypoints:
            logger.info(f"  {waypoint['order']}: ({waypoint['latitude']:.4f}, {waypoint['longitude']:.4f}) {waypoint.get('address', '')}")

def run_scheduler():
    """Run one sweep now, then keep the background scheduler alive"""
    from app import start_scheduler

    with app.app_context():
        db.create_all()
    generate_scheduled_rides(app)
    start_scheduler(app)
    logger.info(f"Scheduler running every {app.config['GENERATION_INTERVAL_MINUTES']} minutes; Ctrl+C to stop")
    try:
        while True:
            time.sleep(60)
    except KeyboardInterrupt:
        logger.info("Scheduler stopped")

if __name__ == '__main__':
    if len(sys.argv) < 2:
        print("Usage: python main.py [init_db|seed|generate [YYYY-MM-DD]|optimize <school_id> <driver_id>|runscheduler]")
        sys.exit(1)

    command = sys.argv[1]

    try:
        if command == 'init_db':
            init_db()
        elif command == 'seed':
            run_seed()
        elif command == 'generate':
            run_generate(sys.argv[2] if len(sys.argv) > 2 else None)
        elif command == 'optimize' and len(sys.argv) == 4:
            run_optimize(int(sys.argv[2]), int(sys.argv[3]))
        elif command == 'runscheduler':
            run_scheduler()
        else:
            print("Unknown command. Available commands: init_db, seed, generate, optimize, runscheduler")
            sys.exit(1)
    except ServiceError as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(2)
