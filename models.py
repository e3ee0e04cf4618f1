from datetime import datetime
from app import db

class SubscriptionType:
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"

class SubscriptionStatus:
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

class RideStatus:
    PENDING = "PENDING"
    DRIVER_ASSIGNED = "DRIVER_ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

class RideType:
    TO_SCHOOL = "TO_SCHOOL"
    FROM_SCHOOL = "FROM_SCHOOL"

class RouteStatus:
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

class School(db.Model):
    __tablename__ = 'schools'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.String(255))
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)

class Driver(db.Model):
    __tablename__ = 'drivers'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100))
    current_latitude = db.Column(db.Float, nullable=True)
    current_longitude = db.Column(db.Float, nullable=True)
    available = db.Column(db.Boolean, default=True)

class Kid(db.Model):
    __tablename__ = 'kids'
    id = db.Column(db.Integer, primary_key=True)
    parent_id = db.Column(db.Integer, nullable=False, index=True)
    school_id = db.Column(db.Integer, db.ForeignKey('schools.id'), nullable=True)
    name = db.Column(db.String(100))

class Subscription(db.Model):
    __tablename__ = 'subscriptions'
    id = db.Column(db.Integer, primary_key=True)
    parent_id = db.Column(db.Integer, nullable=False, index=True)
    kid_id = db.Column(db.Integer, db.ForeignKey('kids.id'), nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('schools.id'), nullable=False)
    subscription_type = db.Column(db.String(20), nullable=False, default=SubscriptionType.WEEKLY)
    status = db.Column(db.String(20), nullable=False, default=SubscriptionStatus.ACTIVE, index=True)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    days_of_week = db.Column(db.JSON, nullable=False)  # 0=Sunday .. 6=Saturday
    pickup_time = db.Column(db.Time, nullable=False)
    dropoff_time = db.Column(db.Time, nullable=True)
    pickup_address = db.Column(db.String(255), nullable=False)
    pickup_latitude = db.Column(db.Float, nullable=False)
    pickup_longitude = db.Column(db.Float, nullable=False)
    dropoff_address = db.Column(db.String(255), nullable=False)
    dropoff_latitude = db.Column(db.Float, nullable=False)
    dropoff_longitude = db.Column(db.Float, nullable=False)
    base_fare = db.Column(db.Float, nullable=False)
    distance_fare = db.Column(db.Float, nullable=True)
    total_fare_per_ride = db.Column(db.Float, nullable=False)
    subscription_total = db.Column(db.Float, nullable=True)
    parent_notes = db.Column(db.Text, nullable=True)
    auto_generate_rides = db.Column(db.Boolean, nullable=False, default=True)
    last_ride_generated_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    paused_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    rides = db.relationship('Ride', backref='subscription', lazy=True)

class Ride(db.Model):
    __tablename__ = 'rides'
    id = db.Column(db.Integer, primary_key=True)
    kid_id = db.Column(db.Integer, db.ForeignKey('kids.id'), nullable=False, index=True)
    subscription_id = db.Column(db.Integer, db.ForeignKey('subscriptions.id'), nullable=True)
    route_id = db.Column(db.Integer, db.ForeignKey('routes.id'), nullable=True)
    driver_id = db.Column(db.Integer, db.ForeignKey('drivers.id'), nullable=True)
    status = db.Column(db.String(30), default=RideStatus.PENDING)
    ride_type = db.Column(db.String(20), nullable=False)
    scheduled_pickup_time = db.Column(db.DateTime, nullable=False, index=True)
    scheduled_dropoff_time = db.Column(db.DateTime, nullable=True)
    actual_pickup_time = db.Column(db.DateTime)
    actual_dropoff_time = db.Column(db.DateTime)
    pickup_address = db.Column(db.String(255))
    pickup_latitude = db.Column(db.Float)
    pickup_longitude = db.Column(db.Float)
    dropoff_address = db.Column(db.String(255))
    dropoff_latitude = db.Column(db.Float)
    dropoff_longitude = db.Column(db.Float)
    distance_km = db.Column(db.Float, default=0.0)
    duration_minutes = db.Column(db.Integer, nullable=True)
    base_fare = db.Column(db.Float, default=0.0)
    distance_fare = db.Column(db.Float, nullable=True)
    total_fare = db.Column(db.Float, default=0.0)
    parent_notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    cancelled_at = db.Column(db.DateTime)
    cancellation_reason = db.Column(db.String(255))

class Route(db.Model):
    __tablename__ = 'routes'
    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('schools.id'), nullable=False)
    proposed_driver_id = db.Column(db.Integer, db.ForeignKey('drivers.id'), nullable=False)
    driver_id = db.Column(db.Integer, db.ForeignKey('drivers.id'), nullable=True)
    name = db.Column(db.String(200))
    description = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=RouteStatus.PENDING)
    waypoints = db.Column(db.JSON, nullable=False, default=list)
    estimated_distance_km = db.Column(db.Float, nullable=True)
    estimated_duration_minutes = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class PricingConfig(db.Model):
    __tablename__ = 'pricing_config'
    key = db.Column(db.String(50), primary_key=True)
    value = db.Column(db.String(50), nullable=False)
