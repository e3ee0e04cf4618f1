import logging
from flask import current_app
from app import db
from errors import InvalidState, NotFound, Unauthorized
from models import Driver, Route, RouteStatus, School
from routing import Waypoint, estimate_travel_time, optimize, total_distance
from schemas import OptimizeRouteInput, RouteCreate, RouteUpdate, parse

logger = logging.getLogger(__name__)

def _school(school_id):
    school = db.session.get(School, school_id)
    if school is None:
        raise NotFound(f"School {school_id} not found")
    return school

def _driver(driver_id, require_available=False):
    driver = db.session.get(Driver, driver_id)
    if driver is None:
        raise NotFound(f"Driver {driver_id} not found")
    if require_available and not driver.available:
        raise InvalidState(f"Driver {driver_id} is not available")
    return driver

def _waypoints(items):
    return [Waypoint(w.latitude, w.longitude, w.address, w.order) for w in items]

def _estimate(waypoints):
    distance = total_distance(waypoints)
    return distance, estimate_travel_time(distance, current_app.config["AVERAGE_SPEED_KMH"])

def get_route(route_id):
    route = db.session.get(Route, route_id)
    if route is None or not route.is_active:
        raise NotFound(f"Route {route_id} not found")
    return route

def list_routes(school_id=None, driver_id=None, active_only=True):
    query = Route.query
    if school_id is not None:
        query = query.filter_by(school_id=school_id)
    elif driver_id is not None:
        query = query.filter_by(driver_id=driver_id)
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Route.created_at.desc()).all()

def routes_for_school(school_id):
    _school(school_id)
    return list_routes(school_id=school_id)

def routes_for_driver(driver_id):
    _driver(driver_id)
    return list_routes(driver_id=driver_id)

def proposed_routes_for_driver(driver_id):
    _driver(driver_id)
    return Route.query.filter_by(
        proposed_driver_id=driver_id, status=RouteStatus.PENDING, is_active=True
    ).order_by(Route.created_at.desc()).all()

def create_route(data):
    """Propose a route to a driver, estimating distance/duration from its waypoints"""
    payload = parse(RouteCreate, data)
    _school(payload.school_id)
    _driver(payload.proposed_driver_id, require_available=True)

    waypoints = _waypoints(payload.waypoints)
    distance, duration = payload.estimated_distance_km, payload.estimated_duration_minutes
    if len(waypoints) > 1:
        distance, duration = _estimate(waypoints)

    route = Route(
        school_id=payload.school_id,
        proposed_driver_id=payload.proposed_driver_id,
        name=payload.name,
        description=payload.description,
        waypoints=[w.to_dict() for w in waypoints],
        estimated_distance_km=distance,
        estimated_duration_minutes=duration,
        status=RouteStatus.PENDING,
    )
    db.session.add(route)
    db.session.commit()
    logger.info(f"Route {route.id} proposed to driver {route.proposed_driver_id} for school {route.school_id}")
    return route

def optimize_route(data):
    """Order the pickups for a school run and store the result as a proposal.

    The route starts at the driver's current location (or the first pickup when
    the driver has none) and ends at the school.
    """
    payload = parse(OptimizeRouteInput, data)
    school = _school(payload.school_id)
    driver = _driver(payload.driver_id, require_available=True)

    pickups = _waypoints(payload.waypoints)
    end = Waypoint(school.latitude, school.longitude, school.address)
    if driver.current_latitude is not None and driver.current_longitude is not None:
        start = Waypoint(driver.current_latitude, driver.current_longitude)
    else:
        start, pickups = pickups[0], pickups[1:]
        logger.info(f"Driver {driver.id} has no current location, starting from first pickup")

    result = optimize(pickups, start, end, current_app.config["AVERAGE_SPEED_KMH"])
    logger.info(f"Optimized {len(pickups)} pickups for school {school.id}: "
                f"{result.total_distance_km:.2f} km, {result.total_duration_minutes} min")

    route = Route(
        school_id=school.id,
        proposed_driver_id=driver.id,
        name=payload.name or f"Optimized Route to {school.name}",
        description=payload.description or "Optimized route for multiple pickups",
        waypoints=[w.to_dict() for w in result.waypoints],
        estimated_distance_km=result.total_distance_km,
        estimated_duration_minutes=result.total_duration_minutes,
        status=RouteStatus.PENDING,
    )
    db.session.add(route)
    db.session.commit()
    logger.info(f"Route {route.id} proposed to driver {driver.id}")
    return route

def update_route(route_id, data):
    changes = parse(RouteUpdate, data).changes()
    route = get_route(route_id)

    if changes.get("school_id") is not None:
        _school(changes["school_id"])
    if changes.get("driver_id") is not None:
        _driver(changes["driver_id"])

    if changes.get("waypoints") is not None:
        waypoints = [Waypoint.from_dict(w) for w in changes["waypoints"]]
        changes["waypoints"] = [w.to_dict() for w in waypoints]
        if len(waypoints) > 1:
            changes["estimated_distance_km"], changes["estimated_duration_minutes"] = _estimate(waypoints)

    for field, value in changes.items():
        setattr(route, field, value)
    db.session.commit()
    logger.info(f"Route {route.id} updated fields: {sorted(changes)}")
    return route

def delete_route(route_id):
    route = get_route(route_id)
    route.is_active = False
    db.session.commit()
    logger.info(f"Route {route.id} deactivated")

def _respond_to_proposal(route_id, driver_id, new_status):
    route = get_route(route_id)
    if route.proposed_driver_id != driver_id:
        raise Unauthorized(f"Route {route_id} is not proposed to driver {driver_id}")
    if route.status != RouteStatus.PENDING:
        raise InvalidState(f"Route is already {route.status.lower()}")

    route.status = new_status
    if new_status == RouteStatus.ACCEPTED:
        route.driver_id = driver_id
    db.session.commit()
    logger.info(f"Driver {driver_id} {new_status.lower()} route {route.id}")
    return route

def accept_route(route_id, driver_id):
    return _respond_to_proposal(route_id, driver_id, RouteStatus.ACCEPTED)

def reject_route(route_id, driver_id):
    return _respond_to_proposal(route_id, driver_id, RouteStatus.REJECTED)
