import pytest

import route_planning
from app import db
from errors import InvalidInput, InvalidState, NotFound, Unauthorized
from models import Driver, Route, RouteStatus, School
from utils import haversine

@pytest.fixture
def equator_school(app):
    school = School(name="Equator School", address="Main Road", latitude=0.0, longitude=15.0)
    db.session.add(school)
    db.session.commit()
    return school

def pickups(*longitudes):
    return [{"latitude": 0.0, "longitude": lon, "address": f"stop {lon:g}"} for lon in longitudes]

def test_optimize_route_orders_pickups_and_stores_proposal(equator_school, driver):
    route = route_planning.optimize_route({
        "school_id": equator_school.id,
        "driver_id": driver.id,
        "waypoints": pickups(10, 5),
    })

    assert route.status == RouteStatus.PENDING
    assert route.proposed_driver_id == driver.id
    assert route.driver_id is None
    assert route.name == "Optimized Route to Equator School"
    assert [(w["longitude"], w["order"]) for w in route.waypoints] == [(0.0, 0), (5.0, 1), (10.0, 2), (15.0, 3)]
    assert route.waypoints[-1]["address"] == "Main Road"
    expected = haversine(0, 0, 0, 5) + haversine(0, 5, 0, 10) + haversine(0, 10, 0, 15)
    assert route.estimated_distance_km == pytest.approx(expected, rel=1e-6)
    assert route.estimated_duration_minutes == round(expected / 40 * 60)

def test_optimize_starts_at_first_pickup_without_driver_location(equator_school):
    driver = Driver(name="No GPS", available=True)
    db.session.add(driver)
    db.session.commit()

    route = route_planning.optimize_route({
        "school_id": equator_school.id,
        "driver_id": driver.id,
        "waypoints": pickups(10, 5),
        "name": "Morning run",
    })

    assert route.name == "Morning run"
    assert [w["longitude"] for w in route.waypoints] == [10.0, 5.0, 15.0]

def test_optimize_rejects_bad_requests(equator_school, driver):
    with pytest.raises(InvalidInput):
        route_planning.optimize_route({"school_id": equator_school.id, "driver_id": driver.id, "waypoints": []})
    with pytest.raises(NotFound):
        route_planning.optimize_route({"school_id": 999, "driver_id": driver.id, "waypoints": pickups(5)})
    with pytest.raises(NotFound):
        route_planning.optimize_route({"school_id": equator_school.id, "driver_id": 999, "waypoints": pickups(5)})

    driver.available = False
    db.session.commit()
    with pytest.raises(InvalidState):
        route_planning.optimize_route({"school_id": equator_school.id, "driver_id": driver.id, "waypoints": pickups(5)})
    assert Route.query.count() == 0

def test_create_route_estimates_from_waypoints(equator_school, driver):
    route = route_planning.create_route({
        "school_id": equator_school.id,
        "proposed_driver_id": driver.id,
        "waypoints": pickups(0, 5),
        "estimated_distance_km": 1.0,
    })
    assert route.estimated_distance_km == pytest.approx(haversine(0, 0, 0, 5))
    assert route.estimated_duration_minutes == round(haversine(0, 0, 0, 5) / 40 * 60)

def test_create_route_keeps_supplied_estimates_for_single_waypoint(equator_school, driver):
    route = route_planning.create_route({
        "school_id": equator_school.id,
        "proposed_driver_id": driver.id,
        "waypoints": pickups(5),
        "estimated_distance_km": 12.5,
        "estimated_duration_minutes": 20,
    })
    assert route.estimated_distance_km == 12.5
    assert route.estimated_duration_minutes == 20

def test_update_route_recomputes_estimates(equator_school, driver):
    route = route_planning.create_route({"school_id": equator_school.id, "proposed_driver_id": driver.id})

    route_planning.update_route(route.id, {"waypoints": pickups(0, 1, 2), "description": "Short hop"})

    assert route.description == "Short hop"
    assert [w["longitude"] for w in route.waypoints] == [0.0, 1.0, 2.0]
    assert route.estimated_distance_km == pytest.approx(haversine(0, 0, 0, 2), rel=1e-9)

    with pytest.raises(NotFound):
        route_planning.update_route(route.id, {"driver_id": 999})

def test_accept_route(equator_school, driver):
    route = route_planning.optimize_route({"school_id": equator_school.id, "driver_id": driver.id, "waypoints": pickups(5)})
    other = Driver(name="Other", available=True)
    db.session.add(other)
    db.session.commit()

    with pytest.raises(Unauthorized):
        route_planning.accept_route(route.id, other.id)

    route_planning.accept_route(route.id, driver.id)
    assert route.status == RouteStatus.ACCEPTED
    assert route.driver_id == driver.id
    assert route_planning.routes_for_driver(driver.id) == [route]

    with pytest.raises(InvalidState, match="already accepted"):
        route_planning.reject_route(route.id, driver.id)

def test_reject_route(equator_school, driver):
    route = route_planning.optimize_route({"school_id": equator_school.id, "driver_id": driver.id, "waypoints": pickups(5)})
    assert route_planning.proposed_routes_for_driver(driver.id) == [route]

    route_planning.reject_route(route.id, driver.id)

    assert route.status == RouteStatus.REJECTED
    assert route.driver_id is None
    assert route_planning.proposed_routes_for_driver(driver.id) == []

def test_delete_route_is_soft(equator_school, driver):
    route = route_planning.create_route({"school_id": equator_school.id, "proposed_driver_id": driver.id})
    assert route_planning.routes_for_school(equator_school.id) == [route]

    route_planning.delete_route(route.id)

    assert db.session.get(Route, route.id).is_active is False
    assert route_planning.routes_for_school(equator_school.id) == []
    with pytest.raises(NotFound):
        route_planning.get_route(route.id)
    with pytest.raises(NotFound):
        route_planning.routes_for_school(999)
