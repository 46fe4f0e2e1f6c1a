import asyncio

import pytest

from src.routeplanner.errors import (
    AuthRequiredError,
    OptimizationInProgressError,
    RouteValidationError,
    UpstreamError,
)
from src.routeplanner.models.domain import OptimizeFor, RoutePreferences, SessionState, Stop
from src.routeplanner.services.routing.push import RouteUpdateChannel
from src.routeplanner.services.routing.session import VALIDATION_MESSAGE, OptimizationSession
from src.routeplanner.services.routing.stops import END_LABEL, START_LABEL, StopCollection

ENDPOINT = "http://traffic.test/traffic/routes/optimize"


class DummyGateway:
    def __init__(self, responses=None, error: Exception | None = None) -> None:
        self.responses = list(responses or [])
        self.error = error
        self.posts: list[tuple[str, dict]] = []
        self.gets: list[str] = []

    async def post(self, endpoint, json=None, **kwargs):
        self.posts.append((endpoint, json))
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)

    async def get(self, endpoint, **kwargs):
        self.gets.append(endpoint)
        return self.responses.pop(0)


def _two_stops() -> StopCollection:
    return StopCollection(
        [
            Stop(id="A", latitude=0.0, longitude=0.0, address="Alpha", priority=2, estimated_arrival="10:00"),
            Stop(id="B", latitude=1.0, longitude=1.0, address="Bravo"),
        ]
    )


def _route_body(request_id: str = "req-1") -> dict:
    return {
        "requestId": request_id,
        "status": "COMPLETED",
        "optimizedRoute": {
            "totalDistance": 12.5,
            "totalDuration": 30,
            "waypoints": [
                {"latitude": 1.0, "longitude": 1.0, "address": "Bravo", "estimatedArrival": "10:05"},
                {"latitude": 0.0, "longitude": 0.0, "address": "Alpha"},
            ],
        },
        "optimizationMetrics": {"timeSaved": 5, "distanceSaved": 1.5, "fuelSaved": 0.2},
    }


def _session(gateway, stops=None, channel=None) -> OptimizationSession:
    session = OptimizationSession(gateway, stops if stops is not None else _two_stops(), channel, ENDPOINT)
    session.select_vehicle("veh-1")
    return session


@pytest.mark.parametrize("vehicle_id, stop_count", [(None, 2), ("veh-1", 1), ("veh-1", 0)])
def test_submit_requires_vehicle_and_two_stops(vehicle_id, stop_count):
    gateway = DummyGateway()
    stops = StopCollection(list(_two_stops())[:stop_count])
    session = OptimizationSession(gateway, stops, endpoint=ENDPOINT)
    session.select_vehicle(vehicle_id)

    assert not session.can_submit
    with pytest.raises(RouteValidationError):
        asyncio.run(session.submit())

    assert gateway.posts == []
    assert session.state == SessionState.IDLE
    assert session.error == VALIDATION_MESSAGE


def test_request_carries_only_outbound_stop_fields():
    gateway = DummyGateway([_route_body()])
    session = _session(gateway)
    session.set_preferences(RoutePreferences(avoid_tolls=True, optimize_for=OptimizeFor.DISTANCE))

    asyncio.run(session.submit())

    endpoint, body = gateway.posts[0]
    assert endpoint == ENDPOINT
    assert body["vehicleId"] == "veh-1"
    assert body["preferences"] == {"avoidTolls": True, "avoidHighways": False, "optimizeFor": "distance"}
    assert body["stops"][0] == {"id": "A", "latitude": 0.0, "longitude": 0.0, "address": "Alpha", "priority": 2}
    assert all("label" not in stop and "estimatedArrival" not in stop for stop in body["stops"])


def test_synchronous_result_replaces_stops_in_returned_order():
    gateway = DummyGateway([_route_body()])
    session = _session(gateway)

    state = asyncio.run(session.submit())

    assert state == SessionState.SUCCEEDED
    assert session.status_message == "Route optimization completed!"
    stops = session.stops.stops
    assert [(stop.latitude, stop.longitude, stop.address) for stop in stops] == [
        (1.0, 1.0, "Bravo"),
        (0.0, 0.0, "Alpha"),
    ]
    assert [stop.id for stop in stops] == ["A", "B"]
    assert [stop.label for stop in stops] == [START_LABEL, END_LABEL]
    assert stops[0].estimated_arrival == "10:05"
    route = session.result.optimized_route
    assert (route.total_distance, route.total_duration) == (12.5, 30)
    assert session.result.optimization_metrics.time_saved == 5


def test_extra_waypoints_get_fresh_unique_ids():
    body = _route_body()
    body["optimizedRoute"]["waypoints"].append({"latitude": 2.0, "longitude": 2.0, "address": "Depot"})
    session = _session(DummyGateway([body]))

    asyncio.run(session.submit())

    ids = session.stops.ids
    assert len(ids) == 3
    assert len(set(ids)) == 3
    assert ids[:2] == ["A", "B"]
    assert session.stops[2].label == END_LABEL


def test_asynchronous_result_arrives_over_push_channel(socket_client):
    channel = RouteUpdateChannel(url="http://push.test", namespace="/routes", client=socket_client)
    gateway = DummyGateway([{"requestId": "req-9", "status": "PROCESSING"}])
    session = _session(gateway, channel=channel)

    async def scenario():
        await channel.connect()
        state = await session.submit()
        assert state == SessionState.OPTIMIZING
        assert session.status_message == "Optimizing route..."
        await socket_client.fire("route_optimized", {"requestId": "stale", "data": _route_body("stale")})
        assert session.state == SessionState.OPTIMIZING
        await socket_client.fire(
            "route_optimized",
            {"requestId": "req-9", "status": "COMPLETED", "data": _route_body("req-9")},
        )
        return await session.wait(timeout=1)

    assert asyncio.run(scenario()) == SessionState.SUCCEEDED
    assert ("subscribe_route_updates", {"requestId": "req-9"}, "/routes") in socket_client.emitted
    assert session.stops.ids == ["A", "B"]
    assert session.stops[0].address == "Bravo"


def test_failure_event_moves_to_failed_and_keeps_stops():
    session = _session(DummyGateway([{"requestId": "req-2"}]))

    asyncio.run(session.submit())
    applied = session.handle_event("route_optimization_failed", {"requestId": "req-2"})

    assert applied
    assert session.state == SessionState.FAILED
    assert session.error == "Unknown error occurred"
    assert session.stops.ids == ["A", "B"]
    assert session.stops[0].address == "Alpha"


def test_late_event_after_terminal_state_is_ignored():
    session = _session(DummyGateway([{"requestId": "req-3"}]))

    asyncio.run(session.submit())
    session.handle_event("route_optimization_failed", {"requestId": "req-3", "error": "No road"})
    applied = session.handle_event("route_optimized", {"requestId": "req-3", "data": _route_body("req-3")})

    assert not applied
    assert session.state == SessionState.FAILED
    assert session.error == "No road"


def test_update_requested_only_changes_status_message():
    session = _session(DummyGateway([{"requestId": "req-4"}]))

    asyncio.run(session.submit())
    session.handle_event("route_update_requested", {"requestId": "req-4"})

    assert session.state == SessionState.OPTIMIZING
    assert session.status_message == "Route update requested"


def test_second_submit_while_in_flight_is_rejected():
    gateway = DummyGateway([{"requestId": "req-5"}])
    session = _session(gateway)

    async def scenario():
        await session.submit()
        await session.submit()

    with pytest.raises(OptimizationInProgressError):
        asyncio.run(scenario())
    assert len(gateway.posts) == 1


def test_failed_response_status_is_reported():
    session = _session(DummyGateway([{"requestId": "req-6", "status": "FAILED", "error": "Vehicle not found"}]))

    assert asyncio.run(session.submit()) == SessionState.FAILED
    assert session.error == "Vehicle not found"
    assert session.status_message == "Route optimization failed"


def test_upstream_error_fails_session_without_raising():
    session = _session(DummyGateway(error=UpstreamError("Optimization service unavailable", 503)))

    assert asyncio.run(session.submit()) == SessionState.FAILED
    assert session.error == "Optimization service unavailable"


def test_auth_required_is_propagated():
    session = _session(DummyGateway(error=AuthRequiredError()))

    with pytest.raises(AuthRequiredError):
        asyncio.run(session.submit())
    assert session.state == SessionState.FAILED


def test_resubmit_after_terminal_releases_previous_subscription(socket_client):
    channel = RouteUpdateChannel(url="http://push.test", namespace="/routes", client=socket_client)
    gateway = DummyGateway([{"requestId": "first"}, {"requestId": "second"}])
    session = _session(gateway, channel=channel)

    async def scenario():
        await channel.connect()
        await session.submit()
        session.handle_event("route_optimization_failed", {"requestId": "first"})
        await session.submit()

    asyncio.run(scenario())

    assert channel.request_ids == ["second"]
    assert ("unsubscribe_route_updates", {"requestId": "first"}, "/routes") in socket_client.emitted
    assert session.state == SessionState.OPTIMIZING
    assert session.error is None


def test_poll_applies_completed_status():
    gateway = DummyGateway([{"requestId": "req-7"}, {"status": "COMPLETED", "data": _route_body("req-7")}])
    session = _session(gateway)

    async def scenario():
        await session.submit()
        return await session.poll()

    assert asyncio.run(scenario()) == SessionState.SUCCEEDED
    assert gateway.gets == [f"{ENDPOINT}/req-7"]
    assert session.result.optimized_route.total_distance == 12.5
