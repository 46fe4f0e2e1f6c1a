import asyncio
import json

import httpx

from src.routeplanner.schemas.vehicles import VehicleFilter, VehicleWrite
from src.routeplanner.services.auth.credentials import CredentialStore
from src.routeplanner.services.gateway import AuthenticatedGateway
from src.routeplanner.services.vehicles import VehiclesClient

VEHICLE = {"id": "veh-1", "make": "Volvo", "model": "FH16", "registrationNumber": "AB-123", "fuelType": "diesel"}


class VehicleBackend:
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET" and request.url.path == "/api/vehicles":
            return httpx.Response(200, json={"vehicles": [VEHICLE], "total": 1})
        if request.method == "GET":
            return httpx.Response(200, json=VEHICLE)
        if request.method in ("POST", "PUT"):
            return httpx.Response(200, json={**VEHICLE, "capacity": 18})
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(405)


def _run(backend, call):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(backend)) as client:
            store = CredentialStore(client, base_url="http://users.test")
            return await call(VehiclesClient(AuthenticatedGateway(client, store, base_url="http://api.test")))

    return asyncio.run(scenario())


def test_list_sends_only_set_filters():
    backend = VehicleBackend()

    response = _run(backend, lambda vehicles: vehicles.list(VehicleFilter(fuel_type="diesel", page=2)))

    assert response.total == 1
    assert response.vehicles[0].registration_number == "AB-123"
    assert dict(backend.requests[0].url.params) == {"fuelType": "diesel", "page": "2"}


def test_list_without_filters_has_no_query_string():
    backend = VehicleBackend()

    _run(backend, lambda vehicles: vehicles.list())

    assert backend.requests[0].url.query == b""


def test_create_omits_unset_fields():
    backend = VehicleBackend()

    vehicle = _run(backend, lambda vehicles: vehicles.create(VehicleWrite(make="Volvo", capacity=18)))

    assert vehicle.capacity == 18
    assert json.loads(backend.requests[0].content) == {"make": "Volvo", "capacity": 18}


def test_get_update_and_delete_address_the_vehicle():
    backend = VehicleBackend()

    async def calls(vehicles):
        await vehicles.get("veh-1")
        await vehicles.update("veh-1", VehicleWrite(status="maintenance"))
        await vehicles.delete("veh-1")

    _run(backend, calls)

    assert [(request.method, request.url.path) for request in backend.requests] == [
        ("GET", "/api/vehicles/veh-1"),
        ("PUT", "/api/vehicles/veh-1"),
        ("DELETE", "/api/vehicles/veh-1"),
    ]
