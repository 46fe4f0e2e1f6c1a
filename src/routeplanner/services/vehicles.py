"""Vehicle inventory client."""

from __future__ import annotations

from typing import Any, Mapping

from ..schemas.vehicles import Vehicle, VehicleFilter, VehiclesResponse, VehicleWrite
from .gateway import AuthenticatedGateway

VEHICLES_ENDPOINT = "/api/vehicles"


class VehiclesClient:
    def __init__(self, gateway: AuthenticatedGateway) -> None:
        self.gateway = gateway

    async def list(self, filters: VehicleFilter | Mapping[str, Any] | None = None) -> VehiclesResponse:
        if filters is None:
            params: dict[str, str] = {}
        elif isinstance(filters, VehicleFilter):
            params = filters.to_params()
        else:
            params = {key: str(value) for key, value in filters.items() if value is not None}
        data = await self.gateway.get(VEHICLES_ENDPOINT, params=params or None)
        return VehiclesResponse.model_validate(data)

    async def get(self, vehicle_id: str) -> Vehicle:
        data = await self.gateway.get(f"{VEHICLES_ENDPOINT}/{vehicle_id}")
        return Vehicle.model_validate(data)

    async def create(self, vehicle: VehicleWrite) -> Vehicle:
        data = await self.gateway.post(
            VEHICLES_ENDPOINT, json=vehicle.model_dump(by_alias=True, exclude_none=True)
        )
        return Vehicle.model_validate(data)

    async def update(self, vehicle_id: str, changes: VehicleWrite) -> Vehicle:
        data = await self.gateway.put(
            f"{VEHICLES_ENDPOINT}/{vehicle_id}",
            json=changes.model_dump(by_alias=True, exclude_none=True),
        )
        return Vehicle.model_validate(data)

    async def delete(self, vehicle_id: str) -> None:
        await self.gateway.delete(f"{VEHICLES_ENDPOINT}/{vehicle_id}")
