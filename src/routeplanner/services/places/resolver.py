"""Turns search text and map interactions into stops."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ...config import settings
from ...errors import UpstreamError
from ...models.domain import Stop
from ...schemas.places import Prediction
from ..routing.stops import StopCollection
from .client import PlacesClient

logger = logging.getLogger(__name__)


class PlaceResolver:
    """Debounced free-text search plus reverse lookups for map interactions.

    Every keystroke cancels the pending timer; only the lookup scheduled
    after the last keystroke runs. A lookup already in flight is not
    cancelled, but its results are dropped if the query changed meanwhile.
    """

    def __init__(
        self,
        places: PlacesClient,
        stops: StopCollection,
        debounce_seconds: float | None = None,
        min_query_length: int | None = None,
    ) -> None:
        self.places = places
        self.stops = stops
        self.debounce_seconds = (
            debounce_seconds if debounce_seconds is not None else settings.search_debounce_seconds
        )
        self.min_query_length = min_query_length if min_query_length is not None else settings.min_query_length
        self.query = ""
        self.results: list[Prediction] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self._search_task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._timer is not None or (self._search_task is not None and not self._search_task.done())

    def update_query(self, text: str) -> None:
        self.query = text
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not text.strip() or len(text) < self.min_query_length:
            self.results = []
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._start_search, text)

    def _start_search(self, query: str) -> None:
        self._timer = None
        self._search_task = asyncio.get_running_loop().create_task(self.search(query))

    async def search(self, query: str) -> list[Prediction]:
        try:
            response = await self.places.autocomplete(query)
        except UpstreamError as exc:
            logger.error("Error fetching places: %s", exc)
            predictions: list[Prediction] = []
        else:
            if response.status == "OK":
                predictions = list(response.predictions)
            else:
                if response.status != "ZERO_RESULTS":
                    logger.warning("Places API error: %s %s", response.status, response.error_message or "")
                predictions = []

        if query == self.query:
            self.results = predictions
        else:
            logger.debug("Discarding results for superseded query %r", query)
        return predictions

    async def select(self, prediction: Prediction) -> Optional[Stop]:
        """Append the chosen search result as a new stop."""
        if prediction.geometry is not None:
            location = prediction.geometry.location
            stop = Stop(latitude=location.lat, longitude=location.lng, address=prediction.description)
        else:
            try:
                details = await self.places.details(prediction.place_id)
            except UpstreamError as exc:
                logger.error("Error getting place details: %s", exc)
                return None
            if details.status != "OK" or details.result is None:
                logger.warning("Place details API error: %s %s", details.status, details.error_message or "")
                return None
            location = details.result.geometry.location
            stop = Stop(
                latitude=location.lat,
                longitude=location.lng,
                address=details.result.formatted_address,
            )

        self.stops.add(stop)
        self.update_query("")
        return stop

    async def _address_for(self, latitude: float, longitude: float) -> Optional[str]:
        try:
            response = await self.places.reverse(latitude, longitude)
        except UpstreamError as exc:
            logger.warning("Reverse lookup failed for %s,%s: %s", latitude, longitude, exc)
            return None
        if response.status != "OK" or response.result is None:
            logger.warning("Reverse lookup returned %s for %s,%s", response.status, latitude, longitude)
            return None
        return response.result.formatted_address

    async def add_at(self, latitude: float, longitude: float) -> Optional[Stop]:
        """Map click or current location: append a stop for the coordinates."""
        address = await self._address_for(latitude, longitude)
        if address is None:
            return None
        return self.stops.add(Stop(latitude=latitude, longitude=longitude, address=address))

    async def move_stop(self, stop_id: str, latitude: float, longitude: float) -> Optional[Stop]:
        """Marker drag: the position always moves, the address only if resolvable.

        Returns None when the stop was removed while its address was looked up.
        """
        self.stops.update(stop_id, latitude=latitude, longitude=longitude)
        address = await self._address_for(latitude, longitude)
        if stop_id not in self.stops:
            logger.debug("Stop %s removed during reverse lookup", stop_id)
            return None
        if address is not None:
            return self.stops.update(stop_id, address=address)
        return self.stops.get(stop_id)

    async def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        task = self._search_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)
