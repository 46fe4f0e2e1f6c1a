"""Ordered stop collection for a route-planning session."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable, Iterator

from ...models.domain import Stop
from ...schemas.routing import StopPayload

START_LABEL = "Start Location"
END_LABEL = "End Location"

_EDITABLE_FIELDS = frozenset({"latitude", "longitude", "address", "priority", "estimated_arrival"})


def positional_label(index: int, count: int) -> str:
    if index == 0:
        return START_LABEL
    if index == count - 1:
        return END_LABEL
    return f"Stop {index}"


class StopCollection:
    """Stops in route order; the first is the origin and the last the destination.

    Identities are unique and labels are recomputed after every mutation.
    """

    def __init__(self, stops: Iterable[Stop] = ()) -> None:
        self._stops: list[Stop] = []
        self.replace(stops)

    def __len__(self) -> int:
        return len(self._stops)

    def __iter__(self) -> Iterator[Stop]:
        return iter(list(self._stops))

    def __getitem__(self, index: int) -> Stop:
        return self._stops[index]

    def __contains__(self, stop_id: object) -> bool:
        return any(stop.id == stop_id for stop in self._stops)

    @property
    def ids(self) -> list[str]:
        return [stop.id for stop in self._stops]

    @property
    def stops(self) -> list[Stop]:
        return list(self._stops)

    def _index_of(self, stop_id: str) -> int:
        for index, stop in enumerate(self._stops):
            if stop.id == stop_id:
                return index
        raise KeyError(f"Unknown stop '{stop_id}'.")

    def _relabel(self) -> None:
        count = len(self._stops)
        for index, stop in enumerate(self._stops):
            stop.label = positional_label(index, count)

    def get(self, stop_id: str) -> Stop:
        return self._stops[self._index_of(stop_id)]

    def add(self, stop: Stop) -> Stop:
        if stop.id in self:
            raise ValueError(f"Stop '{stop.id}' is already in the route.")
        self._stops.append(stop)
        self._relabel()
        return stop

    def remove(self, stop_id: str) -> Stop:
        removed = self._stops.pop(self._index_of(stop_id))
        self._relabel()
        return removed

    def update(self, stop_id: str, **changes: Any) -> Stop:
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update stop fields: {', '.join(sorted(unknown))}")
        index = self._index_of(stop_id)
        self._stops[index] = replace(self._stops[index], **changes)
        self._relabel()
        return self._stops[index]

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move one stop to ``to_index``, shifting the stops in between."""
        count = len(self._stops)
        if not 0 <= from_index < count or not 0 <= to_index < count:
            raise IndexError(f"Reorder {from_index} -> {to_index} out of range for {count} stops.")
        moved = self._stops.pop(from_index)
        self._stops.insert(to_index, moved)
        self._relabel()

    def replace(self, stops: Iterable[Stop]) -> None:
        incoming = list(stops)
        seen: set[str] = set()
        for stop in incoming:
            if stop.id in seen:
                raise ValueError(f"Duplicate stop id '{stop.id}'.")
            seen.add(stop.id)
        self._stops = incoming
        self._relabel()

    def clear(self) -> None:
        self._stops = []

    def to_payload(self) -> list[StopPayload]:
        """Outbound representation; derived display fields are left out."""
        return [
            StopPayload(
                id=stop.id,
                latitude=stop.latitude,
                longitude=stop.longitude,
                address=stop.address,
                priority=stop.priority,
            )
            for stop in self._stops
        ]
