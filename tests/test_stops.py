import pytest

from src.routeplanner.models.domain import Stop
from src.routeplanner.services.routing.stops import END_LABEL, START_LABEL, StopCollection


def _stop(sid: str, lat: float = 0.0, lon: float = 0.0, **extra) -> Stop:
    return Stop(id=sid, latitude=lat, longitude=lon, address=f"Address {sid}", **extra)


def _collection(*ids: str) -> StopCollection:
    return StopCollection(_stop(sid, index, index) for index, sid in enumerate(ids))


def test_labels_follow_position():
    stops = _collection("A", "B", "C", "D")

    assert [stop.label for stop in stops] == [START_LABEL, "Stop 1", "Stop 2", END_LABEL]


def test_single_stop_is_labelled_start():
    stops = _collection("A")

    assert stops[0].label == START_LABEL


def test_add_rejects_duplicate_ids():
    stops = _collection("A", "B")

    with pytest.raises(ValueError):
        stops.add(_stop("A"))
    assert stops.ids == ["A", "B"]


def test_reorder_is_a_splice_not_a_swap():
    stops = _collection("A", "B", "C", "D")

    stops.reorder(0, 2)

    assert stops.ids == ["B", "C", "A", "D"]
    assert stops[0].label == START_LABEL
    assert stops[3].label == END_LABEL


@pytest.mark.parametrize("count", [1, 2, 3, 5])
def test_reorder_keeps_identities_and_relabels(count: int):
    ids = [f"S{i}" for i in range(count)]
    stops = _collection(*ids)

    for from_index in range(count):
        for to_index in range(count):
            stops.reorder(from_index, to_index)
            assert sorted(stops.ids) == sorted(ids)
            assert stops[0].label == START_LABEL
            if count > 1:
                assert stops[count - 1].label == END_LABEL


def test_reorder_out_of_range():
    stops = _collection("A", "B")

    with pytest.raises(IndexError):
        stops.reorder(0, 5)


def test_remove_relabels_new_last_stop():
    stops = _collection("A", "B", "C")

    stops.remove("C")

    assert stops.ids == ["A", "B"]
    assert stops[1].label == END_LABEL
    with pytest.raises(KeyError):
        stops.remove("missing")


def test_update_changes_position_and_address_only():
    stops = _collection("A", "B")

    updated = stops.update("B", latitude=5.0, longitude=6.0, address="New place")

    assert (updated.latitude, updated.longitude, updated.address) == (5.0, 6.0, "New place")
    assert updated.id == "B"
    assert updated.label == END_LABEL
    with pytest.raises(ValueError):
        stops.update("B", id="other")


def test_to_payload_strips_derived_fields():
    stops = StopCollection(
        [
            _stop("A", 1.0, 2.0, priority=1, estimated_arrival="2025-01-01T10:00:00Z"),
            _stop("B", 3.0, 4.0),
        ]
    )

    payload = [stop.model_dump(by_alias=True) for stop in stops.to_payload()]

    assert payload[0] == {"id": "A", "latitude": 1.0, "longitude": 2.0, "address": "Address A", "priority": 1}
    assert payload[1]["priority"] is None
    assert all("label" not in item and "estimatedArrival" not in item for item in payload)


def test_clear_empties_collection():
    stops = _collection("A", "B")

    stops.clear()

    assert len(stops) == 0
