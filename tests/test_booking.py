import re
from datetime import datetime, timedelta, timezone

import pytest

from booking import (
    DRIVERS,
    FARE_RANGES,
    assign_driver,
    estimate_arrival,
    estimate_delivery,
    generate_order_id,
    quote_fare,
)
from schemas import VehicleType


@pytest.mark.parametrize("vehicle_type", list(VehicleType))
def test_fares_stay_within_inclusive_range(vehicle_type):
    low, high = FARE_RANGES[vehicle_type]
    fares = {quote_fare(vehicle_type) for _ in range(500)}

    assert min(fares) >= low
    assert max(fares) <= high
    assert all(isinstance(f, int) for f in fares)


def test_fare_range_endpoints_are_reachable(monkeypatch):
    monkeypatch.setattr("booking.random.randint", lambda a, b: b)
    assert quote_fare(VehicleType.CAR) == 25

    monkeypatch.setattr("booking.random.randint", lambda a, b: a)
    assert quote_fare(VehicleType.BIKE) == 3


def test_driver_comes_from_vehicle_roster():
    assert assign_driver("auto") in DRIVERS[VehicleType.AUTO]
    assert assign_driver(VehicleType.BIKE) in DRIVERS[VehicleType.BIKE]


def test_arrival_window():
    now = datetime.now(timezone.utc)
    for _ in range(200):
        delta = estimate_arrival(now) - now
        assert timedelta(minutes=5) <= delta <= timedelta(minutes=15)


def test_delivery_is_45_minutes_out():
    now = datetime.now(timezone.utc)
    assert estimate_delivery(now) - now == timedelta(minutes=45)


def test_order_ids_are_timestamped_and_unique():
    ids = [generate_order_id() for _ in range(100)]

    assert all(re.fullmatch(r"RB\d{13,}", i) for i in ids)
    assert len(set(ids)) == 100
    assert ids == sorted(ids, key=lambda i: int(i[2:]))
