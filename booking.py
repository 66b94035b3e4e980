"""
Booking rules: driver assignment, fare quotes and time estimates.

Drivers and fares are drawn uniformly at random from fixed per-vehicle
tables; there is no dispatch or pricing engine behind them.
"""

import random
import threading
import time
from datetime import datetime, timedelta
from typing import Dict, List, Tuple

from schemas import VehicleType

DRIVERS: Dict[VehicleType, List[str]] = {
    VehicleType.CAR: ["John Smith", "Sarah Johnson", "Mike Davis", "Emily Wilson", "David Brown"],
    VehicleType.BIKE: ["Alex Rider", "Sam Wilson", "Taylor Swift", "Chris Evans"],
    VehicleType.AUTO: ["Raj Kumar", "Amit Sharma", "Priya Singh", "Vikram Patel"],
}

# Inclusive (min, max)
FARE_RANGES: Dict[VehicleType, Tuple[int, int]] = {
    VehicleType.CAR: (8, 25),
    VehicleType.BIKE: (3, 12),
    VehicleType.AUTO: (5, 15),
}

ARRIVAL_WINDOW_SECONDS = (5 * 60, 15 * 60)
DELIVERY_ESTIMATE = timedelta(minutes=45)
ORDER_ID_PREFIX = "RB"


def assign_driver(vehicle_type: VehicleType) -> str:
    return random.choice(DRIVERS[VehicleType(vehicle_type)])


def quote_fare(vehicle_type: VehicleType) -> int:
    low, high = FARE_RANGES[VehicleType(vehicle_type)]
    return random.randint(low, high)


def estimate_arrival(now: datetime) -> datetime:
    """Pickup ETA between 5 and 15 minutes after `now`."""
    return now + timedelta(seconds=random.randint(*ARRIVAL_WINDOW_SECONDS))


def estimate_delivery(now: datetime) -> datetime:
    return now + DELIVERY_ESTIMATE


_order_id_lock = threading.Lock()
_last_order_ms = 0


def generate_order_id() -> str:
    """Order id is RB + epoch milliseconds, bumped by 1ms when two orders share a millisecond."""
    global _last_order_ms
    with _order_id_lock:
        _last_order_ms = max(time.time_ns() // 1_000_000, _last_order_ms + 1)
        return f"{ORDER_ID_PREFIX}{_last_order_ms}"
