import logging
import math
import re
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import Body, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, StrictFloat, StrictInt, ValidationError
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from booking import assign_driver, estimate_arrival, estimate_delivery, generate_order_id, quote_fare
from config import get_settings, setup_logging
from database import (
    MENU_ITEMS,
    ORDERS,
    RAIDERS,
    RESTAURANTS,
    RIDES,
    MongoConnectionManager,
    create_document,
    get_database,
    get_documents,
)
from errors import BadRequestError, NotFoundError, handle_store_errors, register_error_handlers
from schemas import Order, Place, Raider, RaiderUpdate, Ride, RideStatus, VehicleType, utcnow

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    manager = MongoConnectionManager(
        settings.mongodb_uri,
        settings.db_name,
        server_selection_timeout_ms=settings.mongo_server_selection_timeout_ms,
    )
    manager.connect()
    app.state.mongo = manager
    logger.info(f"{settings.app_name} running on port {settings.port}")
    yield
    manager.close()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


# Helpers
def serialize(value):
    """Make a stored document JSON-safe (ObjectIds become hex strings, at any depth)."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize(v) for v in value]
    return value


def parse_object_id(value: Optional[str]) -> Optional[ObjectId]:
    if value is None or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def listing(docs: List[dict]) -> dict:
    return {"success": True, "data": [serialize(d) for d in docs], "count": len(docs)}


@app.get("/")
def read_root():
    return {
        "service": settings.app_name,
        "message": "RideBite Server is running!",
        "timestamp": utcnow().isoformat(),
    }


@app.get("/health")
def health_check(request: Request):
    manager: Optional[MongoConnectionManager] = getattr(request.app.state, "mongo", None)
    connected = manager is not None and manager.ping()
    return {
        "status": "OK",
        "database": "Connected" if connected else "Disconnected",
        "timestamp": utcnow().isoformat(),
    }


# Restaurants & menu items
@app.get("/api/restaurants")
def list_restaurants(db: Database = Depends(get_database)):
    with handle_store_errors("Failed to fetch restaurants"):
        restaurants = get_documents(db, RESTAURANTS)
    return listing(restaurants)


@app.get("/api/restaurants/{restaurant_id}")
def get_restaurant(restaurant_id: str, db: Database = Depends(get_database)):
    oid = parse_object_id(restaurant_id)
    with handle_store_errors("Failed to fetch restaurant"):
        restaurant = db[RESTAURANTS].find_one({"_id": oid}) if oid else None
    if not restaurant:
        raise NotFoundError("Restaurant not found")
    return {"success": True, "data": serialize(restaurant)}


@app.get("/api/restaurants/{restaurant_id}/menu")
def get_restaurant_menu(restaurant_id: str, db: Database = Depends(get_database)):
    oid = parse_object_id(restaurant_id)
    if oid is None:
        return listing([])
    with handle_store_errors("Failed to fetch menu items"):
        menu_items = get_documents(db, MENU_ITEMS, {"restaurantId": oid})
    return listing(menu_items)


@app.delete("/api/restaurants/{restaurant_id}")
def delete_restaurant(restaurant_id: str, db: Database = Depends(get_database)):
    oid = parse_object_id(restaurant_id)
    if oid is None:
        raise NotFoundError("Restaurant not found")
    with handle_store_errors("Failed to delete restaurant"):
        result = db[RESTAURANTS].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise NotFoundError("Restaurant not found")

    # Not atomic with the delete above; a failure here leaves orphaned items.
    try:
        removed = db[MENU_ITEMS].delete_many({"restaurantId": oid}).deleted_count
        logger.info(f"Deleted restaurant {oid} and {removed} menu item(s)")
    except PyMongoError:
        logger.exception(f"Failed to delete menu items of restaurant {oid}")

    return {"success": True, "message": "Restaurant deleted successfully"}


@app.get("/api/menu-items")
def list_menu_items(db: Database = Depends(get_database)):
    with handle_store_errors("Failed to fetch menu items"):
        menu_items = get_documents(db, MENU_ITEMS)
    return listing(menu_items)


@app.delete("/api/menu-items/{item_id}")
def delete_menu_item(item_id: str, db: Database = Depends(get_database)):
    oid = parse_object_id(item_id)
    if oid is None:
        raise NotFoundError("Menu item not found")
    with handle_store_errors("Failed to delete menu item"):
        result = db[MENU_ITEMS].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise NotFoundError("Menu item not found")
    return {"success": True, "message": "Menu item deleted successfully"}


# Orders
class OrderRequest(BaseModel):
    restaurantId: Optional[str] = None
    items: Optional[List[Any]] = None
    customerName: Optional[str] = None
    customerAddress: Optional[str] = None
    customerPhone: Optional[str] = None
    totalAmount: Optional[Union[StrictInt, StrictFloat, str]] = None


@app.post("/api/orders", status_code=201)
def place_order(data: OrderRequest, db: Database = Depends(get_database)):
    if not (data.restaurantId and data.items and data.customerName and data.totalAmount):
        raise BadRequestError(
            "Missing required fields: restaurantId, items, customerName, totalAmount"
        )

    restaurant_oid = parse_object_id(data.restaurantId)
    if restaurant_oid is None:
        raise BadRequestError("Invalid restaurantId")
    try:
        total_amount = float(data.totalAmount)
    except ValueError:
        raise BadRequestError("totalAmount must be a number")
    if not math.isfinite(total_amount):
        raise BadRequestError("totalAmount must be a number")

    now = utcnow()
    order = Order(
        orderId=generate_order_id(),
        restaurantId=restaurant_oid,
        items=data.items,
        customerName=data.customerName,
        customerAddress=data.customerAddress or "",
        customerPhone=data.customerPhone or "",
        totalAmount=total_amount,
        createdAt=now,
        estimatedDelivery=estimate_delivery(now),
    )
    with handle_store_errors("Failed to place order"):
        inserted_id = create_document(db, ORDERS, order)
    logger.info(f"Order {order.orderId} placed for {order.customerName}")

    return {
        "success": True,
        "message": "Order placed successfully",
        "data": {
            "orderId": order.orderId,
            "orderNumber": str(inserted_id),
            "estimatedDelivery": order.estimatedDelivery,
            "totalAmount": order.totalAmount,
        },
    }


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, db: Database = Depends(get_database)):
    with handle_store_errors("Failed to fetch order"):
        order = db[ORDERS].find_one({"orderId": order_id})
        if not order:
            raise NotFoundError("Order not found")
        restaurant = db[RESTAURANTS].find_one({"_id": order.get("restaurantId")})

    data = serialize(order)
    data["restaurantName"] = (restaurant or {}).get("name") or "Unknown Restaurant"
    return {"success": True, "data": data}


# Rides
class RideBookingRequest(BaseModel):
    customerName: Optional[str] = None
    pickup: Optional[Place] = None
    destination: Optional[Place] = None
    vehicleType: Optional[str] = None


class RideStatusUpdate(BaseModel):
    status: Optional[str] = None


VALID_STATUSES = ", ".join(s.value for s in RideStatus)


@app.post("/api/rides", status_code=201)
def book_ride(data: RideBookingRequest, db: Database = Depends(get_database)):
    if not (data.customerName and data.pickup and data.destination and data.vehicleType):
        raise BadRequestError(
            "Missing required fields: customerName, pickup, destination, vehicleType"
        )
    try:
        vehicle_type = VehicleType(data.vehicleType)
    except ValueError:
        raise BadRequestError("Invalid vehicle type. Must be: car, bike, or auto")

    now = utcnow()
    ride = Ride(
        customerName=data.customerName,
        pickup=data.pickup,
        destination=data.destination,
        vehicleType=vehicle_type,
        driverName=assign_driver(vehicle_type),
        fare=quote_fare(vehicle_type),
        estimatedArrival=estimate_arrival(now),
        createdAt=now,
    )
    with handle_store_errors("Failed to book ride"):
        ride_id = create_document(db, RIDES, ride)
        stored = db[RIDES].find_one({"_id": ride_id})
    logger.info(f"Ride {ride_id} booked: {ride.vehicleType} with {ride.driverName}")

    return {"success": True, "message": "Ride booked successfully", "data": serialize(stored)}


@app.get("/api/rides")
def list_rides(db: Database = Depends(get_database)):
    with handle_store_errors("Failed to fetch rides"):
        rides = get_documents(db, RIDES, sort=[("createdAt", DESCENDING)])
    return listing(rides)


@app.get("/api/rides/customer/{customer_name}")
def list_customer_rides(customer_name: str, db: Database = Depends(get_database)):
    name_filter = {"customerName": {"$regex": re.escape(customer_name), "$options": "i"}}
    with handle_store_errors("Failed to fetch customer rides"):
        rides = get_documents(db, RIDES, name_filter, sort=[("createdAt", DESCENDING)])
    return listing(rides)


@app.get("/api/rides/{ride_id}")
def get_ride(ride_id: str, db: Database = Depends(get_database)):
    oid = parse_object_id(ride_id)
    with handle_store_errors("Failed to fetch ride"):
        ride = db[RIDES].find_one({"_id": oid}) if oid else None
    if not ride:
        raise NotFoundError("Ride not found")
    return {"success": True, "data": serialize(ride)}


@app.patch("/api/rides/{ride_id}/status")
def update_ride_status(ride_id: str, payload: RideStatusUpdate, db: Database = Depends(get_database)):
    try:
        new_status = RideStatus(payload.status)
    except ValueError:
        raise BadRequestError(f"Invalid status. Must be: {VALID_STATUSES}")

    oid = parse_object_id(ride_id)
    if oid is None:
        raise NotFoundError("Ride not found")
    with handle_store_errors("Failed to update ride status"):
        result = db[RIDES].update_one(
            {"_id": oid},
            {"$set": {"status": new_status.value, "updatedAt": utcnow()}},
        )
        if result.matched_count == 0:
            raise NotFoundError("Ride not found")
        ride = db[RIDES].find_one({"_id": oid})

    return {"success": True, "message": "Ride status updated successfully", "data": serialize(ride)}


# Raiders
SERVER_MANAGED_RAIDER_FIELDS = {"_id", "joinedDate", "lastActive"}


def _raider_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    operators = sorted(k for k in payload if k.startswith("$"))
    if operators:
        raise BadRequestError(f"Invalid raider fields: {', '.join(operators)}")
    return {k: v for k, v in payload.items() if k not in SERVER_MANAGED_RAIDER_FIELDS}


def _invalid_raider(exc: ValidationError) -> BadRequestError:
    fields = ", ".join(".".join(str(loc) for loc in e["loc"]) for e in exc.errors())
    return BadRequestError(f"Invalid raider fields: {fields}")


@app.get("/api/raiders")
def list_raiders(db: Database = Depends(get_database)):
    with handle_store_errors("Failed to fetch raiders"):
        raiders = get_documents(db, RAIDERS)
    return listing(raiders)


@app.post("/api/raiders", status_code=201)
def add_raider(payload: Dict[str, Any] = Body(...), db: Database = Depends(get_database)):
    try:
        raider = Raider.model_validate(_raider_fields(payload))
    except ValidationError as e:
        raise _invalid_raider(e)

    with handle_store_errors("Failed to add raider"):
        raider_id = create_document(db, RAIDERS, raider)
        stored = db[RAIDERS].find_one({"_id": raider_id})

    return {"success": True, "message": "Raider added successfully", "data": serialize(stored)}


@app.put("/api/raiders/{raider_id}")
def update_raider(raider_id: str, payload: Dict[str, Any] = Body(...), db: Database = Depends(get_database)):
    try:
        update = RaiderUpdate.model_validate(_raider_fields(payload)).model_dump(exclude_unset=True)
    except ValidationError as e:
        raise _invalid_raider(e)
    update["lastActive"] = utcnow()

    oid = parse_object_id(raider_id)
    if oid is None:
        raise NotFoundError("Raider not found")
    with handle_store_errors("Failed to update raider"):
        result = db[RAIDERS].update_one({"_id": oid}, {"$set": update})
        if result.matched_count == 0:
            raise NotFoundError("Raider not found")
        raider = db[RAIDERS].find_one({"_id": oid})

    return {"success": True, "message": "Raider updated successfully", "data": serialize(raider)}


@app.delete("/api/raiders/{raider_id}")
def delete_raider(raider_id: str, db: Database = Depends(get_database)):
    oid = parse_object_id(raider_id)
    if oid is None:
        raise NotFoundError("Raider not found")
    with handle_store_errors("Failed to delete raider"):
        result = db[RAIDERS].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise NotFoundError("Raider not found")
    return {"success": True, "message": "Raider deleted successfully"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
