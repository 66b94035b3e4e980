"""Shared fixtures: an in-memory mongomock database behind the FastAPI app.

The app's lifespan is never entered (TestClient is not used as a context
manager), so no real MongoDB connection is attempted; get_database is
overridden to hand out the mongomock handle instead.
"""

import os

# Required settings must exist before main is imported
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "ridebite_test")

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from database import get_database
from main import app


@pytest.fixture
def mongo_db():
    client = mongomock.MongoClient(tz_aware=True)
    yield client["ridebite_test"]
    client.close()


@pytest.fixture
def client(mongo_db):
    app.dependency_overrides[get_database] = lambda: mongo_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seed_restaurant(mongo_db):
    """Insert a restaurant with two menu items; returns the restaurant id."""
    restaurant_id = mongo_db["restaurants"].insert_one(
        {"name": "Spice Garden", "cuisine": "Indian", "rating": 4.5}
    ).inserted_id
    mongo_db["menu_items"].insert_many([
        {"restaurantId": restaurant_id, "name": "Butter Chicken", "price": 12.5},
        {"restaurantId": restaurant_id, "name": "Garlic Naan", "price": 3.0},
    ])
    return restaurant_id


@pytest.fixture
def missing_id():
    return str(ObjectId())
