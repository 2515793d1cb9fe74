"""
Per-user cart, stored as the user's `cartData` mapping.

Both mutations are single atomic updates, so concurrent requests for the same
user cannot overwrite each other's counts.
"""
from typing import Dict

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.database import Database

from errors import UserNotFound


def _user_filter(user_id: str) -> dict:
    try:
        return {"_id": ObjectId(user_id)}
    except (InvalidId, TypeError):
        raise UserNotFound("User not found")


def _slot(item_id) -> str:
    return f"cartData.{item_id}"


def add_to_cart(db: Database, user_id: str, item_id) -> None:
    result = db["user"].update_one(_user_filter(user_id), {"$inc": {_slot(item_id): 1}})
    if result.matched_count == 0:
        raise UserNotFound("User not found")


def remove_from_cart(db: Database, user_id: str, item_id) -> None:
    filt = _user_filter(user_id)
    result = db["user"].update_one(
        {**filt, _slot(item_id): {"$gt": 0}},
        {"$inc": {_slot(item_id): -1}},
    )
    if result.matched_count == 0 and db["user"].find_one(filt, {"_id": 1}) is None:
        raise UserNotFound("User not found")


def get_cart(db: Database, user_id: str) -> Dict[str, int]:
    user = db["user"].find_one(_user_filter(user_id), {"cartData": 1})
    if not user:
        raise UserNotFound("User not found")
    return user.get("cartData") or {}
