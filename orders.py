"""
Orders: placement, listing and fulfilment status.

Line items are priced from the catalog when the order is placed and stored
with the order, so later price edits never touch existing orders.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from catalog import get_product
from database import create_document, get_documents, next_sequence
from errors import OrderNotFound, ValidationError
from payments import verify_payment
from schemas import Address, LineItem, Order, PaymentDetails

logger = logging.getLogger(__name__)

TOTAL_TOLERANCE = 0.01
# orderId is stored as a BSON int64
MAX_ORDER_ID = 2 ** 63 - 1


def snapshot_items(db: Database, requested: Iterable[Tuple[int, int]]) -> List[LineItem]:
    items = []
    for product_id, quantity in requested:
        product = get_product(db, product_id)
        if product is None:
            raise ValidationError(f"Unknown product id {product_id}")
        items.append(LineItem(
            productId=product_id,
            productName=product["name"],
            productPrice=product["new_price"],
            quantity=quantity,
        ))
    return items


def payment_status_for(db: Database, secret: str, details: Optional[PaymentDetails]) -> str:
    if details is None:
        return "Pending"
    verified = verify_payment(secret, details.razorpay_order_id,
                              details.razorpay_payment_id, details.razorpay_signature)
    if not verified:
        return "Failed"
    # one captured payment settles one order
    if db["order"].find_one({"paymentDetails.razorpay_payment_id": details.razorpay_payment_id,
                             "paymentStatus": "Completed"}, {"_id": 1}):
        raise ValidationError(f"Payment {details.razorpay_payment_id} is already used by another order")
    return "Completed"


def create_order(db: Database, secret: str, user_id: str, address: Address,
                 requested: Iterable[Tuple[int, int]], total_amount: float,
                 payment_details: Optional[PaymentDetails] = None) -> Order:
    items = snapshot_items(db, requested)
    if not items:
        raise ValidationError("Order has no products")
    computed = round(sum(i.productPrice * i.quantity for i in items), 2)
    if abs(computed - total_amount) > TOTAL_TOLERANCE:
        raise ValidationError(f"totalAmount {total_amount} does not match item total {computed}")

    payment_status = payment_status_for(db, secret, payment_details)
    order = Order(
        orderId=next_sequence(db, "order"),
        userId=user_id,
        address=address,
        products=items,
        totalAmount=computed,
        paymentStatus=payment_status,
        paymentDetails=payment_details,
    )
    create_document(db, "order", order)
    logger.info("Order %d placed by %s (%s, payment %s)",
                order.orderId, user_id, computed, order.paymentStatus)
    return order


def list_orders(db: Database) -> List[dict]:
    return get_documents(db, "order")


def orders_for_user(db: Database, user_id: str) -> List[dict]:
    return get_documents(db, "order", {"userId": user_id})


def _order_filter(order_ref: str) -> dict:
    if order_ref.isascii() and order_ref.isdecimal() and len(order_ref) <= 19:
        order_id = int(order_ref)
        if 1 <= order_id <= MAX_ORDER_ID:
            return {"orderId": order_id}
    if ObjectId.is_valid(order_ref):
        return {"_id": ObjectId(order_ref)}
    raise OrderNotFound("Order not found")


def update_order_status(db: Database, order_ref: str, status: str) -> dict:
    doc = db["order"].find_one_and_update(
        _order_filter(order_ref),
        {"$set": {"orderStatus": status}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise OrderNotFound("Order not found")
    logger.info("Order %s moved to %s", doc.get("orderId"), status)
    return doc


def mark_paid(db: Database, gateway_order_id: str) -> int:
    """Complete unpaid orders tied to a verified gateway order."""
    result = db["order"].update_many(
        {"paymentDetails.razorpay_order_id": gateway_order_id,
         "paymentStatus": {"$ne": "Completed"}},
        {"$set": {"paymentStatus": "Completed"}},
    )
    return result.modified_count
