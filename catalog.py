"""
Product catalog.

The two derived views are display heuristics over storage order, not real
recency or popularity rankings.
"""
import logging
from typing import List, Optional

from pymongo.database import Database

from database import create_document, get_documents, next_sequence
from schemas import Product

logger = logging.getLogger(__name__)

NEW_COLLECTION_SIZE = 8
POPULAR_SIZE = 4


def add_product(db: Database, name: str, image: str, category: str, new_price: float,
                old_price: float, available: bool = True) -> Product:
    product = Product(
        id=next_sequence(db, "product"),
        name=name,
        image=image,
        category=category,
        new_price=new_price,
        old_price=old_price,
        available=available,
    )
    create_document(db, "product", product)
    logger.info("Added product %d (%s)", product.id, product.name)
    return product


def remove_product(db: Database, product_id: int) -> Optional[str]:
    """Delete a product by id; returns its name, or None when nothing matched."""
    doc = db["product"].find_one_and_delete({"id": product_id})
    if doc is None:
        return None
    logger.info("Removed product %d", product_id)
    return doc.get("name")


def get_product(db: Database, product_id: int) -> Optional[dict]:
    return db["product"].find_one({"id": product_id})


def list_all(db: Database) -> List[dict]:
    return get_documents(db, "product")


def list_newest(db: Database) -> List[dict]:
    # skips the very first product, then keeps the trailing window
    return list_all(db)[1:][-NEW_COLLECTION_SIZE:]


def list_popular(db: Database) -> List[dict]:
    return get_documents(db, "product", limit=POPULAR_SIZE)
