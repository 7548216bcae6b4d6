# cart_service/repos/cart_repo.py
from datetime import datetime
from functools import wraps
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from cart_service.data.models.cart_line import (
    CART_LINES,
    CREATED_AT,
    PRODUCT,
    QUANTITY,
    SNAPSHOT,
    UPDATED_AT,
    USER,
    USER_CONTEXT,
)
from cart_service.domain.errors import StoreError
from cart_service.utils.logging import get_logger
from cart_service.utils.retry import duplicate_key_retry

logger = get_logger(__name__)

Document = Dict[str, Any]


def store_call(fn):
    """Surface any driver failure as StoreError."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"Store call {fn.__name__} failed: {e}")
            raise StoreError(f"Document store error: {e}") from e

    return wrapper


def line_filter(user_identity: Optional[str], product_identity: str) -> Document:
    if user_identity is None:
        return {PRODUCT: product_identity}
    return {USER: user_identity, PRODUCT: product_identity}


class CartRepo:
    def __init__(self, db: Database):
        self.lines = db[CART_LINES]

    @store_call
    def find_line(self, user_identity: Optional[str], product_identity: str) -> Document | None:
        return self.lines.find_one(line_filter(user_identity, product_identity))

    @store_call
    def find_lines(self, user_identity: str) -> List[Document]:
        return list(self.lines.find({USER: user_identity}))

    @store_call
    def insert_line(self, doc: Document) -> Document:
        result = self.lines.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    @store_call
    def set_line_quantity(
        self,
        user_identity: Optional[str],
        product_identity: str,
        quantity: int,
        now: datetime,
    ) -> Document | None:
        #no upsert: an update never creates a line
        return self.lines.find_one_and_update(
            line_filter(user_identity, product_identity),
            {"$set": {QUANTITY: quantity, UPDATED_AT: now}},
            return_document=ReturnDocument.AFTER,
        )

    @store_call
    def increment_line(
        self,
        user_identity: str,
        product_identity: str,
        quantity: int,
        now: datetime,
    ) -> Document | None:
        #merge into an existing line only, None when it is gone
        return self.lines.find_one_and_update(
            {USER: user_identity, PRODUCT: product_identity},
            {"$inc": {QUANTITY: quantity}, "$set": {UPDATED_AT: now}},
            return_document=ReturnDocument.AFTER,
        )

    @store_call
    @duplicate_key_retry()
    def upsert_increment(
        self,
        user_identity: str,
        product_identity: str,
        quantity: int,
        now: datetime,
        user_context_id: Optional[str] = None,
        snapshot: Optional[Document] = None,
    ) -> Document:
        return self.lines.find_one_and_update(
            {USER: user_identity, PRODUCT: product_identity},
            {
                "$inc": {QUANTITY: quantity},
                "$set": {UPDATED_AT: now},
                "$setOnInsert": {
                    CREATED_AT: now,
                    USER_CONTEXT: user_context_id,
                    SNAPSHOT: snapshot,
                },
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    @store_call
    def delete_line(self, user_identity: Optional[str], product_identity: str) -> int:
        result = self.lines.delete_one(line_filter(user_identity, product_identity))
        return result.deleted_count
