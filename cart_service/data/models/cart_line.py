# cart_service/data/models/cart_line.py
"""
Layout of a cart line document in the ``cart_lines`` collection.

    {
        "_id": ObjectId,
        "userIdentity": str,
        "userContextId": str | None,
        "productIdentity": str,
        "quantity": int,
        "createdAt": datetime,
        "updatedAt": datetime,
        "productSnapshot": dict | None,   # copied once at insert, never refreshed
    }
"""
from datetime import datetime
from typing import Any, Dict, Optional

CART_LINES = "cart_lines"

USER = "userIdentity"
USER_CONTEXT = "userContextId"
PRODUCT = "productIdentity"
QUANTITY = "quantity"
CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"
SNAPSHOT = "productSnapshot"


def new_cart_line(
    user_identity: str,
    product_identity: str,
    quantity: int,
    now: datetime,
    user_context_id: Optional[str] = None,
    snapshot: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        USER: user_identity,
        USER_CONTEXT: user_context_id,
        PRODUCT: product_identity,
        QUANTITY: quantity,
        CREATED_AT: now,
        UPDATED_AT: now,
        SNAPSHOT: snapshot,
    }


def line_from_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    #dict -> CartLineOut
    return {
        "id": str(doc["_id"]),
        "user_identity": doc[USER],
        "user_context_id": doc.get(USER_CONTEXT),
        "product_identity": doc[PRODUCT],
        "quantity": doc[QUANTITY],
        "created_at": doc[CREATED_AT],
        "updated_at": doc[UPDATED_AT],
        "product_snapshot": doc.get(SNAPSHOT),
    }
