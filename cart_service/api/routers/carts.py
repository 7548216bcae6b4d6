# cart_service/api/routers/carts.py
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pymongo.database import Database

from cart_service.data.database import get_db
from cart_service.domain.errors import InvalidRequest, NotFound, StoreError
from cart_service.domain.policies import MergeStrategy, SnapshotPolicy, parse_policy
from cart_service.domain.schemas import (
    AddToCartIn,
    CartLineOut,
    QuantityUpdateIn,
    RemoveOut,
)
from cart_service.services.cart_service import CartService
from cart_service.services.lock_service import LockService
from cart_service.services.product_client import ProductClient
from cart_service.utils.settings import CART_MERGE_STRATEGY, CART_SNAPSHOT_POLICY

router = APIRouter(prefix="/cart", tags=["cart"])


#one catalog client and one redis pool per process, shared by every request
@lru_cache(maxsize=None)
def shared_product_client() -> ProductClient:
    return ProductClient()


@lru_cache(maxsize=None)
def shared_lock_service() -> LockService:
    return LockService()


def close_shared_clients() -> None:
    if shared_lock_service.cache_info().currsize:
        shared_lock_service().close()
    shared_lock_service.cache_clear()
    shared_product_client.cache_clear()


def get_service(db: Database = Depends(get_db)) -> CartService:
    strategy = parse_policy(MergeStrategy, CART_MERGE_STRATEGY)
    snapshots = parse_policy(SnapshotPolicy, CART_SNAPSHOT_POLICY)
    return CartService(
        db=db,
        product_client=shared_product_client() if snapshots is not SnapshotPolicy.OFF else None,
        lock_service=shared_lock_service() if strategy is MergeStrategy.REDIS else None,
        merge_strategy=strategy,
        snapshot_policy=snapshots,
    )


def _raise_http(e: Exception):
    if isinstance(e, InvalidRequest):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NotFound):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=500, detail=str(e))


@router.get("/{user_identity}", response_model=List[CartLineOut])
def list_cart(user_identity: str, svc: CartService = Depends(get_service)):
    try:
        return svc.list_lines(user_identity)
    except (InvalidRequest, StoreError) as e:
        _raise_http(e)


@router.post("", response_model=CartLineOut, status_code=201)
def add_to_cart(payload: AddToCartIn, svc: CartService = Depends(get_service)):
    try:
        return svc.add_or_merge(
            user=payload.user_identity,
            product=payload.product_identity,
            quantity=payload.quantity,
            user_context_id=payload.user_context_id,
        )
    except (InvalidRequest, NotFound, StoreError) as e:
        _raise_http(e)


@router.patch("/{product_identity}", response_model=CartLineOut)
def update_quantity(
    product_identity: str,
    payload: QuantityUpdateIn,
    svc: CartService = Depends(get_service),
):
    try:
        return svc.set_quantity(payload.user_email, product_identity, payload.quantity)
    except (InvalidRequest, NotFound, StoreError) as e:
        _raise_http(e)


@router.delete("/{product_identity}", response_model=RemoveOut)
def remove_from_cart(
    product_identity: str,
    user_email: Optional[str] = Query(None, alias="userEmail"),
    svc: CartService = Depends(get_service),
):
    try:
        deleted = svc.remove(product_identity, user_email)
    except (InvalidRequest, NotFound, StoreError) as e:
        _raise_http(e)
    return {"message": "Item removed from cart", "deleted_count": deleted}
