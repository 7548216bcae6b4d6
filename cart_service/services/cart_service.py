from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pymongo.database import Database
from requests import RequestException

from cart_service.data.models.cart_line import new_cart_line, line_from_document
from cart_service.domain.errors import InvalidRequest, NotFound, StoreError
from cart_service.domain.identity import (
    MAX_QUANTITY,
    parse_quantity,
    product_identity,
    user_identity,
)
from cart_service.domain.policies import (
    MatchScope,
    MergeStrategy,
    SnapshotPolicy,
    parse_policy,
)
from cart_service.repos.cart_repo import CartRepo
from cart_service.services.keyed_lock import KeyedLock, line_locks
from cart_service.services.lock_service import LockService
from cart_service.services.product_client import CatalogResponseError, ProductClient
from cart_service.utils.settings import (
    CART_MATCH_SCOPE,
    CART_MERGE_STRATEGY,
    CART_SNAPSHOT_POLICY,
)
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CartService:
    """
    Cart reconciliation use cases.
    commands (add_or_merge, set_quantity, remove) write exactly one document
    query (list_lines) only reads

    All state lives in the store; an instance can be built per request.
    """

    def __init__(
        self,
        db: Database,
        product_client: ProductClient | None = None,
        lock_service: LockService | None = None,
        keyed_lock: KeyedLock | None = None,
        match_scope: MatchScope | str | None = None,
        merge_strategy: MergeStrategy | str | None = None,
        snapshot_policy: SnapshotPolicy | str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = CartRepo(db)
        self.product_client = product_client
        self.lock_service = lock_service
        self.keyed_lock = keyed_lock if keyed_lock is not None else line_locks
        self.match_scope = parse_policy(MatchScope, match_scope or CART_MATCH_SCOPE)
        self.merge_strategy = parse_policy(MergeStrategy, merge_strategy or CART_MERGE_STRATEGY)
        self.snapshot_policy = parse_policy(SnapshotPolicy, snapshot_policy or CART_SNAPSHOT_POLICY)
        self.clock = clock

        if self.merge_strategy is MergeStrategy.REDIS and self.lock_service is None:
            raise ValueError("Merge strategy 'redis' needs a LockService")
        if self.snapshot_policy is not SnapshotPolicy.OFF and self.product_client is None:
            raise ValueError(f"Snapshot policy '{self.snapshot_policy.value}' needs a ProductClient")

    #query
    def list_lines(self, user: Any) -> List[Dict[str, Any]]:
        uid = user_identity(user)
        if uid is None:
            raise InvalidRequest("userIdentity is required")

        return [line_from_document(doc) for doc in self.repo.find_lines(uid)]

    #commands
    def add_or_merge(
        self,
        user: Any,
        product: Any,
        quantity: Any = None,
        user_context_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        uid = user_identity(user)
        pid = product_identity(product)
        if uid is None or pid is None:
            raise InvalidRequest("userIdentity and productIdentity are required")

        qty = 1 if quantity is None else parse_quantity(quantity)

        if self.merge_strategy is MergeStrategy.ATOMIC:
            return self._add_atomic(uid, pid, qty, user_context_id)

        with self._line_lock(uid, pid):
            return self._add_find_then_write(uid, pid, qty, user_context_id)

    def set_quantity(self, user: Any, product: Any, quantity: Any) -> Dict[str, Any]:
        uid = user_identity(user)
        if uid is None:
            raise InvalidRequest("userEmail is required")
        pid = product_identity(product)
        if pid is None:
            raise InvalidRequest("productIdentity is required")

        qty = parse_quantity(quantity)

        doc = self.repo.set_line_quantity(self._match_user(uid), pid, qty, self.clock())
        if doc is None:
            raise NotFound(f"Cart line for product {pid} not found")

        logger.info(f"Quantity of product {pid} for {uid} set to {qty}")
        return line_from_document(doc)

    def remove(self, product: Any, user: Any = None) -> int:
        pid = product_identity(product)
        if pid is None:
            raise InvalidRequest("productIdentity is required")

        uid = user_identity(user)
        if self.match_scope is MatchScope.SCOPED and uid is None:
            raise InvalidRequest("userEmail is required")

        deleted = self.repo.delete_line(self._match_user(uid), pid)
        if deleted == 0:
            raise NotFound(f"Cart line for product {pid} not found")

        logger.info(f"Removed cart line for product {pid} (scope={self.match_scope.value})")
        return deleted

    #internals
    def _match_user(self, uid: Optional[str]) -> Optional[str]:
        #global scope matches by product only
        if self.match_scope is MatchScope.GLOBAL:
            return None
        return uid

    def _merged_quantity(self, existing: Dict[str, Any], pid: str, qty: int) -> int:
        new_qty = existing["quantity"] + qty
        if new_qty > MAX_QUANTITY:
            raise InvalidRequest(f"Quantity of product {pid} would exceed {MAX_QUANTITY}")
        return new_qty

    def _add_atomic(self, uid: str, pid: str, qty: int, user_context_id: Optional[str]):
        existing = self.repo.find_line(uid, pid)
        if existing is not None:
            new_qty = self._merged_quantity(existing, pid, qty)
            logger.info(
                f"Product {pid} already in cart of {uid}, quantity "
                f"{existing['quantity']} -> {new_qty}"
            )
            #plain $inc without upsert, a merge can never insert a line
            doc = self.repo.increment_line(uid, pid, qty, self.clock())
            if doc is not None:
                return line_from_document(doc)
            logger.info(f"Cart line for product {pid} removed during merge, inserting anew")

        snapshot = self._capture_snapshot(pid)
        logger.info(f"Adding new product {pid} to cart of {uid}")

        #snapshot only lands via $setOnInsert, a concurrent insert wins and keeps its own
        doc = self.repo.upsert_increment(uid, pid, qty, self.clock(), user_context_id, snapshot)
        return line_from_document(doc)

    def _add_find_then_write(self, uid: str, pid: str, qty: int, user_context_id: Optional[str]):
        existing = self.repo.find_line(uid, pid)

        if existing is not None:
            new_qty = self._merged_quantity(existing, pid, qty)
            logger.info(
                f"Product {pid} already in cart of {uid}, quantity "
                f"{existing['quantity']} -> {new_qty}"
            )
            doc = self.repo.set_line_quantity(uid, pid, new_qty, self.clock())
            if doc is None:
                #removed by a caller that does not take the line lock
                raise NotFound(f"Cart line for product {pid} disappeared during merge")
            return line_from_document(doc)

        snapshot = self._capture_snapshot(pid)
        logger.info(f"Adding new product {pid} to cart of {uid}")
        doc = self.repo.insert_line(
            new_cart_line(uid, pid, qty, self.clock(), user_context_id, snapshot)
        )
        return line_from_document(doc)

    @contextmanager
    def _line_lock(self, uid: str, pid: str):
        if self.merge_strategy is MergeStrategy.REDIS:
            with self.lock_service.hold_line_lock(uid, pid):
                yield
        else:
            with self.keyed_lock.hold((uid, pid)):
                yield

    def _capture_snapshot(self, pid: str) -> Optional[Dict[str, Any]]:
        """
        One-time copy of the catalog entry for a new line.
        The copy is never refreshed, later catalog changes do not reach
        existing lines.
        """
        if self.snapshot_policy is SnapshotPolicy.OFF:
            return None

        try:
            product = self.product_client.fetch_product(pid)
            if product is not None and not isinstance(product, dict):
                raise CatalogResponseError(
                    f"Catalog returned {type(product).__name__} for product {pid}, expected an object"
                )
        except RequestException as e:
            if self.snapshot_policy is SnapshotPolicy.LENIENT:
                logger.warning(f"Catalog unavailable for product {pid}, adding without snapshot: {e}")
                return None
            logger.error(f"Catalog lookup for product {pid} failed: {e}")
            raise StoreError(f"Product catalog error: {e}") from e

        if product is None:
            if self.snapshot_policy is SnapshotPolicy.LENIENT:
                logger.warning(f"Product {pid} not in catalog, adding without snapshot")
                return None
            raise NotFound(f"Product {pid} not found")

        snapshot = {k: v for k, v in product.items() if k != "_id"}
        snapshot["capturedAt"] = self.clock()
        return snapshot
