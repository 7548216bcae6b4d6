# cart_service/data/database.py
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from cart_service.data.models.cart_line import CART_LINES, PRODUCT, USER
from cart_service.utils.settings import MONGO_DB_NAME, MONGO_TIMEOUT_MS, MONGO_URI
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)

#MongoClient is thread safe and pools connections, one per process
_client: MongoClient | None = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB database '{MONGO_DB_NAME}'")
        _client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=MONGO_TIMEOUT_MS, tz_aware=True)
    return _client


def get_db() -> Database:
    return get_client()[MONGO_DB_NAME]


def ensure_indexes(db: Database) -> None:
    """
    Unique (user, product) index backing the one-line-per-pair invariant.
    Without it two concurrent upserts of the same pair may both insert.
    """
    lines = db[CART_LINES]
    lines.create_index(
        [(USER, ASCENDING), (PRODUCT, ASCENDING)],
        unique=True,
        name="u_user_product",
    )
    lines.create_index([(PRODUCT, ASCENDING)], name="ix_product")
    logger.info(f"Indexes ensured on '{CART_LINES}'")


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
