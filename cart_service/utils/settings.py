# cart_service/utils/settings.py
import os
from dotenv import load_dotenv

load_dotenv()

MONGO_URI = os.getenv("MONGO_URI", "mongodb://mongo:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "shop")
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", 5000))
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
PRODUCT_SERVICE_URL = os.getenv("PRODUCT_SERVICE_URL", "http://product-service:8000")
PRODUCT_SERVICE_TIMEOUT = float(os.getenv("PRODUCT_SERVICE_TIMEOUT", 2))

# scoped | global
CART_MATCH_SCOPE = os.getenv("CART_MATCH_SCOPE", "scoped")
# atomic | redis | local
CART_MERGE_STRATEGY = os.getenv("CART_MERGE_STRATEGY", "atomic")
# off | reject | lenient
CART_SNAPSHOT_POLICY = os.getenv("CART_SNAPSHOT_POLICY", "reject")

CART_LOCK_TTL_SECONDS = int(os.getenv("CART_LOCK_TTL_SECONDS", 10))
CART_LOCK_WAIT_SECONDS = float(os.getenv("CART_LOCK_WAIT_SECONDS", 5))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", 5000))
