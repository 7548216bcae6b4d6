# cart_service/services/product_client.py
from urllib.parse import quote

import requests
from requests import RequestException

from cart_service.utils.retry import http_retry
from cart_service.utils.settings import PRODUCT_SERVICE_TIMEOUT, PRODUCT_SERVICE_URL
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogResponseError(RequestException):
    """Catalog answered 2xx with a body that is not a product object."""


class ProductClient:
    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else PRODUCT_SERVICE_TIMEOUT

    @http_retry()
    def fetch_product(self, product_id: str) -> dict | None:
        """Catalog entry for product_id, or None when the catalog answers 404."""
        url = f"{self.base_url}/products/{quote(product_id, safe='')}"
        logger.info(f"ProductClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()

        data = resp.json()
        if not isinstance(data, dict):
            raise CatalogResponseError(
                f"Catalog returned {type(data).__name__} for product {product_id}, expected an object"
            )
        return data
