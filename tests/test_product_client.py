"""
Tests for the catalog HTTP client
"""
from unittest.mock import Mock

import pytest
import requests
from fastapi.testclient import TestClient

from cart_service.domain.errors import NotFound
from cart_service.product_service.main import CATALOG, app as catalog_app
from cart_service.services import product_client as product_client_module
from cart_service.services.cart_service import CartService
from cart_service.services.product_client import CatalogResponseError, ProductClient
from cart_service.utils.retry import is_transient_http_error


def _response(status_code, payload=None):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error", response=resp)
    else:
        resp.raise_for_status.return_value = None
    return resp


class TestFetchProduct:

    def test_returns_product_json(self, monkeypatch):
        get = Mock(return_value=_response(200, {"id": "p1", "price": 10}))
        monkeypatch.setattr(product_client_module.requests, "get", get)

        client = ProductClient(base_url="http://catalog:8000/", timeout=1)
        product = client.fetch_product("p1")

        assert product == {"id": "p1", "price": 10}
        get.assert_called_once_with("http://catalog:8000/products/p1", timeout=1)

    def test_404_is_none_without_retry(self, monkeypatch):
        get = Mock(return_value=_response(404))
        monkeypatch.setattr(product_client_module.requests, "get", get)

        assert ProductClient(base_url="http://catalog").fetch_product("missing") is None
        assert get.call_count == 1

    def test_identity_is_url_quoted(self, monkeypatch):
        get = Mock(return_value=_response(200, {}))
        monkeypatch.setattr(product_client_module.requests, "get", get)

        ProductClient(base_url="http://catalog", timeout=1).fetch_product("a/b c")

        get.assert_called_once_with("http://catalog/products/a%2Fb%20c", timeout=1)

    def test_connection_errors_are_retried_then_raised(self, monkeypatch):
        get = Mock(side_effect=requests.ConnectionError("refused"))
        monkeypatch.setattr(product_client_module.requests, "get", get)

        with pytest.raises(requests.ConnectionError):
            ProductClient(base_url="http://catalog").fetch_product("p1")

        assert get.call_count == 3

    @pytest.mark.parametrize("payload", [["x"], "p1", None, 3])
    def test_non_object_body_is_catalog_error_without_retry(self, monkeypatch, payload):
        get = Mock(return_value=_response(200, payload))
        monkeypatch.setattr(product_client_module.requests, "get", get)

        with pytest.raises(CatalogResponseError):
            ProductClient(base_url="http://catalog").fetch_product("p1")

        assert get.call_count == 1

    @pytest.mark.parametrize("status_code", [400, 401, 422])
    def test_client_errors_are_not_retried(self, monkeypatch, status_code):
        get = Mock(return_value=_response(status_code))
        monkeypatch.setattr(product_client_module.requests, "get", get)

        with pytest.raises(requests.HTTPError):
            ProductClient(base_url="http://catalog").fetch_product("p1")

        assert get.call_count == 1

    def test_server_errors_are_retried(self, monkeypatch):
        get = Mock(side_effect=[_response(503), _response(200, {"id": "p1"})])
        monkeypatch.setattr(product_client_module.requests, "get", get)

        assert ProductClient(base_url="http://catalog").fetch_product("p1") == {"id": "p1"}
        assert get.call_count == 2


class TestTransientHttpError:

    def test_network_failures_are_transient(self):
        assert is_transient_http_error(requests.ConnectionError("refused"))
        assert is_transient_http_error(requests.Timeout("slow"))

    def test_status_decides_for_http_errors(self):
        assert is_transient_http_error(requests.HTTPError(response=_response(502)))
        assert not is_transient_http_error(requests.HTTPError(response=_response(404)))
        assert not is_transient_http_error(requests.HTTPError("no response"))

    def test_other_request_errors_are_not_transient(self):
        assert not is_transient_http_error(CatalogResponseError("list body"))
        assert not is_transient_http_error(ValueError("boom"))


class TestDevCatalog:
    """
    ProductClient against the dev catalog app

    requests.get is routed into the catalog FastAPI app through TestClient,
    so the client sees the real routes, status codes and JSON bodies.
    """

    @pytest.fixture
    def catalog_client(self, monkeypatch):
        http = TestClient(catalog_app)
        monkeypatch.setattr(
            product_client_module.requests, "get", lambda url, timeout: http.get(url)
        )
        return ProductClient(base_url="http://catalog", timeout=1)

    def test_known_product(self, catalog_client):
        product = catalog_client.fetch_product("p1")

        assert product["id"] == "p1"
        assert product["name"] == "Keyboard"
        assert product["price"] == 199.99
        assert product["category"] == "peripherals"

    def test_unknown_product_is_none(self, catalog_client):
        assert catalog_client.fetch_product("ghost") is None

    def test_numeric_id_form(self, catalog_client):
        assert catalog_client.fetch_product("42")["name"] == "USB-C Cable"

    def test_list_endpoint_serves_whole_catalog(self):
        response = TestClient(catalog_app).get("/products")

        assert response.status_code == 200
        assert {p["id"] for p in response.json()} == set(CATALOG)

    def test_snapshot_copies_catalog_fields(self, catalog_client, mongo_db, clock):
        svc = CartService(
            db=mongo_db,
            product_client=catalog_client,
            merge_strategy="atomic",
            snapshot_policy="reject",
            clock=clock,
        )

        line = svc.add_or_merge("a@x.com", "p1", 2)

        snapshot = line["product_snapshot"]
        assert snapshot["name"] == "Keyboard"
        assert snapshot["currency"] == "USD"
        assert snapshot["imageUrl"] == "/static/keyboard.png"
        assert "capturedAt" in snapshot

    def test_unknown_product_rejected_end_to_end(self, catalog_client, mongo_db):
        svc = CartService(db=mongo_db, product_client=catalog_client, snapshot_policy="reject")

        with pytest.raises(NotFound):
            svc.add_or_merge("a@x.com", "ghost", 1)

        assert mongo_db["cart_lines"].count_documents({}) == 0
