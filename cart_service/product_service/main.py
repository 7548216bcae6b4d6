# cart_service/product_service/main.py
"""
Local stand-in for the product catalog consulted on the first add of a product.

    uvicorn cart_service.product_service.main:app --port 8001
    PRODUCT_SERVICE_URL=http://localhost:8001

Every field of a product body ends up in the cart line's productSnapshot.
"""
from typing import Dict, List

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel


class CatalogProduct(BaseModel):
    id: str
    name: str
    price: float
    currency: str = "USD"
    imageUrl: str | None = None
    category: str | None = None


CATALOG: Dict[str, CatalogProduct] = {
    p.id: p
    for p in (
        CatalogProduct(id="p1", name="Keyboard", price=199.99, category="peripherals",
                       imageUrl="/static/keyboard.png"),
        CatalogProduct(id="p2", name="Mouse", price=49.50, category="peripherals"),
        CatalogProduct(id="p3", name="Monitor", price=899.00, category="displays"),
        #integer ids from older clients arrive as their decimal string
        CatalogProduct(id="42", name="USB-C Cable", price=9.90, category="accessories"),
    )
}

app = FastAPI(title="Product Catalog (dev)")


@app.get("/products", response_model=List[CatalogProduct])
def list_products():
    return list(CATALOG.values())


@app.get("/products/{product_id}", response_model=CatalogProduct)
def get_product(product_id: str):
    product = CATALOG.get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return product
