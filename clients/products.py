# clients/products.py
from typing import Any, Dict, List, Optional

from core.filters import Filters, merge_filters
from core.logger import get_logger
from core.models import Envelope, Page, Product

from .base import ApiClient, drop_none

logger = get_logger(__name__)

PRODUCTS_SLOT = "products"


def _product_page(data: Dict[str, Any]) -> Page:
    return Page.from_dict(data, "products", Product.from_dict)


def _single_product(data: Dict[str, Any]) -> Product:
    return Product.from_dict(data["product"])


class ProductClient(ApiClient):
    def get_products(self, filters: Optional[Filters] = None) -> Envelope:
        """Fetch a page of products; data is a Page of Product."""
        return self.get("/products", params=filters, parse=_product_page)

    def get_product(self, product_id: str) -> Envelope:
        return self.get(f"/products/{product_id}", parse=_single_product)

    def search_products(self, query: str, filters: Optional[Filters] = None) -> Envelope:
        return self.get_products(merge_filters(filters, {"search": query}))

    def get_products_by_category(self, category: str, filters: Optional[Filters] = None) -> Envelope:
        return self.get_products(merge_filters(filters, {"category": category}))

    def get_featured_products(self, limit: int = 10) -> Envelope:
        return self.get_products({
            "sortBy": "rating",
            "sortOrder": "desc",
            "limit": limit,
            "inStock": True,
        })

    def get_categories(self) -> Envelope:
        return self.get("/products/categories")

    def get_brands(self) -> Envelope:
        return self.get("/products/brands")

    # Admin operations; the server rejects them for non-admin sessions.

    def create_product(self, product: Dict[str, Any]) -> Envelope:
        return self.post("/products", json=product, parse=_single_product)

    def update_product(self, product_id: str, changes: Dict[str, Any]) -> Envelope:
        return self.put(f"/products/{product_id}", json=drop_none(changes), parse=_single_product)

    def delete_product(self, product_id: str) -> Envelope:
        return self.delete(f"/products/{product_id}")

    def toggle_product_stock(self, product_id: str, in_stock: bool) -> Envelope:
        return self.patch(
            f"/products/{product_id}/stock",
            json={"inStock": in_stock},
            parse=_single_product,
        )

    # Offline snapshot of the first page

    def cache_products(self, products: List[Product]) -> None:
        self.ctx.cache.write(PRODUCTS_SLOT, [p.to_dict() for p in products])

    def cached_products(self) -> List[Product]:
        data = self.ctx.cache.read(PRODUCTS_SLOT)
        if not data:
            return []
        return [Product.from_dict(d) for d in data]

    def clear_cache(self) -> None:
        self.ctx.cache.clear(PRODUCTS_SLOT)
