# hooks/products.py
from typing import Optional

from clients.products import ProductClient
from core.filters import Filters
from core.models import Envelope, Page

from .base import PagedResource


class ProductList(PagedResource):
    """Paginated product catalogue; page 1 is mirrored into the products cache slot."""

    noun = "products"

    def __init__(
        self,
        products: ProductClient,
        initial_filters: Optional[Filters] = None,
        page_size: int = 20,
        enable_cache: bool = True,
    ):
        super().__init__(initial_filters, page_size, enable_cache)
        self.products = products

    def _fetch_page(self, filters: Filters) -> Envelope:
        return self.products.get_products(filters)

    def _read_cache(self) -> Optional[Page]:
        cached = self.products.cached_products()
        if not cached:
            return None
        return Page(items=cached, total=len(cached))

    def _write_cache(self, page: Page) -> None:
        self.products.cache_products(page.items)

    async def search_products(self, query: str) -> None:
        await self.search(query)

    async def filter_products(self, filters: Filters) -> None:
        await self.apply_filters(filters)
