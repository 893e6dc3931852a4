# hooks/reviews.py
from typing import Optional

from clients.reviews import ReviewClient
from core.filters import Filters, merge_filters
from core.models import Envelope, Page, ReviewStats

from .base import PagedResource


class ReviewList(PagedResource):
    """
    Reviews, either site-wide or for one product. Product-scoped lists are
    mirrored per product by the client and fall back to that slot offline.
    """

    noun = "reviews"

    def __init__(
        self,
        reviews: ReviewClient,
        product_id: Optional[str] = None,
        initial_filters: Optional[Filters] = None,
        page_size: int = 20,
        enable_cache: bool = True,
    ):
        if product_id:
            initial_filters = merge_filters(initial_filters, {"productId": product_id})
        super().__init__(initial_filters, page_size, enable_cache)
        self.reviews = reviews
        self.product_id = product_id
        self.stats: Optional[ReviewStats] = None

    def _fetch_page(self, filters: Filters) -> Envelope:
        if self.product_id:
            return self.reviews.get_product_reviews(self.product_id, filters, cache=self.enable_cache)
        return self.reviews.get_reviews(filters)

    def _read_cache(self) -> Optional[Page]:
        if not self.product_id:
            return None
        return self.reviews.cached_product_reviews(self.product_id)

    def _on_page(self, page: Page) -> None:
        if page.stats is not None:
            self.stats = page.stats

    async def filter_reviews(self, filters: Filters) -> None:
        await self.apply_filters(filters)
