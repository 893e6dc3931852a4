# clients/reviews.py
from typing import Any, Dict, List, Optional

from core.filters import Filters
from core.logger import get_logger
from core.models import (
    Envelope,
    ErrorKind,
    Page,
    Review,
    ReviewEligibility,
    ReviewStats,
)

from .base import ApiClient, drop_none

logger = get_logger(__name__)


def reviews_slot(product_id: str) -> str:
    return f"reviews_{product_id}"


def _review_page(data: Dict[str, Any]) -> Page:
    page = Page.from_dict(data, "reviews", Review.from_dict)
    stats = data.get("stats")
    page.stats = ReviewStats.from_dict(stats) if stats else None
    return page


def _single_review(data: Dict[str, Any]) -> Review:
    return Review.from_dict(data["review"])


def _is_first_page(params: Dict[str, Any]) -> bool:
    return str(params.get("page") or 1) == "1"


def _stats(data: Dict[str, Any]) -> ReviewStats:
    return ReviewStats.from_dict(data.get("stats") or data)


class ReviewClient(ApiClient):
    def get_reviews(self, filters: Optional[Filters] = None) -> Envelope:
        return self.get("/reviews", params=filters, parse=_review_page)

    def get_review(self, review_id: str) -> Envelope:
        return self.get(f"/reviews/{review_id}", parse=_single_review)

    def get_product_reviews(
        self, product_id: str, filters: Optional[Filters] = None, cache: bool = True
    ) -> Envelope:
        """
        Reviews of one product. A successful first page is mirrored into the
        product's cache slot, and a first page that fails on the network falls
        back to that slot. Later pages never touch the cache.
        """
        params = dict(filters or {})
        params.pop("productId", None)
        use_cache = cache and _is_first_page(params)
        envelope = self.get(f"/reviews/product/{product_id}", params=params, parse=_review_page)
        if envelope.success and envelope.data is not None:
            if use_cache:
                self._cache_product_reviews(product_id, envelope.data.items, envelope.data.stats)
            return envelope

        if use_cache and envelope.kind is ErrorKind.NETWORK:
            cached = self.cached_product_reviews(product_id)
            if cached is not None and cached.items:
                logger.warning(
                    "Reviews fetch for %s failed; serving %d cached reviews.",
                    product_id, len(cached.items),
                )
                return Envelope(success=True, message="Showing cached reviews", data=cached, stale=True)
        return envelope

    def create_review(
        self,
        product_id: str,
        rating: int,
        title: str,
        content: str,
        images: Optional[List[str]] = None,
    ) -> Envelope:
        if not 1 <= rating <= 5:
            raise ValueError(f"rating must be between 1 and 5, got {rating}")
        result = self.post(
            "/reviews",
            json=drop_none({
                "productId": product_id,
                "rating": rating,
                "title": title,
                "content": content,
                "images": images,
            }),
            parse=_single_review,
        )
        if result.success:
            self.refresh_product_reviews_cache(product_id)
        return result

    def update_review(self, review_id: str, changes: Dict[str, Any]) -> Envelope:
        result = self.put(f"/reviews/{review_id}", json=drop_none(changes), parse=_single_review)
        if result.success and isinstance(result.data, Review):
            self.refresh_product_reviews_cache(result.data.product_id)
        return result

    def delete_review(self, review_id: str) -> Envelope:
        return self.delete(f"/reviews/{review_id}")

    def vote_on_review(self, review_id: str, is_helpful: bool) -> Envelope:
        """data carries the updated `helpful`/`notHelpful` counters."""
        return self.post(f"/reviews/{review_id}/vote", json={"isHelpful": bool(is_helpful)})

    def get_user_reviews(self, page: int = 1, limit: int = 20) -> Envelope:
        return self.get("/reviews/user/me", params={"page": page, "limit": limit}, parse=_review_page)

    def can_review_product(self, product_id: str) -> Envelope:
        """data is a ReviewEligibility; reason is "already_reviewed" when a review exists."""
        return self.get(f"/reviews/can-review/{product_id}", parse=ReviewEligibility.from_dict)

    def get_product_review_stats(self, product_id: str) -> Envelope:
        return self.get(f"/reviews/stats/{product_id}", parse=_stats)

    # Per-product offline snapshots

    def _cache_product_reviews(
        self, product_id: str, reviews: List[Review], stats: Optional[ReviewStats]
    ) -> None:
        self.ctx.cache.write(
            reviews_slot(product_id),
            {
                "reviews": [r.to_dict() for r in reviews],
                "stats": stats.to_dict() if stats else None,
            },
        )

    def cached_product_reviews(self, product_id: str) -> Optional[Page]:
        data = self.ctx.cache.read(reviews_slot(product_id))
        if not data:
            return None
        items = [Review.from_dict(r) for r in data.get("reviews") or []]
        stats = data.get("stats")
        return Page(
            items=items,
            total=len(items),
            stats=ReviewStats.from_dict(stats) if stats else None,
        )

    def refresh_product_reviews_cache(self, product_id: str) -> None:
        envelope = self.get_product_reviews(product_id)
        if not envelope.success or envelope.stale:
            logger.warning("Could not refresh reviews cache for %s: %s", product_id, envelope.message)

    def clear_product_reviews_cache(self, product_id: str) -> None:
        self.ctx.cache.clear(reviews_slot(product_id))
