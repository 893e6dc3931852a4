# clients/wishlist.py
from typing import Any, Dict, List, Optional

from core.logger import get_logger
from core.models import Envelope, ErrorKind, WishlistItem

from .base import ApiClient, drop_none

logger = get_logger(__name__)

WISHLIST_SLOT = "wishlist"
PRIORITIES = ("low", "medium", "high")


def _wishlist(data: Dict[str, Any]) -> List[WishlistItem]:
    return [WishlistItem.from_dict(it) for it in data.get("wishlist") or []]


class WishlistClient(ApiClient):
    def get_wishlist(self) -> Envelope:
        """
        Fetch the wishlist and mirror it into the cache slot.
        On a network failure a fresh cached copy is served as a stale success.
        """
        envelope = self.get("/wishlist", parse=_wishlist)
        if envelope.success and envelope.data is not None:
            self._cache_wishlist(envelope.data)
            return envelope

        if envelope.kind is ErrorKind.NETWORK:
            cached = self.cached_wishlist()
            if cached:
                logger.warning("Wishlist fetch failed; serving %d cached items.", len(cached))
                return Envelope(
                    success=True, message="Showing cached wishlist", data=cached, stale=True,
                )
        return envelope

    def add_to_wishlist(
        self, product_id: str, priority: str = "medium", notes: Optional[str] = None
    ) -> Envelope:
        if priority not in PRIORITIES:
            raise ValueError(f"priority must be one of {PRIORITIES}, got {priority!r}")
        result = self.post(
            "/wishlist",
            json=drop_none({"productId": product_id, "priority": priority, "notes": notes}),
        )
        if result.success:
            self.refresh_cache()
        return result

    def remove_from_wishlist(self, product_id: str) -> Envelope:
        result = self.delete(f"/wishlist/{product_id}")
        if result.success:
            self.refresh_cache()
        return result

    def clear_wishlist(self) -> Envelope:
        result = self.delete("/wishlist")
        if result.success:
            self.clear_cache()
        return result

    def get_wishlist_count(self) -> Envelope:
        return self.get("/wishlist/count")

    def check_wishlist_status(self, product_id: str) -> Envelope:
        """data carries `isInWishlist`."""
        return self.get(f"/wishlist/check/{product_id}")

    def refresh_cache(self) -> None:
        # get_wishlist writes the slot itself on success
        envelope = self.get_wishlist()
        if not envelope.success or envelope.stale:
            logger.warning("Could not refresh wishlist cache: %s", envelope.message)

    def _cache_wishlist(self, items: List[WishlistItem]) -> None:
        self.ctx.cache.write(WISHLIST_SLOT, [it.to_dict() for it in items])

    def cached_wishlist(self) -> List[WishlistItem]:
        data = self.ctx.cache.read(WISHLIST_SLOT)
        if not data:
            return []
        return [WishlistItem.from_dict(d) for d in data]

    def clear_cache(self) -> None:
        self.ctx.cache.clear(WISHLIST_SLOT)
