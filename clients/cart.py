# clients/cart.py
from typing import Any, Dict, Optional

from core.context import AppContext
from core.logger import get_logger
from core.models import CartSnapshot, Envelope, ErrorKind

from .base import ApiClient, drop_none
from .wishlist import WishlistClient

logger = get_logger(__name__)

CART_SLOT = "cart"


class CartClient(ApiClient):
    """
    Cart CRUD. Every successful mutation re-fetches the whole cart so the
    cache slot always mirrors the server, never a locally patched copy.
    """

    def __init__(self, ctx: AppContext, wishlist: Optional[WishlistClient] = None):
        super().__init__(ctx)
        self.wishlist = wishlist or WishlistClient(ctx)

    def get_cart(self) -> Envelope:
        envelope = self.get("/cart", parse=CartSnapshot.from_dict)
        if envelope.success and envelope.data is not None:
            self._cache_cart(envelope.data)
            return envelope

        if envelope.kind is ErrorKind.NETWORK:
            cached = self.cached_cart()
            if cached is not None and cached.items:
                logger.warning("Cart fetch failed; serving %d cached items.", len(cached.items))
                return Envelope(success=True, message="Showing cached cart", data=cached, stale=True)
        return envelope

    def add_to_cart(
        self,
        product_id: str,
        quantity: int = 1,
        variant: Optional[Dict[str, str]] = None,
    ) -> Envelope:
        if quantity < 1:
            raise ValueError(f"quantity must be positive, got {quantity}")
        result = self.post(
            "/cart",
            json=drop_none({"productId": product_id, "quantity": quantity, "variant": variant}),
        )
        if result.success:
            self.refresh_cache()
        return result

    def update_cart_item(self, product_id: str, quantity: int) -> Envelope:
        # The server treats quantity 0 as a removal.
        result = self.put(f"/cart/{product_id}", json={"quantity": quantity})
        if result.success:
            self.refresh_cache()
        return result

    def remove_from_cart(self, product_id: str) -> Envelope:
        result = self.delete(f"/cart/{product_id}")
        if result.success:
            self.refresh_cache()
        return result

    def clear_cart(self) -> Envelope:
        result = self.delete("/cart")
        if result.success:
            self.clear_cache()
        return result

    def get_cart_summary(self) -> Envelope:
        return self.get("/cart/summary")

    def get_cart_count(self) -> Envelope:
        """data carries `count` (distinct lines) and `itemsCount` (units)."""
        return self.get("/cart/count")

    def move_from_wishlist_to_cart(self, product_id: str, quantity: int = 1) -> Envelope:
        result = self.post(f"/cart/from-wishlist/{product_id}", json={"quantity": quantity})
        if result.success:
            self.refresh_cache()
            self.wishlist.refresh_cache()
        return result

    def refresh_cache(self) -> None:
        envelope = self.get_cart()
        if not envelope.success or envelope.stale:
            logger.warning("Could not refresh cart cache: %s", envelope.message)

    def _cache_cart(self, snapshot: CartSnapshot) -> None:
        self.ctx.cache.write(CART_SLOT, snapshot.to_dict())

    def cached_cart(self) -> Optional[CartSnapshot]:
        data: Any = self.ctx.cache.read(CART_SLOT)
        if not data:
            return None
        return CartSnapshot.from_dict(data)

    def clear_cache(self) -> None:
        self.ctx.cache.clear(CART_SLOT)
