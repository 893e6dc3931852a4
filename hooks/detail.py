# hooks/detail.py
import asyncio
from typing import Any, Optional

from clients.products import ProductClient
from clients.reviews import ReviewClient
from core.logger import get_logger
from core.models import Envelope, ErrorKind, Product, Review

from .base import NETWORK_ERROR

logger = get_logger(__name__)


class DetailResource:
    """Loads a single item by id; no pagination and no cache fallback."""

    noun = "Item"

    def __init__(self, item_id: str):
        self.item_id = item_id
        self.item: Any = None
        self.is_loading = True
        self.error: Optional[str] = None
        self.error_kind: Optional[ErrorKind] = None
        self._generation = 0

    def _fetch_item(self) -> Envelope:
        raise NotImplementedError

    async def load(self) -> None:
        if not self.item_id:
            self.is_loading = False
            return

        self._generation += 1
        generation = self._generation
        self.is_loading = True
        self.error = None
        self.error_kind = None

        try:
            envelope = await asyncio.to_thread(self._fetch_item)
        except Exception as e:
            if generation != self._generation:
                return
            logger.exception("Fetching %s %s raised: %s", self.noun.lower(), self.item_id, e)
            self.error = NETWORK_ERROR
            self.error_kind = ErrorKind.NETWORK
            self.item = None
        else:
            if generation != self._generation:
                return
            if envelope.success and envelope.data is not None:
                self.item = envelope.data
            else:
                self.error = envelope.message or f"{self.noun} not found"
                self.error_kind = envelope.kind
                self.item = None
        self.is_loading = False

    async def refresh(self) -> None:
        await self.load()

    def clear_error(self) -> None:
        self.error = None
        self.error_kind = None


class ProductDetail(DetailResource):
    noun = "Product"

    def __init__(self, products: ProductClient, product_id: str):
        super().__init__(product_id)
        self.products = products

    @property
    def product(self) -> Optional[Product]:
        return self.item

    def _fetch_item(self) -> Envelope:
        return self.products.get_product(self.item_id)


class ReviewDetail(DetailResource):
    noun = "Review"

    def __init__(self, reviews: ReviewClient, review_id: str):
        super().__init__(review_id)
        self.reviews = reviews

    @property
    def review(self) -> Optional[Review]:
        return self.item

    def _fetch_item(self) -> Envelope:
        return self.reviews.get_review(self.item_id)
