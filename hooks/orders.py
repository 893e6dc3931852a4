# hooks/orders.py
import asyncio
import dataclasses
from typing import Any, Optional

from clients.orders import OrderClient
from core.filters import Filters
from core.logger import get_logger
from core.models import Envelope, ErrorKind, OrderStatus

from .base import PagedResource

logger = get_logger(__name__)

AUTO_REFRESH_SECONDS = 60


class OrderList(PagedResource):
    """
    Paginated order history plus aggregate stats.
    Orders are account data and are never cached locally.
    """

    noun = "orders"

    def __init__(
        self,
        orders: OrderClient,
        initial_filters: Optional[Filters] = None,
        page_size: int = 20,
        auto_refresh: bool = False,
        refresh_interval: float = AUTO_REFRESH_SECONDS,
    ):
        super().__init__(initial_filters, page_size, enable_cache=False)
        self.orders = orders
        self.stats: Any = None
        self.auto_refresh = auto_refresh
        self.refresh_interval = refresh_interval
        self._auto_task: Optional[asyncio.Task] = None

    def _fetch_page(self, filters: Filters) -> Envelope:
        return self.orders.get_orders(filters)

    async def load_stats(self) -> None:
        try:
            envelope = await asyncio.to_thread(self.orders.get_order_stats)
        except Exception as e:
            logger.exception("Fetching order stats raised: %s", e)
            return
        if envelope.success and envelope.data:
            self.stats = envelope.data

    async def start(self) -> None:
        await asyncio.gather(super().start(), self.load_stats())
        if self.auto_refresh and self._auto_task is None:
            self._auto_task = asyncio.create_task(self._auto_refresh_loop())

    async def refresh(self) -> None:
        await asyncio.gather(super().refresh(), self.load_stats())

    async def _auto_refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            logger.debug("Auto-refreshing orders.")
            await self.refresh()

    def close(self) -> None:
        if self._auto_task is not None:
            self._auto_task.cancel()
            self._auto_task = None

    async def search_orders(self, query: str) -> None:
        await self.search(query)

    async def filter_orders(self, filters: Filters) -> None:
        await self.apply_filters(filters)

    async def update_order_status(self, order_id: str, status: Any) -> bool:
        """Change an order's status on the server and mirror it in the loaded list."""
        new_status = OrderStatus(status)
        try:
            envelope = await asyncio.to_thread(self.orders.update_order_status, order_id, new_status)
        except Exception as e:
            logger.exception("Updating order %s raised: %s", order_id, e)
            self.error = "Failed to update order status"
            self.error_kind = ErrorKind.NETWORK
            return False

        if not envelope.success:
            self.error = envelope.message or "Failed to update order status"
            self.error_kind = envelope.kind
            return False

        self.items = [
            dataclasses.replace(o, status=new_status.value) if o.id == order_id else o
            for o in self.items
        ]
        return True
