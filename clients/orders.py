# clients/orders.py
from typing import Any, Dict, List, Optional

from core.filters import Filters
from core.models import Envelope, Order, OrderStatus, Page

from .base import ApiClient, drop_none


def _order_page(data: Dict[str, Any]) -> Page:
    return Page.from_dict(data, "orders", Order.from_dict)


def _single_order(data: Dict[str, Any]) -> Order:
    return Order.from_dict(data["order"])


def _orders(data: Dict[str, Any]) -> List[Order]:
    return [Order.from_dict(o) for o in data.get("orders") or []]


def _status(status: Any) -> str:
    # raises ValueError for anything outside the closed set
    return OrderStatus(status).value


class OrderClient(ApiClient):
    def get_orders(self, filters: Optional[Filters] = None) -> Envelope:
        return self.get("/orders", params=filters, parse=_order_page)

    def get_order(self, order_id: str) -> Envelope:
        return self.get(f"/orders/{order_id}", parse=_single_order)

    def create_order(self, payload: Dict[str, Any]) -> Envelope:
        """
        Place an order from the session's cart.
        payload carries shippingAddress, paymentInfo and optionally notes/promoCode.
        """
        return self.post("/orders", json=payload, parse=_single_order)

    def update_order_status(
        self,
        order_id: str,
        status: Any,
        notes: Optional[str] = None,
        tracking_number: Optional[str] = None,
        carrier: Optional[str] = None,
        estimated_delivery: Optional[str] = None,
    ) -> Envelope:
        payload = drop_none({
            "status": _status(status),
            "notes": notes,
            "trackingNumber": tracking_number,
            "carrier": carrier,
            "estimatedDelivery": estimated_delivery,
        })
        return self.put(f"/orders/{order_id}/status", json=payload, parse=_single_order)

    def cancel_order(self, order_id: str) -> Envelope:
        return self.delete(f"/orders/{order_id}")

    def get_customer_orders(self, customer_id: str, page: int = 1, limit: int = 10) -> Envelope:
        return self.get(
            f"/orders/customer/{customer_id}",
            params={"page": page, "limit": limit},
            parse=_order_page,
        )

    def get_order_stats(self, period: int = 30) -> Envelope:
        """Aggregates for the last `period` days (overview, statusBreakdown, dailyStats)."""
        return self.get("/orders/stats", params={"period": period})

    def get_recent_orders(self, limit: int = 10) -> Envelope:
        return self.get("/orders/recent", params={"limit": limit}, parse=_orders)

    def bulk_update_status(
        self, order_ids: List[str], status: Any, notes: Optional[str] = None
    ) -> Envelope:
        return self.put(
            "/orders/bulk-status",
            json=drop_none({"orderIds": list(order_ids), "status": _status(status), "notes": notes}),
        )
