import os
import threading
from typing import Any, Dict, List, Optional

os.environ.setdefault("LOG_TO_FILE", "false")

import pytest
import requests
from requests.cookies import RequestsCookieJar

from core.cache import CacheStore
from core.context import AppContext
from core.models import Envelope, ErrorKind, Order, Page, Product, Review, ReviewStats

BASE_URL = "http://api.test/api"

START_MS = 1_700_000_000_000
MINUTE_MS = 60 * 1000


class FakeClock:
    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeResponse:
    def __init__(self, body: Any = None, status_code: int = 200, invalid_json: bool = False):
        self._body = body
        self.status_code = status_code
        self.invalid_json = invalid_json

    def json(self) -> Any:
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._body


class FakeSession:
    """
    Stands in for requests.Session. Responses are queued per (method, path);
    the last queued response for a route keeps being served.
    """

    def __init__(self, base_url: str = BASE_URL):
        self.base_url = base_url
        self.routes: Dict[tuple, List[Any]] = {}
        self.calls: List[Dict[str, Any]] = []
        self.cookies = RequestsCookieJar()
        self.closed = False

    def add(self, method: str, path: str, body: Any = None, status: int = 200, exc: Optional[Exception] = None,
            invalid_json: bool = False) -> None:
        item = exc if exc is not None else FakeResponse(body, status, invalid_json)
        self.routes.setdefault((method, path), []).append(item)

    def ok(self, method: str, path: str, data: Any = None, message: str = "") -> None:
        self.add(method, path, {"success": True, "message": message, "data": data})

    def fail(self, method: str, path: str, status: int, message: str = "", **extra) -> None:
        self.add(method, path, {"success": False, "message": message, **extra}, status=status)

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        path = url[len(self.base_url):] if url.startswith(self.base_url) else url
        self.calls.append({"method": method, "path": path, "headers": headers, "timeout": timeout, **kwargs})
        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"Unexpected request {method} {path}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [c["path"] for c in self.calls if method is None or c["method"] == method]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock):
    return CacheStore(str(tmp_path / "cache" / "storefront.sqlite3"), clock=clock)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def ctx(cache, session):
    return AppContext(
        cache=cache,
        base_url=BASE_URL,
        timeout=1,
        max_attempts=1,
        retry_delay=0,
        session=session,
    )


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr("time.sleep", lambda seconds: None)


def product_json(i: int, **overrides) -> Dict[str, Any]:
    data = {
        "_id": f"p{i}",
        "name": f"Product {i}",
        "price": 10.0 + i,
        "image": f"https://img.test/p{i}.jpg",
        "category": "shoes",
        "description": "",
        "rating": 4.5,
        "reviews": 12,
        "inStock": True,
        "brand": "Acme",
    }
    data.update(overrides)
    return data


def make_product(i: int, prefix: str = "Product") -> Product:
    return Product(id=f"p{i}", name=f"{prefix} {i}", price=10.0 + i)


class FakeProducts:
    """
    Scriptable product client for hook tests. Serves `count` products
    page by page; `gates` holds one optional threading.Event per call that
    the call waits on before answering.
    """

    def __init__(self, count: int = 25, total_pages: Optional[int] = None):
        self.count = count
        self.total_pages = total_pages
        self.calls: List[Dict[str, Any]] = []
        self.gates: List[Optional[threading.Event]] = []
        self.raise_error: Optional[Exception] = None
        self.failure: Optional[Envelope] = None
        self.cached: List[Product] = []
        self.cache_writes: List[List[Product]] = []

    def get_products(self, filters):
        gate = self.gates.pop(0) if self.gates else None
        self.calls.append(dict(filters))
        if gate is not None:
            gate.wait(timeout=5)
        if self.raise_error is not None:
            raise self.raise_error
        if self.failure is not None:
            return self.failure
        page, limit = filters["page"], filters["limit"]
        prefix = filters.get("category") or "all"
        start = (page - 1) * limit
        items = [make_product(i, prefix) for i in range(start, min(start + limit, self.count))]
        return Envelope(
            success=True,
            data=Page(items=items, total=self.count, page=page, limit=limit, total_pages=self.total_pages),
        )

    def cached_products(self):
        return list(self.cached)

    def cache_products(self, products):
        self.cache_writes.append(list(products))


class FakeOrders:
    def __init__(self, orders: Optional[List[Order]] = None):
        self.orders = orders or []
        self.list_calls = 0
        self.stats_calls = 0
        self.status_result: Optional[Envelope] = None
        self.status_calls: List[tuple] = []

    def get_orders(self, filters):
        self.list_calls += 1
        return Envelope(success=True, data=Page(items=list(self.orders), total=len(self.orders)))

    def get_order_stats(self, period: int = 30):
        self.stats_calls += 1
        return Envelope(success=True, data={"overview": {"totalOrders": len(self.orders)}})

    def update_order_status(self, order_id, status, **kwargs):
        self.status_calls.append((order_id, status))
        if self.status_result is not None:
            return self.status_result
        return Envelope(success=True, data=None)


class FakeReviews:
    def __init__(self, reviews: Optional[List[Review]] = None, stats: Optional[ReviewStats] = None):
        self.reviews = reviews or []
        self.stats = stats
        self.product_calls: List[tuple] = []
        self.site_calls: List[Dict[str, Any]] = []
        self.by_id: Dict[str, Review] = {r.id: r for r in self.reviews}

    def get_product_reviews(self, product_id, filters=None, cache=True):
        self.product_calls.append((product_id, dict(filters or {})))
        return Envelope(
            success=True,
            data=Page(items=list(self.reviews), total=len(self.reviews), stats=self.stats),
        )

    def get_reviews(self, filters=None):
        self.site_calls.append(dict(filters or {}))
        return Envelope(success=True, data=Page(items=list(self.reviews), total=len(self.reviews)))

    def cached_product_reviews(self, product_id):
        return None

    def get_review(self, review_id):
        review = self.by_id.get(review_id)
        if review is None:
            return Envelope(success=False, message="", kind=ErrorKind.NOT_FOUND, status=404)
        return Envelope(success=True, data=review)


@pytest.fixture
def fake_products():
    return FakeProducts()


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")
