# hooks/__init__.py
from .base import LoadState, PagedResource, compute_has_more
from .detail import ProductDetail, ReviewDetail
from .orders import OrderList
from .products import ProductList
from .reviews import ReviewList

__all__ = [
    "LoadState",
    "OrderList",
    "PagedResource",
    "ProductDetail",
    "ProductList",
    "ReviewDetail",
    "ReviewList",
    "compute_has_more",
]
