# core/report_text.py
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader

from core.models import CartSnapshot, Order, Product, ReviewStats, Review, WishlistItem

# Resolve template directory relative to this file
TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), keep_trailing_newline=True)


def _money(amount: float | None) -> str:
    if amount is None or amount < 0:
        return "Unavailable"
    return f"${amount:.2f}"


def _stars(rating: float) -> str:
    full = max(0, min(5, int(round(rating))))
    return "★" * full + "☆" * (5 - full)


def _age(age_ms: int | None) -> str:
    if age_ms is None:
        return "unknown age"
    seconds = age_ms // 1000
    if seconds < 60:
        return f"{seconds}s old"
    if seconds < 3600:
        return f"{seconds // 60}m old"
    if seconds < 86400:
        return f"{seconds // 3600}h old"
    return f"{seconds // 86400}d old"


def render_products(
    products: List[Product],
    total: int = 0,
    has_more: bool = False,
    notice: Optional[str] = None,
    heading: str = "Products",
) -> str:
    template = env.get_template("products.txt")
    data = [
        {
            "id": p.id,
            "name": p.name,
            "brand": p.brand,
            "price_str": _money(p.price),
            "rating_str": f"{p.rating:.1f}★",
            "in_stock": p.in_stock,
        }
        for p in products
    ]
    return template.render(
        heading=heading,
        products=data,
        shown=len(data),
        total=total,
        has_more=has_more,
        notice=notice,
    )


def render_product(product: Product) -> str:
    template = env.get_template("product.txt")
    return template.render(
        product=product,
        price_str=_money(product.price),
        rating_str=f"{product.rating:.1f} {_stars(product.rating)}",
    )


def render_cart(snapshot: Optional[CartSnapshot], notice: Optional[str] = None) -> str:
    template = env.get_template("cart.txt")
    items = []
    summary = None
    if snapshot is not None:
        items = [
            {
                "product_id": it.product.id,
                "name": it.product.name,
                "quantity": it.quantity,
                "price_str": _money(it.price_at_add or it.product.price),
                "line_str": _money(it.total_price or it.quantity * (it.price_at_add or it.product.price)),
            }
            for it in snapshot.items
        ]
        if snapshot.summary is not None:
            s = snapshot.summary
            summary = {
                "subtotal": _money(s.subtotal),
                "shipping": "Free" if s.shipping == 0 else _money(s.shipping),
                "tax": _money(s.tax),
                "total": _money(s.total),
            }
    return template.render(items=items, summary=summary, notice=notice)


def render_wishlist(items: List[WishlistItem], notice: Optional[str] = None) -> str:
    template = env.get_template("wishlist.txt")
    data = [
        {
            "product_id": it.product.id,
            "name": it.product.name,
            "price_str": _money(it.product.price),
            "priority": it.priority,
            "notes": it.notes,
        }
        for it in items
    ]
    return template.render(items=data, notice=notice)


def render_orders(
    orders: List[Order],
    total: int = 0,
    stats: Optional[Dict[str, Any]] = None,
    notice: Optional[str] = None,
) -> str:
    template = env.get_template("orders.txt")
    data = [
        {
            "number": o.order_number or o.id,
            "status": o.status,
            "total_str": _money(o.total),
            "item_count": sum(it.quantity for it in o.items),
            "created": o.created_at[:10],
        }
        for o in orders
    ]
    stats_data = None
    overview = (stats or {}).get("overview")
    if overview:
        stats_data = {
            "revenue": _money(float(overview.get("totalRevenue") or 0)),
            "count": int(overview.get("totalOrders") or 0),
            "average": _money(float(overview.get("averageOrderValue") or 0)),
        }
    return template.render(
        orders=data,
        shown=len(data),
        total=total,
        stats=stats_data,
        notice=notice,
    )


def render_reviews(
    reviews: List[Review],
    stats: Optional[ReviewStats] = None,
    total: int = 0,
    product_id: Optional[str] = None,
    notice: Optional[str] = None,
) -> str:
    template = env.get_template("reviews.txt")
    data = [
        {
            "stars": _stars(r.rating),
            "title": r.title,
            "content": r.content,
            "user_name": r.user_name,
            "verified": r.verified,
        }
        for r in reviews
    ]
    stats_data = None
    if stats is not None and stats.total_reviews:
        stats_data = {
            "average": f"{stats.average_rating:.1f}",
            "total": stats.total_reviews,
            "distribution": [
                (star, stats.rating_distribution.get(star, 0)) for star in range(5, 0, -1)
            ],
        }
    return template.render(
        reviews=data,
        stats=stats_data,
        shown=len(data),
        total=total,
        product_id=product_id,
        notice=notice,
    )


def render_cache(
    slots: List[Tuple[str, Optional[int]]],
    now: int,
    ttl_ms: int,
    db_path: str = "",
) -> str:
    template = env.get_template("cache.txt")
    data = []
    for key, written in slots:
        age = now - written if written is not None else None
        data.append({
            "key": key,
            "age": _age(age),
            "expired": age is None or age >= ttl_ms,
        })
    return template.render(slots=data, db_path=db_path)
