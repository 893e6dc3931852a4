import argparse
import asyncio
import os
from typing import Any, Dict, List, Optional

from clients import build_clients
from core.context import AppContext
from core.logger import get_logger, set_level
from core.models import OrderStatus
from core.report_text import (
    render_cache,
    render_cart,
    render_orders,
    render_product,
    render_products,
    render_reviews,
    render_wishlist,
)
from hooks import OrderList, ProductDetail, ProductList, ReviewList

logger = get_logger(__name__)

PAGE_SIZE = int(os.getenv("PAGE_SIZE", "20"))
STOREFRONT_EMAIL = os.getenv("STOREFRONT_EMAIL", "").strip()
STOREFRONT_PASSWORD = os.getenv("STOREFRONT_PASSWORD", "")


def ensure_session(clients: Dict[str, Any]) -> bool:
    """
    The session cookie only lives as long as the process, so account commands
    sign in with the configured credentials first.
    """
    if not STOREFRONT_EMAIL or not STOREFRONT_PASSWORD:
        logger.error("STOREFRONT_EMAIL and STOREFRONT_PASSWORD must be set for account commands.")
        return False
    envelope = clients["auth"].login(STOREFRONT_EMAIL, STOREFRONT_PASSWORD)
    if not envelope.success:
        logger.error("Login failed for %s: %s", STOREFRONT_EMAIL, envelope.message)
        return False
    return True


async def _load_pages(resource, pages: int) -> None:
    await resource.start()
    for _ in range(max(0, pages - 1)):
        if not resource.has_more:
            break
        await resource.load_more()


def cmd_products(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    filters: Dict[str, Any] = {}
    if args.category:
        filters["category"] = args.category
    if args.search:
        filters["search"] = args.search

    products = ProductList(clients["products"], initial_filters=filters, page_size=PAGE_SIZE)
    asyncio.run(_load_pages(products, args.pages))
    print(render_products(
        products.items,
        total=products.total,
        has_more=products.has_more,
        notice=products.error,
    ))
    return 0 if products.items or not products.error else 1


def cmd_product(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    detail = ProductDetail(clients["products"], args.id)
    asyncio.run(detail.load())
    if detail.product is None:
        logger.error("Product %s: %s", args.id, detail.error)
        return 1
    print(render_product(detail.product))
    return 0


def cmd_reviews(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    reviews = ReviewList(clients["reviews"], product_id=args.product_id, page_size=PAGE_SIZE)
    asyncio.run(_load_pages(reviews, args.pages))
    print(render_reviews(
        reviews.items,
        stats=reviews.stats,
        total=reviews.total,
        product_id=args.product_id,
        notice=reviews.error,
    ))
    return 0 if reviews.items or not reviews.error else 1


def cmd_cart(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    if not ensure_session(clients):
        cached = clients["cart"].cached_cart()
        if cached is None:
            return 1
        print(render_cart(cached, notice="Not signed in. Showing cached cart."))
        return 0

    envelope = clients["cart"].get_cart()
    if not envelope.success:
        logger.error("Fetching cart failed: %s", envelope.message)
        return 1
    print(render_cart(envelope.data, notice=envelope.message if envelope.stale else None))
    return 0


def cmd_cart_add(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    if not ensure_session(clients):
        return 1
    envelope = clients["cart"].add_to_cart(args.id, quantity=args.quantity)
    if not envelope.success:
        logger.error("Adding %s to cart failed: %s", args.id, envelope.message)
        return 1
    print(render_cart(clients["cart"].cached_cart(), notice=envelope.message or None))
    return 0


def cmd_wishlist(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    if not ensure_session(clients):
        cached = clients["wishlist"].cached_wishlist()
        if not cached:
            return 1
        print(render_wishlist(cached, notice="Not signed in. Showing cached wishlist."))
        return 0

    envelope = clients["wishlist"].get_wishlist()
    if not envelope.success:
        logger.error("Fetching wishlist failed: %s", envelope.message)
        return 1
    print(render_wishlist(envelope.data, notice=envelope.message if envelope.stale else None))
    return 0


def cmd_orders(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    if not ensure_session(clients):
        return 1
    filters = {"status": OrderStatus(args.status).value} if args.status else None
    orders = OrderList(clients["orders"], initial_filters=filters, page_size=PAGE_SIZE)
    asyncio.run(_load_pages(orders, args.pages))
    print(render_orders(orders.items, total=orders.total, stats=orders.stats, notice=orders.error))
    return 0 if not orders.error else 1


def cmd_login(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    if not ensure_session(clients):
        return 1
    print(f"Signed in as {ctx.user.name} <{ctx.user.email}>")
    return 0


def cmd_logout(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    clients["auth"].logout()
    print("Signed out; account cache cleared.")
    return 0


def cmd_cache(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    print(render_cache(ctx.cache.slots(), ctx.cache.clock(), ctx.cache.ttl_ms, ctx.cache.db_path))
    return 0


def cmd_cache_clear(ctx: AppContext, clients: Dict[str, Any], args: argparse.Namespace) -> int:
    slots = [key for key, _ in ctx.cache.slots()]
    for key in slots:
        ctx.cache.clear(key)
    logger.info("Cleared %d cache slots.", len(slots))
    print(f"Cleared {len(slots)} cache slot(s).")
    return 0


COMMANDS = {
    "products": cmd_products,
    "product": cmd_product,
    "reviews": cmd_reviews,
    "cart": cmd_cart,
    "cart-add": cmd_cart_add,
    "wishlist": cmd_wishlist,
    "orders": cmd_orders,
    "login": cmd_login,
    "logout": cmd_logout,
    "cache": cmd_cache,
    "cache-clear": cmd_cache_clear,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storefront", description="Storefront API client")
    parser.add_argument("--log-level", help="Override LOG_LEVEL for this run")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("products", help="List products")
    p.add_argument("--category")
    p.add_argument("--search")
    p.add_argument("--pages", type=int, default=1)

    p = sub.add_parser("product", help="Show one product")
    p.add_argument("id")

    p = sub.add_parser("reviews", help="List a product's reviews")
    p.add_argument("product_id")
    p.add_argument("--pages", type=int, default=1)

    sub.add_parser("cart", help="Show the cart")

    p = sub.add_parser("cart-add", help="Add a product to the cart")
    p.add_argument("id")
    p.add_argument("--quantity", type=int, default=1)

    sub.add_parser("wishlist", help="Show the wishlist")

    p = sub.add_parser("orders", help="List orders")
    p.add_argument("--status", choices=[s.value for s in OrderStatus])
    p.add_argument("--pages", type=int, default=1)

    sub.add_parser("login", help="Sign in with STOREFRONT_EMAIL/STOREFRONT_PASSWORD")
    sub.add_parser("logout", help="Sign out and drop account cache slots")
    sub.add_parser("cache", help="List local cache slots")
    sub.add_parser("cache-clear", help="Delete every local cache slot")
    return parser


def main(argv: Optional[List[str]] = None, ctx: Optional[AppContext] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        set_level(args.log_level)
    ctx = ctx or AppContext.from_env()
    with ctx:
        clients = build_clients(ctx)
        try:
            return COMMANDS[args.command](ctx, clients, args)
        except ValueError as e:
            logger.error("%s: %s", args.command, e)
            return 2


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as e:
        logger.exception("Fatal storefront error: %s", e)
        raise SystemExit(2)
