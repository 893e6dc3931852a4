import pytest
import requests

from conftest import MINUTE_MS, product_json

from clients import build_clients
from clients.base import DEFAULT_HEADERS, NETWORK_ERROR_MESSAGE, classify_failure
from clients.cart import CART_SLOT, CartClient
from clients.orders import OrderClient
from clients.products import PRODUCTS_SLOT, ProductClient
from clients.reviews import ReviewClient, reviews_slot
from clients.wishlist import WISHLIST_SLOT, WishlistClient
from core.cache import ONE_HOUR_MS
from core.models import CartSnapshot, ErrorKind, Page, Product, Review, ReviewStats


def cart_json(*product_ids):
    lines = [
        {
            "_id": f"line-{pid}",
            "product": product_json(int(pid[1:])),
            "quantity": 2,
            "priceAtAdd": 11.0,
            "totalPrice": 22.0,
            "addedAt": "2026-10-01T10:00:00Z",
        }
        for pid in product_ids
    ]
    total = 22.0 * len(lines)
    return {
        "cart": lines,
        "summary": {
            "subtotal": total,
            "tax": 0.0,
            "shipping": 0.0,
            "total": total,
            "itemCount": 2 * len(lines),
            "cartCount": len(lines),
        },
    }


def review_page_json(product_id="p1"):
    return {
        "reviews": [
            {
                "_id": "r1",
                "productId": product_id,
                "rating": 5,
                "title": "Great",
                "content": "Fits well",
                "userId": "u1",
                "userName": "Sam",
                "verified": True,
            }
        ],
        "stats": {"averageRating": 5, "totalReviews": 1, "ratingDistribution": {"5": 1, "4": 0}},
        "total": 1,
        "page": 1,
        "totalPages": 1,
    }


@pytest.mark.parametrize(
    "status,body,expected",
    [
        (401, {}, ErrorKind.UNAUTHENTICATED),
        (403, {}, ErrorKind.FORBIDDEN),
        (404, {}, ErrorKind.NOT_FOUND),
        (409, {}, ErrorKind.CONFLICT),
        (400, {}, ErrorKind.RULE_VIOLATION),
        (500, {}, ErrorKind.SERVER),
        (503, {}, ErrorKind.SERVER),
        (400, {"errors": [{"field": "email", "message": "bad"}]}, ErrorKind.VALIDATION),
        (400, {"code": "conflict"}, ErrorKind.CONFLICT),
        (400, {"code": "RULE_VIOLATION"}, ErrorKind.RULE_VIOLATION),
        (400, {"code": "something-else"}, ErrorKind.RULE_VIOLATION),
        (None, {}, ErrorKind.UNKNOWN),
    ],
)
def test_classify_failure(status, body, expected):
    assert classify_failure(status, body) is expected


def test_get_products_parses_page_and_cleans_params(ctx, session):
    session.ok("GET", "/products", {
        "products": [product_json(1), product_json(2)],
        "total": 2,
        "page": 1,
        "totalPages": 1,
    })
    envelope = ProductClient(ctx).get_products({"category": "shoes", "search": "", "inStock": True, "page": 1})

    assert envelope.success
    assert isinstance(envelope.data, Page)
    assert [p.id for p in envelope.data.items] == ["p1", "p2"]
    assert envelope.data.total_pages == 1
    call = session.calls[0]
    assert call["params"] == {"category": "shoes", "inStock": "true", "page": "1"}
    assert call["headers"] == DEFAULT_HEADERS
    assert call["timeout"] == 1


def test_connection_error_becomes_network_envelope(ctx, session, connection_error):
    session.add("GET", "/products", exc=connection_error)
    envelope = ProductClient(ctx).get_products()
    assert not envelope.success
    assert envelope.kind is ErrorKind.NETWORK
    assert envelope.message == NETWORK_ERROR_MESSAGE


def test_get_is_retried_on_transient_errors(ctx, session, no_sleep, connection_error):
    ctx.max_attempts = 3
    session.add("GET", "/products/p1", exc=connection_error)
    session.add("GET", "/products/p1", exc=requests.Timeout("slow"))
    session.ok("GET", "/products/p1", {"product": product_json(1)})

    envelope = ProductClient(ctx).get_product("p1")

    assert envelope.success
    assert envelope.data.name == "Product 1"
    assert len(session.calls) == 3


def test_get_gives_up_after_max_attempts(ctx, session, no_sleep, connection_error):
    ctx.max_attempts = 3
    session.add("GET", "/products", exc=connection_error)
    envelope = ProductClient(ctx).get_products()
    assert envelope.kind is ErrorKind.NETWORK
    assert len(session.calls) == 3


def test_post_is_sent_once(ctx, session, no_sleep, connection_error):
    ctx.max_attempts = 3
    session.add("POST", "/cart", exc=connection_error)
    envelope = CartClient(ctx).add_to_cart("p1")
    assert envelope.kind is ErrorKind.NETWORK
    assert session.paths() == ["/cart"]


def test_non_json_body_is_network_failure(ctx, session):
    session.add("GET", "/products", invalid_json=True, status=502)
    envelope = ProductClient(ctx).get_products()
    assert envelope.kind is ErrorKind.NETWORK


def test_non_object_body_is_bad_response(ctx, session):
    session.add("GET", "/products", [1, 2, 3])
    envelope = ProductClient(ctx).get_products()
    assert envelope.kind is ErrorKind.BAD_RESPONSE
    assert envelope.status == 200


def test_malformed_payload_is_bad_response(ctx, session):
    session.ok("GET", "/products/p9", {"unexpected": True})
    envelope = ProductClient(ctx).get_product("p9")
    assert not envelope.success
    assert envelope.kind is ErrorKind.BAD_RESPONSE


def test_failure_keeps_message_status_and_field_errors(ctx, session):
    session.fail(
        "POST", "/auth/signup", 400, "Validation failed",
        errors=[{"field": "email", "message": "Please enter a valid email", "value": "x"}],
    )
    envelope = build_clients(ctx)["auth"].signup("Sam", "x", "secret1")
    assert envelope.kind is ErrorKind.VALIDATION
    assert envelope.status == 400
    assert envelope.message == "Validation failed"
    assert envelope.field_errors() == {"email": "Please enter a valid email"}
    assert ctx.user is None


def test_success_flag_is_authoritative_over_status(ctx, session):
    session.add("GET", "/products/p1", {"success": False, "message": "Product not found"}, status=200)
    envelope = ProductClient(ctx).get_product("p1")
    assert not envelope.success
    assert envelope.message == "Product not found"


def test_product_cache_round_trip(ctx):
    client = ProductClient(ctx)
    products = [Product.from_dict(product_json(1)), Product.from_dict(product_json(2, inStock=False))]
    client.cache_products(products)
    assert client.cached_products() == products
    client.clear_cache()
    assert client.cached_products() == []
    assert ctx.cache.read(PRODUCTS_SLOT) is None


def test_add_to_cart_refreshes_whole_cart_into_cache(ctx, session, cache):
    session.ok("POST", "/cart", {"cartCount": 1}, message="Item added to cart")
    session.ok("GET", "/cart", cart_json("p1"))

    envelope = CartClient(ctx).add_to_cart("p1", quantity=2)

    assert envelope.success
    assert [(c["method"], c["path"]) for c in session.calls] == [("POST", "/cart"), ("GET", "/cart")]
    assert session.calls[0]["json"] == {"productId": "p1", "quantity": 2}
    expected = CartSnapshot.from_dict(cart_json("p1"))
    assert cache.read(CART_SLOT) == expected.to_dict()
    assert CartClient(ctx).cached_cart() == expected


def test_add_to_cart_rejects_non_positive_quantity(ctx, session):
    with pytest.raises(ValueError):
        CartClient(ctx).add_to_cart("p1", quantity=0)
    assert session.calls == []


def test_failed_cart_mutation_leaves_cache_alone(ctx, session, cache):
    cache.write(CART_SLOT, cart_json("p1"))
    session.fail("POST", "/cart", 400, "Product is out of stock")
    envelope = CartClient(ctx).add_to_cart("p2")
    assert envelope.kind is ErrorKind.RULE_VIOLATION
    assert session.paths() == ["/cart"]
    assert cache.read(CART_SLOT) == cart_json("p1")


def test_cart_serves_fresh_cache_on_network_failure(ctx, session, clock, connection_error):
    session.ok("GET", "/cart", cart_json("p1", "p2"))
    client = CartClient(ctx)
    assert client.get_cart().success

    session.routes[("GET", "/cart")] = [connection_error]
    clock.advance(10 * MINUTE_MS)
    envelope = client.get_cart()

    assert envelope.success
    assert envelope.stale
    assert [it.product.id for it in envelope.data.items] == ["p1", "p2"]
    assert envelope.data.summary.total == 44.0


def test_cart_network_failure_without_fresh_cache(ctx, session, clock, connection_error):
    session.ok("GET", "/cart", cart_json("p1"))
    client = CartClient(ctx)
    client.get_cart()

    session.routes[("GET", "/cart")] = [connection_error]
    clock.advance(ONE_HOUR_MS)
    envelope = client.get_cart()

    assert not envelope.success
    assert envelope.kind is ErrorKind.NETWORK


def test_cart_auth_failure_does_not_fall_back_to_cache(ctx, session, cache):
    cache.write(CART_SLOT, cart_json("p1"))
    session.fail("GET", "/cart", 401, "Authentication required")
    envelope = CartClient(ctx).get_cart()
    assert envelope.kind is ErrorKind.UNAUTHENTICATED
    assert not envelope.stale


def test_clear_cart_drops_slot(ctx, session, cache):
    cache.write(CART_SLOT, cart_json("p1"))
    session.ok("DELETE", "/cart")
    assert CartClient(ctx).clear_cart().success
    assert cache.read(CART_SLOT) is None


def test_move_from_wishlist_refreshes_cart_and_wishlist(ctx, session, cache):
    session.ok("POST", "/cart/from-wishlist/p1")
    session.ok("GET", "/cart", cart_json("p1"))
    session.ok("GET", "/wishlist", {"wishlist": []})

    envelope = build_clients(ctx)["cart"].move_from_wishlist_to_cart("p1")

    assert envelope.success
    assert session.paths("GET") == ["/cart", "/wishlist"]
    assert cache.read(CART_SLOT) == CartSnapshot.from_dict(cart_json("p1")).to_dict()
    assert cache.read(WISHLIST_SLOT) == []


def test_wishlist_write_through_and_stale_fallback(ctx, session, connection_error):
    item = {"_id": "w1", "product": product_json(3), "priority": "high", "notes": "gift"}
    session.ok("GET", "/wishlist", {"wishlist": [item]})
    client = WishlistClient(ctx)

    fresh = client.get_wishlist()
    assert fresh.success and not fresh.stale

    session.routes[("GET", "/wishlist")] = [connection_error]
    stale = client.get_wishlist()
    assert stale.success and stale.stale
    assert stale.data == fresh.data
    assert stale.data[0].priority == "high"


def test_wishlist_rejects_unknown_priority(ctx, session):
    with pytest.raises(ValueError):
        WishlistClient(ctx).add_to_wishlist("p1", priority="urgent")
    assert session.calls == []


def test_product_reviews_are_mirrored_per_product(ctx, session, cache, connection_error):
    session.ok("GET", "/reviews/product/p1", review_page_json())
    client = ReviewClient(ctx)

    envelope = client.get_product_reviews("p1", {"productId": "p1", "rating": 5, "page": 1})

    assert envelope.success
    assert session.calls[0]["params"] == {"rating": "5", "page": "1"}
    assert isinstance(envelope.data.stats, ReviewStats)
    assert envelope.data.stats.rating_distribution == {5: 1, 4: 0}
    slot = cache.read(reviews_slot("p1"))
    assert slot["reviews"][0]["title"] == "Great"
    assert slot["stats"]["totalReviews"] == 1

    session.routes[("GET", "/reviews/product/p1")] = [connection_error]
    stale = client.get_product_reviews("p1")
    assert stale.stale
    assert stale.data.items == envelope.data.items
    assert stale.data.stats == envelope.data.stats


def test_later_review_pages_leave_the_product_slot_alone(ctx, session, cache, connection_error):
    session.ok("GET", "/reviews/product/p1", review_page_json())
    client = ReviewClient(ctx)
    client.get_product_reviews("p1")

    later = review_page_json()
    later["reviews"][0].update({"_id": "r9", "title": "Later"})
    session.routes[("GET", "/reviews/product/p1")] = []
    session.ok("GET", "/reviews/product/p1", later)
    assert client.get_product_reviews("p1", {"page": 2}).success
    assert cache.read(reviews_slot("p1"))["reviews"][0]["title"] == "Great"

    session.routes[("GET", "/reviews/product/p1")] = [connection_error]
    failed = client.get_product_reviews("p1", {"page": 2})
    assert not failed.success
    assert failed.kind is ErrorKind.NETWORK
    assert not failed.stale


def test_create_review_validates_rating_and_refreshes_slot(ctx, session, cache):
    client = ReviewClient(ctx)
    with pytest.raises(ValueError):
        client.create_review("p1", 6, "Too good", "Really")

    created = review_page_json()["reviews"][0]
    session.ok("POST", "/reviews", {"review": created})
    session.ok("GET", "/reviews/product/p1", review_page_json())

    envelope = client.create_review("p1", 5, "Great", "Fits well")

    assert isinstance(envelope.data, Review)
    assert session.paths() == ["/reviews", "/reviews/product/p1"]
    assert cache.read(reviews_slot("p1")) is not None


def test_can_review_product_returns_eligibility(ctx, session):
    session.ok("GET", "/reviews/can-review/p1", {
        "canReview": False,
        "reason": "already_reviewed",
        "existingReview": {"_id": "r1"},
    })
    eligibility = ReviewClient(ctx).can_review_product("p1").data
    assert eligibility.can_review is False
    assert eligibility.reason == "already_reviewed"


def test_update_order_status_sends_camel_case_payload(ctx, session):
    session.ok("PUT", "/orders/o1/status", {"order": {"_id": "o1", "orderNumber": "ORD-1", "status": "shipped"}})
    envelope = OrderClient(ctx).update_order_status("o1", "shipped", tracking_number="T-1", carrier="UPS")
    assert envelope.data.status == "shipped"
    assert session.calls[0]["json"] == {"status": "shipped", "trackingNumber": "T-1", "carrier": "UPS"}


def test_update_order_status_rejects_unknown_status(ctx, session):
    with pytest.raises(ValueError):
        OrderClient(ctx).update_order_status("o1", "lost")
    assert session.calls == []


def test_addresses_parse_and_validate_type(ctx, session):
    address = {"_id": "a1", "label": "Home", "type": "home", "city": "Springfield", "zipCode": "62701", "isDefault": True}
    session.ok("GET", "/addresses", {"addresses": [address]})
    session.ok("PUT", "/addresses/a1/default", {"address": address})
    client = build_clients(ctx)["addresses"]

    listed = client.get_addresses().data
    assert listed[0].zip_code == "62701"
    assert listed[0].is_default
    assert client.set_default_address("a1").data.id == "a1"
    assert session.calls[-1]["json"] == {}

    with pytest.raises(ValueError):
        client.create_address({"type": "vacation", "city": "Nowhere"})


def test_featured_products_query(ctx, session):
    session.ok("GET", "/products", {"products": [], "total": 0})
    ProductClient(ctx).get_featured_products(limit=5)
    assert session.calls[0]["params"] == {"limit": "5", "sortBy": "rating", "sortOrder": "desc", "inStock": "true"}


def test_bulk_status_and_stats(ctx, session):
    session.ok("PUT", "/orders/bulk-status", {"modifiedCount": 2})
    session.ok("GET", "/orders/stats", {"overview": {"totalOrders": 4}})
    client = OrderClient(ctx)

    assert client.bulk_update_status(["o1", "o2"], "processing").data == {"modifiedCount": 2}
    assert session.calls[0]["json"] == {"orderIds": ["o1", "o2"], "status": "processing"}
    assert client.get_order_stats(period=7).data["overview"]["totalOrders"] == 4
    assert session.calls[1]["params"] == {"period": "7"}
    with pytest.raises(ValueError):
        client.bulk_update_status(["o1"], "teleported")
