# clients/__init__.py
from . import addresses
from . import auth
from . import cart
from . import orders
from . import products
from . import reviews
from . import wishlist

CLIENTS = {
    "addresses": addresses.AddressClient,
    "auth": auth.AuthClient,
    "cart": cart.CartClient,
    "orders": orders.OrderClient,
    "products": products.ProductClient,
    "reviews": reviews.ReviewClient,
    "wishlist": wishlist.WishlistClient,
}


def build_clients(ctx):
    """One client per resource, all sharing the given AppContext."""
    built = {name: cls(ctx) for name, cls in CLIENTS.items() if name != "cart"}
    built["cart"] = cart.CartClient(ctx, wishlist=built["wishlist"])
    return built
