# core/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class ErrorKind(str, Enum):
    """
    Closed set of failure classes a caller can switch on.
    Derived from the response body's `code`, its `errors` array or the HTTP status.
    """
    NETWORK = "network"
    BAD_RESPONSE = "bad_response"
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RULE_VIOLATION = "rule_violation"
    SERVER = "server"
    UNKNOWN = "unknown"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


def _id(data: Dict[str, Any]) -> str:
    return str(data.get("id") or data.get("_id") or "")


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass
class FieldError:
    field: str
    message: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldError":
        return cls(
            field=str(data.get("field") or data.get("path") or ""),
            message=str(data.get("message") or data.get("msg") or ""),
            value=data.get("value"),
        )


@dataclass
class Envelope:
    """
    Normalized result of every remote call.
    `success` is authoritative; `kind` is only set on failures.
    `stale` marks a success served from the local cache after a network failure.
    """
    success: bool
    message: str = ""
    data: Any = None
    errors: List[FieldError] = field(default_factory=list)
    kind: Optional[ErrorKind] = None
    status: Optional[int] = None
    stale: bool = False

    def field_errors(self) -> Dict[str, str]:
        return {e.field: e.message for e in self.errors if e.field}


@dataclass
class Product:
    id: str
    name: str
    price: float = 0.0
    image: str = ""
    category: str = ""
    description: str = ""
    rating: float = 0.0
    reviews: int = 0
    in_stock: bool = True
    brand: str = ""
    images: List[str] = field(default_factory=list)
    sku: Optional[str] = None
    inventory_count: Optional[int] = None
    is_active: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        return cls(
            id=_id(data),
            name=str(data.get("name") or ""),
            price=_float(data.get("price")),
            image=data.get("image") or "",
            category=data.get("category") or "",
            description=data.get("description") or "",
            rating=_float(data.get("rating")),
            reviews=int(data.get("reviews") or 0),
            in_stock=bool(data.get("inStock", True)),
            brand=data.get("brand") or "",
            images=list(data.get("images") or []),
            sku=data.get("sku"),
            inventory_count=data.get("inventoryCount"),
            is_active=data.get("isActive"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "image": self.image,
            "category": self.category,
            "description": self.description,
            "rating": self.rating,
            "reviews": self.reviews,
            "inStock": self.in_stock,
            "brand": self.brand,
            "images": list(self.images),
            "sku": self.sku,
            "inventoryCount": self.inventory_count,
            "isActive": self.is_active,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class CartItem:
    id: str
    product: Product
    quantity: int = 1
    price_at_add: float = 0.0
    total_price: float = 0.0
    added_at: str = ""
    variant: Optional[Dict[str, str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartItem":
        return cls(
            id=_id(data),
            product=Product.from_dict(data.get("product") or {}),
            quantity=int(data.get("quantity") or 1),
            price_at_add=_float(data.get("priceAtAdd")),
            total_price=_float(data.get("totalPrice")),
            added_at=data.get("addedAt") or "",
            variant=data.get("variant"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "priceAtAdd": self.price_at_add,
            "totalPrice": self.total_price,
            "addedAt": self.added_at,
            "variant": self.variant,
        }


@dataclass
class CartSummary:
    subtotal: float = 0.0
    tax: float = 0.0
    shipping: float = 0.0
    total: float = 0.0
    item_count: int = 0
    cart_count: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartSummary":
        return cls(
            subtotal=_float(data.get("subtotal")),
            tax=_float(data.get("tax")),
            shipping=_float(data.get("shipping")),
            total=_float(data.get("total")),
            item_count=int(data.get("itemCount") or 0),
            cart_count=int(data.get("cartCount") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping": self.shipping,
            "total": self.total,
            "itemCount": self.item_count,
            "cartCount": self.cart_count,
        }


@dataclass
class CartSnapshot:
    items: List[CartItem]
    summary: Optional[CartSummary] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartSnapshot":
        summary = data.get("summary")
        return cls(
            items=[CartItem.from_dict(it) for it in data.get("cart") or []],
            summary=CartSummary.from_dict(summary) if summary else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cart": [it.to_dict() for it in self.items],
            "summary": self.summary.to_dict() if self.summary else None,
        }


@dataclass
class WishlistItem:
    id: str
    product: Product
    added_at: str = ""
    priority: str = "medium"
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WishlistItem":
        return cls(
            id=_id(data),
            product=Product.from_dict(data.get("product") or {}),
            added_at=data.get("addedAt") or "",
            priority=data.get("priority") or "medium",
            notes=data.get("notes"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product": self.product.to_dict(),
            "addedAt": self.added_at,
            "priority": self.priority,
            "notes": self.notes,
        }


@dataclass
class OrderItem:
    product_id: str
    name: str
    price: float = 0.0
    quantity: int = 1
    total_price: float = 0.0
    image: str = ""
    variant: Optional[Dict[str, str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderItem":
        return cls(
            product_id=str(data.get("productId") or ""),
            name=data.get("name") or "",
            price=_float(data.get("price")),
            quantity=int(data.get("quantity") or 1),
            total_price=_float(data.get("totalPrice")),
            image=data.get("image") or "",
            variant=data.get("variant"),
        )


@dataclass
class Order:
    id: str
    order_number: str
    status: str
    items: List[OrderItem] = field(default_factory=list)
    customer_id: str = ""
    customer_info: Dict[str, Any] = field(default_factory=dict)
    pricing: Dict[str, Any] = field(default_factory=dict)
    shipping_address: Dict[str, Any] = field(default_factory=dict)
    payment_info: Dict[str, Any] = field(default_factory=dict)
    tracking: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    promo_code: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    status_history: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> float:
        return _float(self.pricing.get("total"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        return cls(
            id=_id(data),
            order_number=str(data.get("orderNumber") or ""),
            status=data.get("status") or OrderStatus.PENDING.value,
            items=[OrderItem.from_dict(it) for it in data.get("items") or []],
            customer_id=str(data.get("customerId") or ""),
            customer_info=dict(data.get("customerInfo") or {}),
            pricing=dict(data.get("pricing") or {}),
            shipping_address=dict(data.get("shippingAddress") or {}),
            payment_info=dict(data.get("paymentInfo") or {}),
            tracking=data.get("tracking"),
            notes=data.get("notes"),
            promo_code=data.get("promoCode"),
            created_at=data.get("createdAt") or "",
            updated_at=data.get("updatedAt") or "",
            status_history=list(data.get("statusHistory") or []),
        )


@dataclass
class Review:
    id: str
    product_id: str
    rating: int
    title: str = ""
    content: str = ""
    user_id: str = ""
    user_name: str = ""
    user_avatar: Optional[str] = None
    verified: bool = False
    helpful: int = 0
    not_helpful: int = 0
    images: List[str] = field(default_factory=list)
    is_active: bool = True
    is_approved: bool = True
    created_at: str = ""
    updated_at: str = ""
    user_has_voted: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Review":
        return cls(
            id=_id(data),
            product_id=str(data.get("productId") or ""),
            rating=int(data.get("rating") or 0),
            title=data.get("title") or "",
            content=data.get("content") or "",
            user_id=str(data.get("userId") or ""),
            user_name=data.get("userName") or "",
            user_avatar=data.get("userAvatar"),
            verified=bool(data.get("verified", False)),
            helpful=int(data.get("helpful") or 0),
            not_helpful=int(data.get("notHelpful") or 0),
            images=list(data.get("images") or []),
            is_active=bool(data.get("isActive", True)),
            is_approved=bool(data.get("isApproved", True)),
            created_at=data.get("createdAt") or "",
            updated_at=data.get("updatedAt") or "",
            user_has_voted=data.get("userHasVoted"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "productId": self.product_id,
            "rating": self.rating,
            "title": self.title,
            "content": self.content,
            "userId": self.user_id,
            "userName": self.user_name,
            "userAvatar": self.user_avatar,
            "verified": self.verified,
            "helpful": self.helpful,
            "notHelpful": self.not_helpful,
            "images": list(self.images),
            "isActive": self.is_active,
            "isApproved": self.is_approved,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "userHasVoted": self.user_has_voted,
        }


@dataclass
class ReviewStats:
    average_rating: float = 0.0
    total_reviews: int = 0
    rating_distribution: Dict[int, int] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewStats":
        dist = data.get("ratingDistribution") or {}
        return cls(
            average_rating=_float(data.get("averageRating")),
            total_reviews=int(data.get("totalReviews") or 0),
            # JSON object keys arrive as strings
            rating_distribution={int(k): int(v) for k, v in dist.items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "averageRating": self.average_rating,
            "totalReviews": self.total_reviews,
            "ratingDistribution": {
                str(k): v for k, v in self.rating_distribution.items()
            },
        }


@dataclass
class ReviewEligibility:
    can_review: bool
    reason: Optional[str] = None
    existing_review: Optional[Dict[str, Any]] = None
    has_purchased: bool = False
    verified: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewEligibility":
        return cls(
            can_review=bool(data.get("canReview", False)),
            reason=data.get("reason"),
            existing_review=data.get("existingReview"),
            has_purchased=bool(data.get("hasPurchased", False)),
            verified=bool(data.get("verified", False)),
        )


@dataclass
class Address:
    id: str
    label: str = ""
    type: str = "home"
    name: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    is_default: bool = False
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Address":
        return cls(
            id=_id(data),
            label=data.get("label") or "",
            type=data.get("type") or "home",
            name=data.get("name") or "",
            phone=data.get("phone") or "",
            address=data.get("address") or "",
            city=data.get("city") or "",
            state=data.get("state") or "",
            zip_code=data.get("zipCode") or "",
            country=data.get("country") or "",
            is_default=bool(data.get("isDefault", False)),
            created_at=data.get("createdAt") or "",
            updated_at=data.get("updatedAt") or "",
        )


@dataclass
class User:
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    role: str = "customer"
    is_email_verified: bool = False
    last_login: Optional[str] = None
    created_at: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=_id(data),
            name=data.get("name") or "",
            email=data.get("email") or "",
            phone=data.get("phone"),
            role=data.get("role") or "customer",
            is_email_verified=bool(data.get("isEmailVerified", False)),
            last_login=data.get("lastLogin"),
            created_at=data.get("createdAt") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "isEmailVerified": self.is_email_verified,
            "lastLogin": self.last_login,
            "createdAt": self.created_at,
        }


@dataclass
class Page:
    """
    One page of a paginated list.
    total_pages is None when the server does not report it.
    """
    items: List[Any]
    total: int = 0
    page: int = 1
    limit: int = 0
    total_pages: Optional[int] = None
    stats: Any = None

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        key: str,
        parse: Callable[[Dict[str, Any]], Any],
    ) -> "Page":
        items = [parse(it) for it in data.get(key) or []]
        total_pages = data.get("totalPages")
        return cls(
            items=items,
            total=int(data.get("total") or 0),
            page=int(data.get("page") or 1),
            limit=int(data.get("limit") or 0),
            total_pages=int(total_pages) if total_pages else None,
        )
