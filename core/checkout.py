# core/checkout.py
import re
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Optional

from core.logger import get_logger
from core.models import Envelope, ErrorKind

logger = get_logger(__name__)

STEPS = ("personal", "shipping", "payment")

EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
EXPIRY_RE = re.compile(r"^(\d{2})/(\d{2})$")

MIN_CARD_DIGITS = 16
MIN_CVV_LENGTH = 3


@dataclass
class CheckoutForm:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""
    card_name: str = ""

    @classmethod
    def for_user(cls, name: str = "", email: str = "") -> "CheckoutForm":
        parts = (name or "").split(" ")
        return cls(
            first_name=parts[0] if parts else "",
            last_name=parts[1] if len(parts) > 1 else "",
            email=email or "",
        )


def _required(form: CheckoutForm, errors: Dict[str, str], field: str, label: str) -> bool:
    if not getattr(form, field).strip():
        errors[field] = f"{label} is required"
        return False
    return True


def _expiry_error(value: str, today: date) -> Optional[str]:
    match = EXPIRY_RE.match(value)
    if not match:
        return "Invalid format (MM/YY)"
    month = int(match.group(1))
    year = int(match.group(2)) + 2000
    if month < 1 or month > 12:
        return "Invalid month"
    if year < today.year or (year == today.year and month < today.month):
        return "Card expired"
    return None


def validate_step(form: CheckoutForm, step: str, today: Optional[date] = None) -> Dict[str, str]:
    """
    Validate the fields belonging to one checkout step.
    Returns a field -> message dict; empty means the step is valid.
    """
    if step not in STEPS:
        raise ValueError(f"Unknown checkout step: {step}")
    today = today or date.today()
    errors: Dict[str, str] = {}

    if step == "personal":
        _required(form, errors, "first_name", "First name")
        _required(form, errors, "last_name", "Last name")
        if _required(form, errors, "email", "Email") and not EMAIL_RE.search(form.email):
            errors["email"] = "Invalid email format"
        _required(form, errors, "phone", "Phone number")

    elif step == "shipping":
        _required(form, errors, "address", "Address")
        _required(form, errors, "city", "City")
        _required(form, errors, "state", "State")
        _required(form, errors, "zip_code", "ZIP code")

    else:
        if _required(form, errors, "card_number", "Card number"):
            if len(re.sub(r"\s", "", form.card_number)) < MIN_CARD_DIGITS:
                errors["card_number"] = "Invalid card number"
        if _required(form, errors, "expiry_date", "Expiry date"):
            problem = _expiry_error(form.expiry_date.strip(), today)
            if problem:
                errors["expiry_date"] = problem
        if _required(form, errors, "cvv", "CVV") and len(form.cvv) < MIN_CVV_LENGTH:
            errors["cvv"] = "Invalid CVV"
        _required(form, errors, "card_name", "Cardholder name")

    return errors


def format_card_number(text: str) -> str:
    digits = re.sub(r"\D", "", text or "")
    groups = [digits[i:i + 4] for i in range(0, len(digits), 4)]
    return " ".join(groups)[:19]


def format_expiry_date(text: str) -> str:
    digits = re.sub(r"\D", "", text or "")
    if len(digits) >= 2:
        return f"{digits[:2]}/{digits[2:4]}"
    return digits


class CheckoutFlow:
    """Three-step checkout: personal details, shipping address, payment."""

    def __init__(self, form: Optional[CheckoutForm] = None, today: Optional[date] = None):
        self.form = form or CheckoutForm()
        self.today = today
        self.current_step = 0
        self.errors: Dict[str, str] = {}

    @property
    def step(self) -> str:
        return STEPS[self.current_step]

    @property
    def is_last_step(self) -> bool:
        return self.current_step == len(STEPS) - 1

    def update(self, field: str, value: str) -> None:
        if not hasattr(self.form, field):
            raise AttributeError(f"CheckoutForm has no field {field!r}")
        setattr(self.form, field, value)
        self.errors.pop(field, None)

    def validate(self) -> bool:
        self.errors = validate_step(self.form, self.step, self.today)
        return not self.errors

    def next(self) -> bool:
        """
        Validate the current step and advance.
        Returns True when the final step validated and the order can be placed.
        """
        if not self.validate():
            return False
        if self.is_last_step:
            return True
        self.current_step += 1
        return False

    def back(self) -> bool:
        """Go back one step; False when already on the first one."""
        if self.current_step == 0:
            return False
        self.current_step -= 1
        return True

    def order_payload(self, notes: Optional[str] = None) -> Dict[str, Any]:
        f = self.form
        digits = re.sub(r"\D", "", f.card_number)
        payload: Dict[str, Any] = {
            "shippingAddress": {
                "name": f"{f.first_name} {f.last_name}".strip(),
                "address": f.address,
                "city": f.city,
                "state": f.state,
                "zipCode": f.zip_code,
                "country": "US",
                "phone": f.phone,
            },
            "paymentInfo": {
                "method": "credit_card",
                "lastFour": digits[-4:],
            },
        }
        if notes:
            payload["notes"] = notes
        return payload

    def place_order(self, orders, cart=None, notes: Optional[str] = None) -> Envelope:
        """
        Re-validate every step, then create the order from the session cart.
        The server empties the cart on success, so the local cart slot is dropped too.
        """
        for index, step in enumerate(STEPS):
            errors = validate_step(self.form, step, self.today)
            if errors:
                self.current_step = index
                self.errors = errors
                logger.info("Checkout blocked at step %s: %s", step, ", ".join(sorted(errors)))
                return Envelope(
                    success=False,
                    message="Please fix the highlighted fields",
                    kind=ErrorKind.VALIDATION,
                )

        envelope = orders.create_order(self.order_payload(notes))
        if envelope.success:
            logger.info("Order placed (%s).", getattr(envelope.data, "order_number", "") or "no number")
            if cart is not None:
                cart.clear_cache()
        else:
            logger.warning("Placing order failed: %s", envelope.message)
        return envelope

    def as_dict(self) -> Dict[str, str]:
        return asdict(self.form)
