# core/context.py
import os
from dataclasses import dataclass, field
from typing import Optional

import requests

from .cache import CacheStore
from .logger import get_logger
from .models import User

logger = get_logger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:5020/api")
API_TIMEOUT = float(os.getenv("API_TIMEOUT", "10"))
API_MAX_RETRIES = int(os.getenv("API_MAX_RETRIES", "3"))
API_RETRY_DELAY = float(os.getenv("API_RETRY_DELAY", "1"))

# Server-side sessions live for seven days; the cached user record follows that.
SESSION_TTL_MS = 7 * 24 * 60 * 60 * 1000

USER_SLOT = "user"
# Slots tied to the signed-in account, dropped on sign-out.
ACCOUNT_SLOTS = (USER_SLOT, "cart", "wishlist")


@dataclass
class AppContext:
    """
    Everything the resource clients share: HTTP session (and its cookie jar),
    cache store, endpoint settings and the signed-in user.
    Built once by the composition root and passed to every client.
    """
    cache: CacheStore
    base_url: str = API_BASE_URL
    timeout: float = API_TIMEOUT
    max_attempts: int = API_MAX_RETRIES
    retry_delay: float = API_RETRY_DELAY
    session: requests.Session = field(default_factory=requests.Session)
    user: Optional[User] = None

    @classmethod
    def from_env(cls) -> "AppContext":
        ctx = cls(cache=CacheStore())
        ctx.restore_user()
        return ctx

    @property
    def is_signed_in(self) -> bool:
        return self.user is not None

    def url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def sign_in(self, user: User) -> None:
        self.user = user
        self.cache.write(USER_SLOT, user.to_dict())
        logger.info("Signed in as %s (%s).", user.email, user.id)

    def sign_out(self) -> None:
        if self.user is not None:
            logger.info("Signing out %s.", self.user.email)
        self.user = None
        self.session.cookies.clear()
        for slot in ACCOUNT_SLOTS:
            self.cache.clear(slot)

    def restore_user(self) -> Optional[User]:
        data = self.cache.read(USER_SLOT, ttl_ms=SESSION_TTL_MS)
        self.user = User.from_dict(data) if data else None
        if self.user is not None:
            logger.debug("Restored cached user %s.", self.user.email)
        return self.user

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
