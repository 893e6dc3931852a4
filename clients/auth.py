# clients/auth.py
from typing import Any, Dict, Optional

from core.logger import get_logger
from core.models import Envelope, User

from .base import ApiClient, drop_none

logger = get_logger(__name__)


def _user(data: Dict[str, Any]) -> User:
    return User.from_dict(data["user"])


class AuthClient(ApiClient):
    """
    Cookie-session authentication: the server sets a session cookie on
    login/signup, which lives in the context's requests.Session jar.
    """

    def signup(self, name: str, email: str, password: str, phone: Optional[str] = None) -> Envelope:
        envelope = self.post(
            "/auth/signup",
            json=drop_none({"name": name, "email": email, "password": password, "phone": phone}),
            parse=_user,
        )
        if envelope.success and isinstance(envelope.data, User):
            self.ctx.sign_in(envelope.data)
        return envelope

    def login(self, email: str, password: str) -> Envelope:
        envelope = self.post("/auth/login", json={"email": email, "password": password}, parse=_user)
        if envelope.success and isinstance(envelope.data, User):
            self.ctx.sign_in(envelope.data)
        return envelope

    def logout(self) -> Envelope:
        """Destroy the server session; local state is dropped even if the call fails."""
        envelope = self.post("/auth/logout")
        if not envelope.success:
            logger.warning("Logout request failed (%s); clearing local session anyway.", envelope.message)
        self.ctx.sign_out()
        return envelope

    def me(self) -> Envelope:
        return self.get("/auth/me", parse=_user)

    def is_authenticated(self) -> bool:
        envelope = self.me()
        return envelope.success and isinstance(envelope.data, User)

    def update_profile(self, name: Optional[str] = None, phone: Optional[str] = None) -> Envelope:
        envelope = self.put("/auth/profile", json=drop_none({"name": name, "phone": phone}), parse=_user)
        if envelope.success and isinstance(envelope.data, User):
            self.ctx.sign_in(envelope.data)
        return envelope

    def change_password(self, current_password: str, new_password: str) -> Envelope:
        return self.put(
            "/auth/change-password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )
