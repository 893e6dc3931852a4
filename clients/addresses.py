# clients/addresses.py
from typing import Any, Dict, List

from core.models import Address, Envelope

from .base import ApiClient, drop_none

ADDRESS_TYPES = ("home", "work", "other")


def _addresses(data: Dict[str, Any]) -> List[Address]:
    return [Address.from_dict(a) for a in data.get("addresses") or []]


def _single_address(data: Dict[str, Any]) -> Address:
    return Address.from_dict(data["address"])


class AddressClient(ApiClient):
    def get_addresses(self) -> Envelope:
        return self.get("/addresses", parse=_addresses)

    def get_address(self, address_id: str) -> Envelope:
        return self.get(f"/addresses/{address_id}", parse=_single_address)

    def get_default_address(self) -> Envelope:
        return self.get("/addresses/default", parse=_single_address)

    def create_address(self, address: Dict[str, Any]) -> Envelope:
        kind = address.get("type", "home")
        if kind not in ADDRESS_TYPES:
            raise ValueError(f"address type must be one of {ADDRESS_TYPES}, got {kind!r}")
        return self.post("/addresses", json=drop_none(address), parse=_single_address)

    def update_address(self, address_id: str, changes: Dict[str, Any]) -> Envelope:
        return self.put(f"/addresses/{address_id}", json=drop_none(changes), parse=_single_address)

    def set_default_address(self, address_id: str) -> Envelope:
        return self.put(f"/addresses/{address_id}/default", parse=_single_address)

    def delete_address(self, address_id: str) -> Envelope:
        return self.delete(f"/addresses/{address_id}")
