"""
Engine data model: button records, detection sets, payment profile,
auto-checkout state.

Records cross the message boundary as plain dicts with camelCase keys
(`to_message`); inside the engine they are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional, Sequence


@dataclass(frozen=True)
class BoundingBox:
    """Element box in page coordinates (viewport rect plus scroll offset)."""

    x: float
    y: float
    w: float
    h: float

    def to_message(self) -> dict:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


@dataclass(frozen=True)
class ProductInfo:
    name: Optional[str] = None
    price: Optional[str] = None
    sku: Optional[str] = None
    image_url: Optional[str] = None

    def to_message(self) -> dict:
        return {
            "name": self.name,
            "price": self.price,
            "sku": self.sku,
            "imageUrl": self.image_url,
        }


@dataclass(frozen=True)
class ButtonRecord:
    """
    One detected cart control.

    `id` is a same-session fingerprint (text, classes, rounded position);
    it can collide or drift across reloads. `dom_locator` is an XPath
    expression used to re-resolve the element at the point of use.
    """

    id: str
    selector_used: str
    dom_locator: str
    text_label: str
    class_names: str
    bounding_box: BoundingBox
    visible: bool
    enabled: bool
    product: ProductInfo
    discovered_at: int

    def to_message(self) -> dict:
        return {
            "id": self.id,
            "selectorUsed": self.selector_used,
            "domLocator": self.dom_locator,
            "textLabel": self.text_label,
            "classNames": self.class_names,
            "boundingBox": self.bounding_box.to_message(),
            "visible": self.visible,
            "enabled": self.enabled,
            "product": self.product.to_message(),
            "discoveredAt": self.discovered_at,
        }


@dataclass(frozen=True)
class DetectionSet:
    """Ordered records of one scan pass. Compared by id sequence only."""

    records: tuple[ButtonRecord, ...] = ()

    @classmethod
    def of(cls, records: Sequence[ButtonRecord]) -> "DetectionSet":
        return cls(tuple(records))

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ButtonRecord]:
        return iter(self.records)

    def __getitem__(self, index: int) -> ButtonRecord:
        return self.records[index]

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(r.id for r in self.records)

    def same_as(self, other: "DetectionSet") -> bool:
        return len(self) == len(other) and self.ids == other.ids

    def find(self, button_id: str) -> Optional[ButtonRecord]:
        for record in self.records:
            if record.id == button_id:
                return record
        return None

    def to_messages(self) -> list[dict]:
        return [r.to_message() for r in self.records]


_PROFILE_KEYS = {
    "email": ("email",),
    "first_name": ("firstName", "first_name"),
    "last_name": ("lastName", "last_name"),
    "address": ("address",),
    "city": ("city",),
    "zip": ("zip", "zipCode", "postalCode"),
    "card_number": ("cardNumber", "card_number"),
    "expiry": ("expiry", "expiryDate"),
    "cvv": ("cvv",),
}


@dataclass(frozen=True)
class PaymentProfile:
    """
    Credential bundle owned by the collaborator.

    Read field by field while the payment-fill step runs; never cached.
    Card number and CVV are kept out of the repr so they cannot leak into
    logs.
    """

    email: str = ""
    first_name: str = ""
    last_name: str = ""
    address: str = ""
    city: str = ""
    zip: str = ""
    card_number: str = field(default="", repr=False)
    expiry: str = ""
    cvv: str = field(default="", repr=False)
    auto_submit: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PaymentProfile":
        values: dict[str, Any] = {}
        for attr, keys in _PROFILE_KEYS.items():
            for key in keys:
                if data.get(key) is not None:
                    values[attr] = str(data[key])
                    break
        auto_submit = data.get("autoSubmit", data.get("auto_submit", False))
        return cls(auto_submit=bool(auto_submit), **values)

    def value_for(self, field_name: str) -> str:
        return getattr(self, field_name, "") or ""


@dataclass
class AutoCheckoutState:
    enabled: bool = False
    poll_interval_ms: int = 1000
    last_attempt_at: Optional[int] = None

    def to_message(self) -> dict:
        return {
            "enabled": self.enabled,
            "pollIntervalMs": self.poll_interval_ms,
            "lastAttemptAt": self.last_attempt_at,
        }
