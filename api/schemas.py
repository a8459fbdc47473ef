"""
Pydantic schemas for API request/response contracts.

Wire format is camelCase (the same keys the engine and the settings store
use); Python attributes are snake_case through an alias generator.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request schemas
class UpdateSettingsRequest(CamelModel):
    """Request schema for PUT /settings (partial update)."""

    extension_active: Optional[bool] = None
    automation_enabled: Optional[bool] = None
    auto_checkout_enabled: Optional[bool] = None
    purchase_confirmation: Optional[bool] = None
    spending_limit: Optional[float] = Field(None, ge=0)
    whitelisted_sites: Optional[list[str]] = None
    blacklisted_sites: Optional[list[str]] = None
    auto_process_drops: Optional[bool] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AutoCheckoutRequest(BaseModel):
    """Request schema for POST /auto-checkout."""

    enabled: bool


class PaymentProfileRequest(CamelModel):
    """Request schema for PUT /payment-profile. Never echoed back."""

    email: str = ""
    first_name: str = ""
    last_name: str = ""
    address: str = ""
    city: str = ""
    zip: str = ""
    card_number: str = Field("", repr=False)
    expiry: str = ""
    cvv: str = Field("", repr=False)
    auto_submit: bool = False

    @field_validator("card_number", "cvv", mode="before")
    @classmethod
    def strip_separators(cls, v: Any) -> str:
        return "".join(str(v or "").split()).replace("-", "")

    @field_validator("card_number")
    @classmethod
    def validate_card_number(cls, v: str) -> str:
        if v and (not v.isdigit() or not 12 <= len(v) <= 19):
            raise ValueError("card number must be 12-19 digits")
        return v

    @field_validator("cvv")
    @classmethod
    def validate_cvv(cls, v: str) -> str:
        if v and (not v.isdigit() or len(v) not in (3, 4)):
            raise ValueError("cvv must be 3 or 4 digits")
        return v


class CreateDropAlertRequest(CamelModel):
    """Request schema for POST /drops."""

    product_name: str = Field("", max_length=500)
    product_url: HttpUrl
    process: Optional[bool] = Field(
        default=None,
        description="Enqueue an add-to-cart job now; defaults to the autoProcessDrops setting",
    )


class PageCommandRequest(CamelModel):
    """Request schema for POST /pages/{page_id}/commands."""

    type: str
    button_id: Optional[str] = None
    selector: Optional[str] = None
    product_id: Optional[str] = None

    def message(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# Response schemas
class AutoCheckoutResponse(BaseModel):
    success: bool
    enabled: bool
    receivers: int = 0


class SuccessResponse(BaseModel):
    success: bool


class PaymentProfileStatusResponse(BaseModel):
    stored: bool


class DropAlertResponse(CamelModel):
    id: str
    product_name: str
    product_url: str
    timestamp: int
    processed: bool = False
    success: Optional[bool] = None
    job_id: Optional[str] = None


class PageButtonsResponse(BaseModel):
    url: str
    buttons: list[dict]
    timestamp: int


class AutomationEventResponse(BaseModel):
    type: str
    data: dict
    timestamp: int
