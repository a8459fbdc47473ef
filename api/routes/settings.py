"""
Route handlers for settings, the auto-checkout toggle, the payment profile
and the automation log.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from api.deps import get_store
from api.schemas import (
    AutoCheckoutRequest,
    AutoCheckoutResponse,
    AutomationEventResponse,
    PaymentProfileRequest,
    PaymentProfileStatusResponse,
    SuccessResponse,
    UpdateSettingsRequest,
)
from shared.logging import get_logger
from shared.store import SettingsStore

logger = get_logger(__name__)
router = APIRouter(tags=["settings"])

Store = Annotated[SettingsStore, Depends(get_store)]


@router.get("/settings", summary="Read durable settings")
def get_settings(store: Store) -> dict:
    return store.get_settings()


@router.put("/settings", summary="Partially update durable settings")
def update_settings(request: UpdateSettingsRequest, store: Store) -> dict:
    changes = request.changes()
    if "autoCheckoutEnabled" in changes:
        # Route the flag through the toggle so live pages hear about it.
        store.set_auto_checkout(changes.pop("autoCheckoutEnabled"))
    if changes:
        return store.update_settings(changes)
    return store.get_settings()


@router.post("/auto-checkout", response_model=AutoCheckoutResponse, summary="Enable or disable auto-checkout")
def toggle_auto_checkout(request: AutoCheckoutRequest, store: Store) -> AutoCheckoutResponse:
    """
    Store the flag and broadcast START/STOP_AUTO_CHECKOUT to every live page.

    `receivers` is how many page listeners got the broadcast.
    """
    receivers = store.set_auto_checkout(request.enabled)
    return AutoCheckoutResponse(success=True, enabled=request.enabled, receivers=receivers)


@router.put("/payment-profile", response_model=SuccessResponse, summary="Store the payment profile")
def store_payment_profile(request: PaymentProfileRequest, store: Store) -> SuccessResponse:
    store.store_payment_profile(request.model_dump(by_alias=True))
    return SuccessResponse(success=True)


@router.get(
    "/payment-profile/status",
    response_model=PaymentProfileStatusResponse,
    summary="Whether a payment profile is stored",
)
def payment_profile_status(store: Store) -> PaymentProfileStatusResponse:
    return PaymentProfileStatusResponse(stored=store.has_payment_profile())


@router.get(
    "/automation-log",
    response_model=list[AutomationEventResponse],
    summary="Most recent automation events, newest first",
)
def automation_log(store: Store, limit: Annotated[int, Query(ge=1, le=1000)] = 50) -> list[dict]:
    return store.get_automation_log(limit)
