"""
Route handlers for drop alerts (webhook target for product-availability
notifications).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from api.deps import get_store
from api.queue import enqueue_drop_job
from api.schemas import CreateDropAlertRequest, DropAlertResponse
from shared.logging import get_logger
from shared.store import SettingsStore

logger = get_logger(__name__)
router = APIRouter(prefix="/drops", tags=["drops"])


@router.post(
    "",
    response_model=DropAlertResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a drop alert and optionally enqueue an add-to-cart job",
)
def create_drop_alert(
    request: CreateDropAlertRequest,
    store: Annotated[SettingsStore, Depends(get_store)],
) -> dict:
    """
    Store the alert (last 10 kept). A job is enqueued when the request asks
    for it, or when `process` is omitted and autoProcessDrops is enabled.
    """
    product_url = str(request.product_url)
    alert = store.add_drop_alert(request.product_name, product_url)

    process = request.process
    if process is None:
        process = bool(store.get_settings().get("autoProcessDrops"))
    if not process:
        return alert

    try:
        job_id = enqueue_drop_job(alert["id"], product_url, alert["productName"])
    except ValueError as e:
        logger.error("drop_job_enqueue_failed", alert_id=alert["id"], error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Drop alert stored but job could not be queued: {e}",
        )
    return {**alert, "jobId": job_id}


@router.get("", response_model=list[DropAlertResponse], summary="Recent drop alerts, newest first")
def list_drop_alerts(store: Annotated[SettingsStore, Depends(get_store)]) -> list[dict]:
    return store.list_drop_alerts()
