"""
Route handlers for live page contexts: stored detection snapshots and
command relay to a running engine.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from api.deps import get_command_timeout_ms, get_store
from api.schemas import PageButtonsResponse, PageCommandRequest
from dropcart.bridge import request_page_command
from dropcart.constants import MESSAGE_TYPES
from dropcart.errors import NoResponseError
from shared.logging import get_logger
from shared.store import SettingsStore

logger = get_logger(__name__)
router = APIRouter(prefix="/pages", tags=["pages"])


@router.get("/{page_id}/buttons", response_model=PageButtonsResponse, summary="Last published detections")
def get_page_buttons(
    page_id: str,
    store: Annotated[SettingsStore, Depends(get_store)],
) -> dict:
    snapshot = store.get_detections(page_id)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No detections stored for page {page_id}",
        )
    return snapshot


@router.post("/{page_id}/commands", summary="Relay a command to a live page and return its reply")
def send_page_command(
    page_id: str,
    request: PageCommandRequest,
    store: Annotated[SettingsStore, Depends(get_store)],
    timeout_ms: Annotated[int, Depends(get_command_timeout_ms)],
) -> dict:
    if request.type not in MESSAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported message type: {request.type}",
        )
    try:
        return request_page_command(store, page_id, request.message(), timeout_ms)
    except NoResponseError as e:
        logger.warning("page_command_timeout", page_id=page_id, message_type=request.type, error=str(e))
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e))
