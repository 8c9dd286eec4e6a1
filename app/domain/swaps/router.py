"""Swap router - FastAPI endpoints for swap negotiation"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import SwapStatus, User
from ...services.notification_service import NotificationHub, get_notification_hub
from ..slots.router import get_slot_service
from ..slots.schemas import SlotResponse
from ..slots.service import SlotService
from .schemas import (
    SwapDecision,
    SwapDecisionResponse,
    SwapRequestCreate,
    SwapRequestResponse,
    SwapRequestsResponse,
)
from .service import SwapService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/swaps", tags=["Swaps"])


def get_swap_service(
    db: Session = Depends(get_db),
    hub: NotificationHub = Depends(get_notification_hub),
) -> SwapService:
    """Dependency injection for SwapService"""
    return SwapService(db, notifier=hub)


@router.get("/swappable-slots", response_model=list[SlotResponse])
def get_swappable_slots(
    current_user: User = Depends(get_current_user),
    slots: SlotService = Depends(get_slot_service),
):
    """Get all swappable slots from other users"""
    return [
        SlotResponse.from_slot(slot, include_owner=True)
        for slot in slots.list_swappable(current_user.id)
    ]


@router.post("/request", response_model=SwapRequestResponse, status_code=201)
def create_swap_request(
    data: SwapRequestCreate,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    """Offer one of my swappable slots in exchange for someone else's"""
    swap_request = service.request_swap(current_user.id, data.mySlotId, data.theirSlotId)
    return SwapRequestResponse.from_request(swap_request)


@router.get("/requests", response_model=SwapRequestsResponse)
def get_swap_requests(
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    """Get pending incoming and outgoing swap requests"""
    requests = service.list_requests(current_user.id)
    return SwapRequestsResponse(
        incoming=[SwapRequestResponse.from_request(r) for r in requests["incoming"]],
        outgoing=[SwapRequestResponse.from_request(r) for r in requests["outgoing"]],
    )


@router.get("/requests/{request_id}", response_model=SwapRequestResponse)
def get_swap_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    """Get a single swap request I am party to"""
    return SwapRequestResponse.from_request(service.get_request(request_id, current_user.id))


@router.post("/response/{request_id}", response_model=SwapDecisionResponse)
def respond_to_swap_request(
    request_id: int,
    data: SwapDecision,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    """Accept or reject a swap request addressed to me"""
    swap_request = service.respond_to_swap(current_user.id, request_id, data.accept)
    message = (
        "Swap accepted successfully"
        if swap_request.status == SwapStatus.ACCEPTED
        else "Swap rejected"
    )
    return SwapDecisionResponse(
        message=message, swapRequest=SwapRequestResponse.from_request(swap_request)
    )
