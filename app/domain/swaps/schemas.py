"""Swap domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, StrictBool

from ...models import SwapRequest, SwapStatus
from ..slots.schemas import SlotResponse, UserSummary


class SwapRequestCreate(BaseModel):
    """Schema for proposing a swap of my slot for theirs"""

    mySlotId: int
    theirSlotId: int


class SwapDecision(BaseModel):
    """Schema for answering an incoming swap request"""

    accept: StrictBool


class SwapRequestResponse(BaseModel):
    """Swap request with both parties and both slots resolved"""

    id: int
    requesterId: int
    requestedUserId: int
    requesterSlotId: Optional[int]
    requestedSlotId: Optional[int]
    status: SwapStatus
    requester: Optional[UserSummary] = None
    requestedUser: Optional[UserSummary] = None
    requesterSlot: Optional[SlotResponse] = None
    requestedSlot: Optional[SlotResponse] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_request(cls, swap_request: SwapRequest) -> "SwapRequestResponse":
        return cls(
            id=swap_request.id,
            requesterId=swap_request.requester_id,
            requestedUserId=swap_request.requested_user_id,
            requesterSlotId=swap_request.requester_slot_id,
            requestedSlotId=swap_request.requested_slot_id,
            status=swap_request.status,
            requester=UserSummary.from_user(swap_request.requester),
            requestedUser=UserSummary.from_user(swap_request.requested_user),
            requesterSlot=(
                SlotResponse.from_slot(swap_request.requester_slot)
                if swap_request.requester_slot
                else None
            ),
            requestedSlot=(
                SlotResponse.from_slot(swap_request.requested_slot)
                if swap_request.requested_slot
                else None
            ),
            createdAt=swap_request.created_at,
            updatedAt=swap_request.updated_at,
        )


class SwapRequestsResponse(BaseModel):
    """Pending requests addressed to me and made by me"""

    incoming: list[SwapRequestResponse]
    outgoing: list[SwapRequestResponse]


class SwapDecisionResponse(BaseModel):
    message: str
    swapRequest: SwapRequestResponse
