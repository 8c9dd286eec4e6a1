"""Slot domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Slot, SlotStatus, User


class SlotCreate(BaseModel):
    """Schema for creating a new slot. Time range is checked by the service."""

    title: str
    startTime: datetime
    endTime: datetime


class SlotUpdate(BaseModel):
    """Schema for updating an existing slot"""

    title: Optional[str] = None
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None
    status: Optional[SlotStatus] = None


class SlotStatusUpdate(BaseModel):
    """Schema for toggling a slot between BUSY and SWAPPABLE"""

    status: SlotStatus


class UserSummary(BaseModel):
    """Display fields of a slot owner or swap party"""

    id: int
    name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_user(cls, user: Optional[User]) -> Optional["UserSummary"]:
        if user is None:
            return None
        return cls(id=user.id, name=user.full_name, email=user.email)


class SlotResponse(BaseModel):
    """Schema for slot response"""

    id: int
    title: str
    startTime: datetime
    endTime: datetime
    status: SlotStatus
    userId: int
    owner: Optional[UserSummary] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_slot(cls, slot: Slot, include_owner: bool = False) -> "SlotResponse":
        return cls(
            id=slot.id,
            title=slot.title,
            startTime=slot.start_time,
            endTime=slot.end_time,
            status=slot.status,
            userId=slot.user_id,
            owner=UserSummary.from_user(slot.owner) if include_owner else None,
            createdAt=slot.created_at,
            updatedAt=slot.updated_at,
        )
