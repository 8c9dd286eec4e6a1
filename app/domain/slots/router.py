"""Slot router - FastAPI endpoints for a user's own calendar slots"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import SlotCreate, SlotResponse, SlotStatusUpdate, SlotUpdate
from .service import SlotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["Slots"])


def get_slot_service(db: Session = Depends(get_db)) -> SlotService:
    """Dependency injection for SlotService"""
    return SlotService(db)


@router.get("", response_model=list[SlotResponse])
def get_slots(
    current_user: User = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service),
):
    """Get all slots of the current user, earliest first"""
    return [SlotResponse.from_slot(slot) for slot in service.list_slots(current_user.id)]


@router.post("", response_model=SlotResponse, status_code=201)
def create_slot(
    data: SlotCreate,
    current_user: User = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service),
):
    """Create a new BUSY slot"""
    return SlotResponse.from_slot(service.create_slot(data, current_user.id))


@router.put("/{slot_id}", response_model=SlotResponse)
def update_slot(
    slot_id: int,
    data: SlotUpdate,
    current_user: User = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service),
):
    """Update title, times or status of a slot"""
    return SlotResponse.from_slot(service.update_slot(slot_id, data, current_user.id))


@router.patch("/{slot_id}/status", response_model=SlotResponse)
def update_slot_status(
    slot_id: int,
    data: SlotStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service),
):
    """Toggle a slot between BUSY and SWAPPABLE"""
    return SlotResponse.from_slot(service.set_status(slot_id, current_user.id, data.status))


@router.delete("/{slot_id}")
def delete_slot(
    slot_id: int,
    current_user: User = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service),
):
    """Delete a slot"""
    return service.delete_slot(slot_id, current_user.id)
