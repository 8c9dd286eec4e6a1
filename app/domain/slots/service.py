"""Slot service - Business logic for slot operations"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...database import atomic
from ...errors import Forbidden, InvalidTransition, NotFound, ValidationError
from ...models import Slot, SlotStatus
from ...shared.validators import validate_time_range, validate_title
from ...utils.sanitization import sanitize_title
from .repository import SlotRepository, SwappableSlots
from .schemas import SlotCreate, SlotUpdate

logger = logging.getLogger(__name__)

# Statuses an owner may set directly; SWAP_PENDING belongs to the swap engine
OWNER_SETTABLE_STATUSES = (SlotStatus.BUSY, SlotStatus.SWAPPABLE)


def check_owner_transition(current: SlotStatus, requested: SlotStatus) -> None:
    """Reject an owner-initiated status change that only the swap engine may make."""
    if current == SlotStatus.SWAP_PENDING:
        raise InvalidTransition("Cannot update event with pending swap")
    if requested == SlotStatus.SWAP_PENDING:
        raise InvalidTransition("A slot becomes SWAP_PENDING only through a swap request")
    if requested not in OWNER_SETTABLE_STATUSES:
        raise InvalidTransition(f"Unknown slot status: {requested}")


def clean_title(title: Optional[str]) -> str:
    """Validate a raw title and return the form that is stored."""
    title = sanitize_title(validate_title(title))
    # Control characters pass the blank check but are dropped by sanitizing
    if not title:
        raise ValueError("Title is required")
    return title


class SlotService:
    """Service layer for slot business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SlotRepository()

    def list_slots(self, user_id: int) -> list[Slot]:
        """Get all slots owned by a user"""
        return self.repo.get_by_owner(self.db, user_id)

    def list_swappable(self, excluding_owner: int, batch_size: int = 100) -> SwappableSlots:
        """Swappable slots of everyone except ``excluding_owner``, earliest first"""
        return SwappableSlots(self.db, excluding_owner, batch_size=batch_size)

    def create(self, owner_id: int, title: Optional[str], start: datetime, end: datetime) -> Slot:
        """Create a BUSY slot for ``owner_id``"""
        try:
            title = clean_title(title)
            start, end = validate_time_range(start, end)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        with atomic(self.db):
            slot = self.repo.add(
                self.db,
                user_id=owner_id,
                title=title,
                start_time=start,
                end_time=end,
                status=SlotStatus.BUSY,
            )
        logger.info(f"📅 Slot {slot.id} created for user_id: {owner_id}")
        return slot

    def create_slot(self, data: SlotCreate, user_id: int) -> Slot:
        return self.create(user_id, data.title, data.startTime, data.endTime)

    def _get_owned_for_update(self, slot_id: int, user_id: int) -> Slot:
        slot = self.repo.get_for_update(self.db, slot_id)
        if not slot or slot.user_id != user_id:
            raise NotFound("Event not found")
        return slot

    def set_status(self, slot_id: int, user_id: int, new_status: SlotStatus) -> Slot:
        """Toggle a slot between BUSY and SWAPPABLE"""
        with atomic(self.db):
            slot = self._get_owned_for_update(slot_id, user_id)
            check_owner_transition(slot.status, new_status)
            previous = slot.status
            self.repo.set_status(slot, new_status)
        logger.info(f"🔁 Slot {slot_id} status {previous.value} -> {new_status.value} by user_id: {user_id}")
        return slot

    def update_slot(self, slot_id: int, data: SlotUpdate, user_id: int) -> Slot:
        """Edit title, times and/or status of a slot that is not in a pending swap"""
        with atomic(self.db):
            slot = self._get_owned_for_update(slot_id, user_id)
            if slot.status == SlotStatus.SWAP_PENDING:
                raise InvalidTransition("Cannot update event with pending swap")

            updates = {}
            if data.title is not None:
                try:
                    updates["title"] = clean_title(data.title)
                except ValueError as e:
                    raise ValidationError(str(e)) from e
            if data.startTime is not None or data.endTime is not None:
                try:
                    start, end = validate_time_range(
                        data.startTime or slot.start_time, data.endTime or slot.end_time
                    )
                except ValueError as e:
                    raise ValidationError(str(e)) from e
                updates["start_time"] = start
                updates["end_time"] = end
            if data.status is not None:
                check_owner_transition(slot.status, data.status)
                updates["status"] = data.status

            self.repo.update(slot, **updates)
        logger.info(f"✏️ Slot {slot_id} updated by user_id: {user_id} ({', '.join(updates) or 'no changes'})")
        return slot

    def delete_slot(self, slot_id: int, user_id: int) -> dict:
        """Delete a slot owned by ``user_id`` unless a swap is pending on it"""
        with atomic(self.db):
            slot = self.repo.get_for_update(self.db, slot_id)
            if not slot:
                raise NotFound("Event not found")
            if slot.user_id != user_id:
                logger.warning(f"⚠️ User {user_id} attempted to delete slot {slot_id} owned by {slot.user_id}")
                raise Forbidden("Not authorized to delete this event")
            if slot.status == SlotStatus.SWAP_PENDING:
                raise InvalidTransition("Cannot delete event with pending swap")
            self.repo.delete(self.db, slot)
        logger.info(f"🗑️ Slot {slot_id} deleted by user_id: {user_id}")
        return {"message": "Event deleted successfully"}
