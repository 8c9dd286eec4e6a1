"""Slot repository - Database operations for slots

Every method takes the caller's Session as its transaction handle and never
commits; the service decides where the transaction ends.
"""

from typing import Iterable, Iterator, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from ...models import Slot, SlotStatus


class SlotRepository:
    """Repository for slot database operations"""

    @staticmethod
    def get_by_id(db: Session, slot_id: int) -> Optional[Slot]:
        """Get a slot by ID, re-read from the database"""
        return db.query(Slot).filter(Slot.id == slot_id).populate_existing().first()

    @staticmethod
    def get_for_update(db: Session, slot_id: int) -> Optional[Slot]:
        """Get a slot by ID and lock its row until the transaction ends"""
        return (
            db.query(Slot)
            .filter(Slot.id == slot_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    @staticmethod
    def lock_many(db: Session, slot_ids: Iterable[int]) -> dict[int, Slot]:
        """
        Lock several slot rows at once.

        Rows are locked in ascending id order so two transactions touching the
        same pair never wait on each other in opposite order.
        Missing ids are simply absent from the result.
        """
        ids = sorted({slot_id for slot_id in slot_ids if slot_id is not None})
        if not ids:
            return {}
        slots = (
            db.query(Slot)
            .filter(Slot.id.in_(ids))
            .order_by(Slot.id)
            .populate_existing()
            .with_for_update()
            .all()
        )
        return {slot.id: slot for slot in slots}

    @staticmethod
    def get_by_owner(db: Session, user_id: int) -> list[Slot]:
        """Get all slots owned by a user, earliest first"""
        return (
            db.query(Slot)
            .filter(Slot.user_id == user_id)
            .order_by(Slot.start_time.asc(), Slot.id.asc())
            .all()
        )

    @staticmethod
    def add(db: Session, **slot_data) -> Slot:
        """Stage a new slot and flush it so it gets an ID"""
        slot = Slot(**slot_data)
        db.add(slot)
        db.flush()
        return slot

    @staticmethod
    def update(slot: Slot, **updates) -> Slot:
        """Apply field updates to a slot; None values are skipped"""
        for key, value in updates.items():
            if value is not None and hasattr(slot, key):
                setattr(slot, key, value)
        return slot

    @staticmethod
    def set_status(slot: Slot, status: SlotStatus) -> Slot:
        slot.status = status
        return slot

    @staticmethod
    def delete(db: Session, slot: Slot) -> None:
        db.delete(slot)


class SwappableSlots:
    """
    Restartable, lazy view of SWAPPABLE slots not owned by ``excluding_owner``.

    Each iteration starts over and pages through current committed rows ordered
    by start time (ties broken by id), fetching ``batch_size`` rows per query.
    """

    def __init__(self, db: Session, excluding_owner: int, batch_size: int = 100):
        self.db = db
        self.excluding_owner = excluding_owner
        self.batch_size = batch_size

    def _page(self, after: Optional[Slot]) -> list[Slot]:
        query = (
            self.db.query(Slot)
            .options(joinedload(Slot.owner))
            .filter(Slot.status == SlotStatus.SWAPPABLE, Slot.user_id != self.excluding_owner)
        )
        if after is not None:
            query = query.filter(
                or_(
                    Slot.start_time > after.start_time,
                    and_(Slot.start_time == after.start_time, Slot.id > after.id),
                )
            )
        return (
            query.order_by(Slot.start_time.asc(), Slot.id.asc())
            .limit(self.batch_size)
            .populate_existing()
            .all()
        )

    def __iter__(self) -> Iterator[Slot]:
        last = None
        while True:
            page = self._page(last)
            yield from page
            if len(page) < self.batch_size:
                return
            last = page[-1]
