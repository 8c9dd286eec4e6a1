"""Tests for the slot store.

Coverage:
- creation and input validation
- owner status toggles and the SWAP_PENDING guard
- update and delete rules
- swappable listing order, filtering and restartability
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.domain.slots.schemas import SlotUpdate
from app.domain.slots.service import SlotService
from app.errors import Forbidden, InvalidTransition, NotFound, ValidationError
from app.models import Slot, SlotStatus

BASE_TIME = datetime(2026, 11, 2, 9, 0)


def _force_status(db, slot_id, status):
    """Out-of-band write, standing in for the swap engine"""
    slot = db.get(Slot, slot_id)
    slot.status = status
    db.commit()


class TestCreate:
    def test_new_slot_is_busy(self, db, alice):
        slot = SlotService(db).create(alice.id, "Standup", BASE_TIME, BASE_TIME + timedelta(hours=1))

        assert slot.id is not None
        assert slot.status == SlotStatus.BUSY
        assert slot.user_id == alice.id
        assert slot.title == "Standup"

    @pytest.mark.parametrize("end_offset", [timedelta(0), timedelta(minutes=-30)])
    def test_end_not_after_start_is_rejected(self, db, alice, end_offset):
        with pytest.raises(ValidationError, match="End time must be after start time"):
            SlotService(db).create(alice.id, "Standup", BASE_TIME, BASE_TIME + end_offset)

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_blank_title_is_rejected(self, db, alice, title):
        with pytest.raises(ValidationError, match="Title is required"):
            SlotService(db).create(alice.id, title, BASE_TIME, BASE_TIME + timedelta(hours=1))

    def test_title_is_stripped_and_escaped(self, db, alice):
        slot = SlotService(db).create(
            alice.id, "  <b>Review</b> ", BASE_TIME, BASE_TIME + timedelta(hours=1)
        )
        assert slot.title == "&lt;b&gt;Review&lt;/b&gt;"

    @pytest.mark.parametrize("title", ["\x01\x02", "\x00 \x7f", "\x01\x02\x7f"])
    def test_title_of_control_characters_is_rejected(self, db, alice, title):
        with pytest.raises(ValidationError, match="Title is required"):
            SlotService(db).create(alice.id, title, BASE_TIME, BASE_TIME + timedelta(hours=1))

        assert db.query(Slot).count() == 0

    def test_aware_times_are_stored_as_utc(self, db, alice):
        plus_two = timezone(timedelta(hours=2))
        start = datetime(2026, 11, 2, 11, 0, tzinfo=plus_two)

        slot = SlotService(db).create(alice.id, "Standup", start, start + timedelta(hours=1))

        assert slot.start_time == datetime(2026, 11, 2, 9, 0)
        assert slot.end_time == datetime(2026, 11, 2, 10, 0)


class TestSetStatus:
    def test_toggle_busy_and_swappable(self, db, alice, make_slot):
        slot = make_slot(alice)
        service = SlotService(db)

        assert service.set_status(slot.id, alice.id, SlotStatus.SWAPPABLE).status == SlotStatus.SWAPPABLE
        assert service.set_status(slot.id, alice.id, SlotStatus.BUSY).status == SlotStatus.BUSY

    def test_missing_slot_is_not_found(self, db, alice):
        with pytest.raises(NotFound):
            SlotService(db).set_status(9999, alice.id, SlotStatus.SWAPPABLE)

    def test_other_owner_is_not_found(self, db, alice, bob, make_slot):
        slot = make_slot(alice)
        with pytest.raises(NotFound):
            SlotService(db).set_status(slot.id, bob.id, SlotStatus.SWAPPABLE)

    def test_owner_cannot_set_swap_pending(self, db, alice, make_slot):
        slot = make_slot(alice, status=SlotStatus.SWAPPABLE)
        with pytest.raises(InvalidTransition):
            SlotService(db).set_status(slot.id, alice.id, SlotStatus.SWAP_PENDING)

    @pytest.mark.parametrize("target", list(SlotStatus))
    def test_swap_pending_slot_cannot_be_edited(self, db, alice, make_slot, target):
        slot = make_slot(alice, status=SlotStatus.SWAPPABLE)
        _force_status(db, slot.id, SlotStatus.SWAP_PENDING)

        with pytest.raises(InvalidTransition):
            SlotService(db).set_status(slot.id, alice.id, target)

        db.expire_all()
        assert db.get(Slot, slot.id).status == SlotStatus.SWAP_PENDING


class TestUpdate:
    def test_update_fields(self, db, alice, make_slot):
        slot = make_slot(alice)
        new_start = BASE_TIME + timedelta(days=1)

        updated = SlotService(db).update_slot(
            slot.id,
            SlotUpdate(title="Retro", startTime=new_start, endTime=new_start + timedelta(hours=2)),
            alice.id,
        )

        assert updated.title == "Retro"
        assert updated.start_time == new_start
        assert updated.end_time == new_start + timedelta(hours=2)

    def test_partial_time_update_is_checked_against_stored_end(self, db, alice, make_slot):
        slot = make_slot(alice)
        with pytest.raises(ValidationError):
            SlotService(db).update_slot(
                slot.id, SlotUpdate(startTime=BASE_TIME + timedelta(hours=3)), alice.id
            )

    @pytest.mark.parametrize("title", ["\x01\x02", "\x00 \x7f"])
    def test_title_of_control_characters_is_rejected(self, db, alice, make_slot, title):
        slot_id = make_slot(alice).id

        with pytest.raises(ValidationError, match="Title is required"):
            SlotService(db).update_slot(slot_id, SlotUpdate(title=title), alice.id)

        db.expire_all()
        assert db.get(Slot, slot_id).title == "Standup"

    def test_update_swap_pending_slot_is_rejected(self, db, alice, make_slot):
        slot = make_slot(alice, status=SlotStatus.SWAPPABLE)
        _force_status(db, slot.id, SlotStatus.SWAP_PENDING)

        with pytest.raises(InvalidTransition, match="pending swap"):
            SlotService(db).update_slot(slot.id, SlotUpdate(title="Renamed"), alice.id)

    def test_update_cannot_enter_swap_pending(self, db, alice, make_slot):
        slot = make_slot(alice)
        with pytest.raises(InvalidTransition):
            SlotService(db).update_slot(
                slot.id, SlotUpdate(status=SlotStatus.SWAP_PENDING), alice.id
            )


class TestDelete:
    def test_delete_own_slot(self, db, alice, make_slot):
        slot_id = make_slot(alice).id
        result = SlotService(db).delete_slot(slot_id, alice.id)

        assert result == {"message": "Event deleted successfully"}
        assert db.get(Slot, slot_id) is None

    def test_delete_missing_slot(self, db, alice):
        with pytest.raises(NotFound):
            SlotService(db).delete_slot(9999, alice.id)

    def test_delete_someone_elses_slot(self, db, alice, bob, make_slot):
        slot = make_slot(alice)
        with pytest.raises(Forbidden):
            SlotService(db).delete_slot(slot.id, bob.id)

    def test_delete_swap_pending_slot_is_rejected(self, db, alice, make_slot):
        slot = make_slot(alice, status=SlotStatus.SWAPPABLE)
        _force_status(db, slot.id, SlotStatus.SWAP_PENDING)

        with pytest.raises(InvalidTransition):
            SlotService(db).delete_slot(slot.id, alice.id)

        db.expire_all()
        assert db.get(Slot, slot.id) is not None


class TestListSwappable:
    def test_filters_and_orders_by_start(self, db, alice, bob, carol, make_slot):
        late = make_slot(bob, "Late", offset_hours=5, status=SlotStatus.SWAPPABLE)
        early = make_slot(carol, "Early", offset_hours=1, status=SlotStatus.SWAPPABLE)
        make_slot(bob, "Busy", offset_hours=2)
        make_slot(alice, "Mine", offset_hours=0, status=SlotStatus.SWAPPABLE)

        slots = list(SlotService(db).list_swappable(alice.id))

        assert [s.id for s in slots] == [early.id, late.id]

    def test_pages_through_every_slot(self, db, alice, bob, make_slot):
        created = [
            make_slot(bob, f"Slot {i}", offset_hours=i, status=SlotStatus.SWAPPABLE) for i in range(5)
        ]
        # Two slots sharing a start time must not be lost between pages
        created.append(make_slot(bob, "Twin", offset_hours=2, status=SlotStatus.SWAPPABLE))

        slots = list(SlotService(db).list_swappable(alice.id, batch_size=2))

        assert sorted(s.id for s in slots) == sorted(s.id for s in created)
        assert [s.start_time for s in slots] == sorted(s.start_time for s in slots)

    def test_is_restartable_and_reflects_new_state(self, db, alice, bob, make_slot):
        first = make_slot(bob, "First", offset_hours=1, status=SlotStatus.SWAPPABLE)
        listing = SlotService(db).list_swappable(alice.id)

        assert [s.id for s in listing] == [first.id]
        assert [s.id for s in listing] == [first.id]

        SlotService(db).set_status(first.id, bob.id, SlotStatus.BUSY)
        assert list(listing) == []

    def test_empty(self, db, alice):
        assert list(SlotService(db).list_swappable(alice.id)) == []
