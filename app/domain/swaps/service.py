"""Swap service - negotiation engine for one-to-one slot exchanges

State machine over (slot A, slot B, request):

    SWAPPABLE, SWAPPABLE --request--> SWAP_PENDING, SWAP_PENDING
    SWAP_PENDING, SWAP_PENDING --accept--> BUSY, BUSY with owners exchanged
    SWAP_PENDING, SWAP_PENDING --reject--> SWAPPABLE, SWAPPABLE

Each operation is one transaction. Slot rows are locked and re-read inside it,
and versioned writes make a concurrent change abort the loser with Conflict.
Notifications go out only after the commit succeeds.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...database import atomic
from ...errors import (
    AlreadyProcessed,
    Conflict,
    Forbidden,
    InconsistentState,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from ...models import Slot, SlotStatus, SwapRequest, SwapStatus
from ...services.notification_service import (
    SWAP_ACCEPTED,
    SWAP_REJECTED,
    SWAP_REQUEST,
    NotificationHub,
    send_swap_notification,
)
from ..slots.repository import SlotRepository
from .repository import SwapRequestRepository
from .schemas import SwapRequestResponse

logger = logging.getLogger(__name__)


class SwapService:
    """Service layer for swap negotiation"""

    def __init__(self, db: Session, notifier: Optional[NotificationHub] = None):
        self.db = db
        self.notifier = notifier
        self.repo = SwapRequestRepository()
        self.slots = SlotRepository()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_requests(self, user_id: int) -> dict[str, list[SwapRequest]]:
        """Pending requests addressed to and made by ``user_id``"""
        return {
            "incoming": self.repo.get_incoming(self.db, user_id),
            "outgoing": self.repo.get_outgoing(self.db, user_id),
        }

    def get_request(self, request_id: int, user_id: int) -> SwapRequest:
        """A swap request visible to either of its parties"""
        swap_request = self.repo.get_by_id(self.db, request_id)
        if not swap_request or user_id not in (
            swap_request.requester_id,
            swap_request.requested_user_id,
        ):
            raise NotFound("Swap request not found")
        return swap_request

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def request_swap(self, requester_id: int, my_slot_id: int, their_slot_id: int) -> SwapRequest:
        """
        Propose exchanging ``my_slot_id`` (owned by the requester) for ``their_slot_id``.

        Both slots must be SWAPPABLE and owned by different users. On success
        the request is PENDING, both slots are SWAP_PENDING, and the owner of
        ``their_slot_id`` is notified.

        Raises:
            ValidationError: same slot twice, or their slot is the requester's own
            NotFound: a slot is missing, or my slot is not the requester's
            InvalidTransition: a slot is not SWAPPABLE
            Conflict: the pair is already pending, or a concurrent write won
        """
        if my_slot_id == their_slot_id:
            raise ValidationError("Cannot swap a slot with itself")

        with atomic(self.db):
            locked = self.slots.lock_many(self.db, (my_slot_id, their_slot_id))
            my_slot = locked.get(my_slot_id)
            their_slot = locked.get(their_slot_id)

            if not my_slot or my_slot.user_id != requester_id:
                raise NotFound("Your slot not found")
            if my_slot.status != SlotStatus.SWAPPABLE:
                raise InvalidTransition("Your slot must be swappable")
            if not their_slot:
                raise NotFound("Requested slot not found")
            if their_slot.status != SlotStatus.SWAPPABLE:
                raise InvalidTransition("Requested slot is not available for swapping")
            if their_slot.user_id == requester_id:
                raise ValidationError("Cannot request swap with your own slot")
            if self.repo.find_pending_between(self.db, my_slot_id, their_slot_id):
                raise Conflict("Swap request already exists")

            swap_request = self.repo.create(
                self.db,
                requester_id=requester_id,
                requested_user_id=their_slot.user_id,
                requester_slot_id=my_slot.id,
                requested_slot_id=their_slot.id,
                status=SwapStatus.PENDING,
            )
            self.slots.set_status(my_slot, SlotStatus.SWAP_PENDING)
            self.slots.set_status(their_slot, SlotStatus.SWAP_PENDING)

        logger.info(
            f"🤝 Swap request {swap_request.id} created: user {requester_id} offers slot "
            f"{my_slot_id} for slot {their_slot_id} of user {swap_request.requested_user_id}"
        )
        self._notify(swap_request.requested_user_id, SWAP_REQUEST, swap_request)
        return swap_request

    def respond_to_swap(self, responder_id: int, request_id: int, accept: bool) -> SwapRequest:
        """
        Accept or reject a PENDING swap request addressed to ``responder_id``.

        Accepting exchanges the owners of both slots and marks them BUSY;
        rejecting returns both to SWAPPABLE. The requester is notified.

        Raises:
            NotFound: no such request
            Forbidden: responder is not the requested user
            AlreadyProcessed: request is no longer PENDING
            InconsistentState: a referenced slot is missing or not SWAP_PENDING
            Conflict: a concurrent write won
        """
        with atomic(self.db):
            swap_request = self.repo.get_for_update(self.db, request_id)
            if not swap_request:
                raise NotFound("Swap request not found")
            if swap_request.requested_user_id != responder_id:
                logger.warning(
                    f"⚠️ User {responder_id} attempted to respond to swap request {request_id} "
                    f"addressed to user {swap_request.requested_user_id}"
                )
                raise Forbidden("Not authorized to respond to this request")
            if swap_request.status.is_terminal:
                raise AlreadyProcessed("Swap request already processed")

            locked = self.slots.lock_many(
                self.db, (swap_request.requester_slot_id, swap_request.requested_slot_id)
            )
            requester_slot = locked.get(swap_request.requester_slot_id)
            requested_slot = locked.get(swap_request.requested_slot_id)
            self._check_pending_slots(swap_request, requester_slot, requested_slot)

            if accept:
                requester_slot.user_id, requested_slot.user_id = (
                    requested_slot.user_id,
                    requester_slot.user_id,
                )
                self.slots.set_status(requester_slot, SlotStatus.BUSY)
                self.slots.set_status(requested_slot, SlotStatus.BUSY)
                swap_request.status = SwapStatus.ACCEPTED
            else:
                self.slots.set_status(requester_slot, SlotStatus.SWAPPABLE)
                self.slots.set_status(requested_slot, SlotStatus.SWAPPABLE)
                swap_request.status = SwapStatus.REJECTED

        logger.info(
            f"✅ Swap request {request_id} {swap_request.status.value.lower()} by user {responder_id}"
        )
        self._notify(
            swap_request.requester_id,
            SWAP_ACCEPTED if accept else SWAP_REJECTED,
            swap_request,
        )
        return swap_request

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_pending_slots(
        swap_request: SwapRequest,
        requester_slot: Optional[Slot],
        requested_slot: Optional[Slot],
    ) -> None:
        """A PENDING request must hold both of its slots in SWAP_PENDING"""
        problems = []
        for label, slot_id, slot in (
            ("requester", swap_request.requester_slot_id, requester_slot),
            ("requested", swap_request.requested_slot_id, requested_slot),
        ):
            if slot is None:
                problems.append(f"{label} slot {slot_id} missing")
            elif slot.status != SlotStatus.SWAP_PENDING:
                problems.append(f"{label} slot {slot_id} is {slot.status.value}")

        if problems:
            logger.error(
                f"🚨 Invariant violated for pending swap request {swap_request.id}: "
                f"{'; '.join(problems)}"
            )
            raise InconsistentState("Slots are no longer in pending state")

    def _notify(self, recipient_id: int, event: str, swap_request: SwapRequest) -> None:
        """Post-commit, fire-and-forget notification; failures are only logged"""
        if self.notifier is None:
            return
        try:
            payload = SwapRequestResponse.from_request(swap_request).model_dump(mode="json")
        except Exception as e:
            logger.error(f"❌ Could not build {event} payload for swap request {swap_request.id}: {e}")
            return
        send_swap_notification(self.notifier, recipient_id, event, payload)
