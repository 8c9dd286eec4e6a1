"""Swap request repository - Database operations for swap requests"""

from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from ...models import SwapRequest, SwapStatus

_RESOLVED = (
    joinedload(SwapRequest.requester),
    joinedload(SwapRequest.requested_user),
    joinedload(SwapRequest.requester_slot),
    joinedload(SwapRequest.requested_slot),
)


class SwapRequestRepository:
    """Repository for swap request database operations. Never commits."""

    @staticmethod
    def get_by_id(db: Session, request_id: int) -> Optional[SwapRequest]:
        """Get a swap request with parties and slots loaded"""
        return (
            db.query(SwapRequest)
            .options(*_RESOLVED)
            .filter(SwapRequest.id == request_id)
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_for_update(db: Session, request_id: int) -> Optional[SwapRequest]:
        """Get a swap request and lock its row until the transaction ends"""
        return (
            db.query(SwapRequest)
            .filter(SwapRequest.id == request_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    @staticmethod
    def find_pending_between(db: Session, slot_a_id: int, slot_b_id: int) -> Optional[SwapRequest]:
        """Find a PENDING request pairing these two slots, in either direction"""
        return (
            db.query(SwapRequest)
            .filter(
                SwapRequest.status == SwapStatus.PENDING,
                or_(
                    and_(
                        SwapRequest.requester_slot_id == slot_a_id,
                        SwapRequest.requested_slot_id == slot_b_id,
                    ),
                    and_(
                        SwapRequest.requester_slot_id == slot_b_id,
                        SwapRequest.requested_slot_id == slot_a_id,
                    ),
                ),
            )
            .first()
        )

    @staticmethod
    def get_incoming(db: Session, user_id: int) -> list[SwapRequest]:
        """PENDING requests addressed to a user, newest first"""
        return (
            db.query(SwapRequest)
            .options(*_RESOLVED)
            .filter(
                SwapRequest.requested_user_id == user_id,
                SwapRequest.status == SwapStatus.PENDING,
            )
            .order_by(SwapRequest.created_at.desc(), SwapRequest.id.desc())
            .all()
        )

    @staticmethod
    def get_outgoing(db: Session, user_id: int) -> list[SwapRequest]:
        """PENDING requests made by a user, newest first"""
        return (
            db.query(SwapRequest)
            .options(*_RESOLVED)
            .filter(
                SwapRequest.requester_id == user_id,
                SwapRequest.status == SwapStatus.PENDING,
            )
            .order_by(SwapRequest.created_at.desc(), SwapRequest.id.desc())
            .all()
        )

    @staticmethod
    def create(db: Session, **request_data) -> SwapRequest:
        """Stage a new swap request and flush it so it gets an ID"""
        swap_request = SwapRequest(**request_data)
        db.add(swap_request)
        db.flush()
        return swap_request
