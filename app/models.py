import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class SlotStatus(str, enum.Enum):
    """Availability of a slot. SWAP_PENDING is set and cleared only by the swap engine."""

    BUSY = "BUSY"
    SWAPPABLE = "SWAPPABLE"
    SWAP_PENDING = "SWAP_PENDING"


class SwapStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not SwapStatus.PENDING


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    subject = Column(String(255), unique=True, index=True, nullable=False)  # `sub` claim of the bearer token
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    slots = relationship("Slot", back_populates="owner")


class Slot(Base):
    __tablename__ = "slots"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(Text, nullable=False)  # stored HTML-escaped
    start_time = Column(DateTime, nullable=False)  # naive UTC
    end_time = Column(DateTime, nullable=False)  # naive UTC
    status = Column(
        Enum(SlotStatus, name="slot_status", native_enum=False, validate_strings=True),
        default=SlotStatus.BUSY,
        nullable=False,
    )
    # Bumped on every UPDATE/DELETE; a write against a stale version raises StaleDataError
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="slots")

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        Index("ix_slots_user_start", "user_id", "start_time"),
        Index("ix_slots_status_start", "status", "start_time"),
    )


class SwapRequest(Base):
    __tablename__ = "swap_requests"

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    requested_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    # Nullable so an owner can delete a slot once the request touching it is resolved
    requester_slot_id = Column(Integer, ForeignKey("slots.id", ondelete="SET NULL"), nullable=True)
    requested_slot_id = Column(Integer, ForeignKey("slots.id", ondelete="SET NULL"), nullable=True)
    status = Column(
        Enum(SwapStatus, name="swap_status", native_enum=False, validate_strings=True),
        default=SwapStatus.PENDING,
        nullable=False,
    )
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    requester = relationship("User", foreign_keys=[requester_id])
    requested_user = relationship("User", foreign_keys=[requested_user_id])
    requester_slot = relationship("Slot", foreign_keys=[requester_slot_id])
    requested_slot = relationship("Slot", foreign_keys=[requested_slot_id])

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        Index("ix_swap_requests_requester_status", "requester_id", "status"),
        Index("ix_swap_requests_requested_status", "requested_user_id", "status"),
    )
