"""ORM models for wallets, learning progress and reward payouts.

User identities live in the hosted auth provider; tables here only carry the
opaque ``user_id`` string from the access token.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from teaedu.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class RewardType(enum.StrEnum):
    """One-time reward kinds. Only module 3 completion exists today."""

    MODULE_3_COMPLETION = "module_3_completion"


class ReservationStatus(enum.StrEnum):
    """Lifecycle of a claim reservation."""

    PENDING = "pending"
    BROADCAST = "broadcast"
    CONFIRMED = "confirmed"


# ---------------------------------------------------------------------------
# Wallets
# ---------------------------------------------------------------------------


class Wallet(Base):
    """EVM address linked to a user. ``connected_at`` is the wallet-age anchor and never changes."""

    __tablename__ = "wallets"
    __table_args__ = (
        UniqueConstraint("user_id", "wallet_address", name="uq_wallet_user_address"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    wallet_type: Mapped[str] = mapped_column(String(32), nullable=False, default="metamask")
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    connected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Learning progress
# ---------------------------------------------------------------------------


class LessonProgress(Base):
    """Per-user lesson state. UNIQUE(user_id, lesson_id), upserted."""

    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_progress_user_lesson"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    lesson_id: Mapped[str] = mapped_column(String(64), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_accessed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class QuizCompletion(Base):
    """Per-user quiz result. UNIQUE(user_id, quiz_id), upserted."""

    __tablename__ = "quiz_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "quiz_id", name="uq_quiz_progress_user_quiz"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    quiz_id: Mapped[str] = mapped_column(String(64), nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------


class RewardClaim(Base):
    """Immutable payout ledger entry, written once after on-chain confirmation."""

    __tablename__ = "tea_rewards"
    __table_args__ = (
        UniqueConstraint("user_id", "reward_type", name="uq_tea_rewards_user_type"),
        UniqueConstraint("wallet_address", "reward_type", name="uq_tea_rewards_wallet_type"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(36, 6), nullable=False)
    reward_type: Mapped[str] = mapped_column(String(32), nullable=False)
    tx_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ClaimReservation(Base):
    """Serialization point for claims: inserted before any transfer is broadcast.

    The two unique constraints mirror the ledger's, so a second concurrent
    claim for the same user or the same wallet fails on insert.
    """

    __tablename__ = "reward_claim_reservations"
    __table_args__ = (
        UniqueConstraint("user_id", "reward_type", name="uq_reservation_user_type"),
        UniqueConstraint("wallet_address", "reward_type", name="uq_reservation_wallet_type"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False)
    reward_type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ReservationStatus.PENDING.value)
    tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
