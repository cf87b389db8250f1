"""Reward eligibility policy.

One ordered policy, first failure wins:

    already claimed -> quiz passed -> wallet linked -> wallet age -> wallet reuse

The same evaluator backs the read-only eligibility endpoint and the claim
handler, so what the UI shows and what the server enforces cannot drift.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import ColumnElement, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from teaedu.db.models import ClaimReservation, QuizCompletion, RewardClaim, RewardType
from teaedu.rewards.constants import MIN_WALLET_AGE, REWARD_QUIZ_ID, REWARD_TYPE
from teaedu.rewards.exceptions import (
    AlreadyClaimed,
    NoWalletConnected,
    PolicyRejection,
    QuizNotCompleted,
    WalletAlreadyUsed,
    WalletTooNew,
)
from teaedu.wallets.service import get_reward_wallet

logger = structlog.get_logger()

SECONDS_PER_DAY = 86_400


@dataclass(frozen=True)
class EligibilityStatus:
    can_claim: bool = False
    already_claimed: bool = False
    quiz_passed: bool = False
    wallet_connected: bool = False
    wallet_too_new: bool = False
    wallet_already_used: bool = False
    wallet_address: str | None = None
    wallet_age_days: int | None = None
    days_remaining: int | None = None
    reason: str | None = None

    def to_camel(self) -> dict:
        """Client-facing shape."""
        return {
            "canClaim": self.can_claim,
            "alreadyClaimed": self.already_claimed,
            "quizPassed": self.quiz_passed,
            "walletConnected": self.wallet_connected,
            "walletTooNew": self.wallet_too_new,
            "walletAlreadyUsed": self.wallet_already_used,
            "walletAddress": self.wallet_address,
            "walletAge": self.wallet_age_days,
            "daysRemaining": self.days_remaining,
            "reason": self.reason,
        }

    def rejection(self) -> PolicyRejection | None:
        """The claim error matching the first failed check, or None when claimable."""
        if self.can_claim:
            return None
        if self.already_claimed:
            return AlreadyClaimed()
        if not self.quiz_passed:
            return QuizNotCompleted()
        if not self.wallet_connected:
            return NoWalletConnected()
        if self.wallet_too_new:
            return WalletTooNew(self.days_remaining or 0)
        if self.wallet_already_used:
            return WalletAlreadyUsed()
        return PolicyRejection(self.reason)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class EligibilityEvaluator:
    """Side-effect free: only SELECTs, safe to call repeatedly."""

    def __init__(self, db: AsyncSession, now: datetime | None = None) -> None:
        self.db = db
        self._now = now

    async def evaluate(self, user_id: str, reward_type: RewardType = REWARD_TYPE) -> EligibilityStatus:
        now = self._now or datetime.now(timezone.utc)

        if await self._claimed_by_user(user_id, reward_type):
            return EligibilityStatus(
                already_claimed=True,
                quiz_passed=True,
                reason="Você já recebeu esta recompensa.",
            )

        if not await self._quiz_passed(user_id):
            return EligibilityStatus(reason="Conclua o quiz do Módulo 3 para liberar a recompensa.")

        wallet = await get_reward_wallet(self.db, user_id)
        if wallet is None:
            return EligibilityStatus(
                quiz_passed=True,
                reason="Conecte uma carteira para receber a recompensa.",
            )

        age = now - _as_utc(wallet.connected_at)
        age_days = max(age.days, 0)
        if age < MIN_WALLET_AGE:
            remaining = max(math.ceil(MIN_WALLET_AGE.days - age.total_seconds() / SECONDS_PER_DAY), 1)
            return EligibilityStatus(
                quiz_passed=True,
                wallet_connected=True,
                wallet_too_new=True,
                wallet_address=wallet.wallet_address,
                wallet_age_days=age_days,
                days_remaining=remaining,
                reason=(
                    f"A carteira precisa estar conectada há pelo menos {MIN_WALLET_AGE.days} dias. "
                    f"Faltam {remaining} dia(s)."
                ),
            )

        if await self._claimed_by_wallet(wallet.wallet_address, reward_type):
            return EligibilityStatus(
                quiz_passed=True,
                wallet_connected=True,
                wallet_already_used=True,
                wallet_address=wallet.wallet_address,
                wallet_age_days=age_days,
                reason="Esta carteira já foi usada para resgatar esta recompensa.",
            )

        return EligibilityStatus(
            can_claim=True,
            quiz_passed=True,
            wallet_connected=True,
            wallet_address=wallet.wallet_address,
            wallet_age_days=age_days,
        )

    async def _claimed_by_user(self, user_id: str, reward_type: RewardType) -> bool:
        return await self._paid_or_reserved(
            RewardClaim.user_id == user_id,
            ClaimReservation.user_id == user_id,
            reward_type,
        )

    async def _claimed_by_wallet(self, wallet_address: str, reward_type: RewardType) -> bool:
        return await self._paid_or_reserved(
            RewardClaim.wallet_address == wallet_address,
            ClaimReservation.wallet_address == wallet_address,
            reward_type,
        )

    async def _paid_or_reserved(
        self,
        ledger_match: ColumnElement[bool],
        reservation_match: ColumnElement[bool],
        reward_type: RewardType,
    ) -> bool:
        """A ledger row, or a reservation in any status.

        Reservations hold the same unique keys as the ledger, so the claim
        handler refuses while one exists, including a confirmed one whose
        ledger write was lost.
        """
        paid = select(RewardClaim.id).where(ledger_match, RewardClaim.reward_type == reward_type.value)
        reserved = select(ClaimReservation.id).where(
            reservation_match, ClaimReservation.reward_type == reward_type.value
        )
        result = await self.db.execute(select(or_(paid.exists(), reserved.exists())))
        return bool(result.scalar())

    async def _quiz_passed(self, user_id: str) -> bool:
        result = await self.db.execute(
            select(QuizCompletion.passed).where(
                QuizCompletion.user_id == user_id,
                QuizCompletion.quiz_id == REWARD_QUIZ_ID,
            )
        )
        return bool(result.scalar_one_or_none())
