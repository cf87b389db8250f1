"""Reward claim handler: the only code path that moves reward tokens.

At-most-once payout per user and per wallet comes from the reservation row,
which is committed before anything is broadcast. The ledger row written after
confirmation is bookkeeping; a failure there is logged, never retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teaedu.auth.jwt import AuthenticatedUser
from teaedu.chain.client import ChainError, ReceiptTimeout
from teaedu.chain.token import TokenGateway
from teaedu.config import Settings
from teaedu.db.models import ClaimReservation, ReservationStatus, RewardClaim
from teaedu.rewards.constants import REWARD_TYPE, STALE_RESERVATION_AGE
from teaedu.rewards.eligibility import EligibilityEvaluator
from teaedu.rewards.exceptions import (
    AlreadyClaimed,
    ChainUnavailable,
    ClaimError,
    InsufficientDistributorFunds,
    ServerMisconfigured,
    TransactionTimeout,
    TransferFailed,
    UnexpectedClaimError,
    WalletAlreadyUsed,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class ClaimResult:
    tx_hash: str
    amount: int


class ClaimService:
    """Runs one claim end to end for an authenticated user."""

    def __init__(
        self,
        db: AsyncSession,
        token: TokenGateway,
        settings: Settings,
        now: datetime | None = None,
    ) -> None:
        self.db = db
        self.token = token
        self.settings = settings
        self._now = now

    def now(self) -> datetime:
        return self._now or datetime.now(timezone.utc)

    async def claim(self, user: AuthenticatedUser) -> ClaimResult:
        """
        Re-check eligibility, reserve, transfer, confirm, record.

        Raises:
            PolicyRejection: The user is not eligible (400).
            ClaimError: Infrastructure failure (500). Detail goes to the logs only.
        """
        log = logger.bind(user_id=user.id, reward_type=REWARD_TYPE.value)
        log.info("reward_claim_started")

        status = await EligibilityEvaluator(self.db, now=self._now).evaluate(user.id, REWARD_TYPE)
        rejection = status.rejection()
        if rejection is not None:
            if status.already_claimed or status.wallet_already_used:
                await self._report_stale_reservations(user.id, status.wallet_address)
            raise rejection
        wallet_address = status.wallet_address

        reservation = await self._reserve(user.id, wallet_address)
        reservation_id = reservation.id
        log = log.bind(wallet_address=wallet_address, reservation_id=reservation_id)
        log.info("reward_reservation_created")

        amount = self.settings.reward_amount
        broadcast = False
        try:
            base_amount = self._check_configuration(amount)
            await self._check_distributor_balance(base_amount)

            try:
                tx_hash = await self.token.send_transfer(wallet_address, base_amount)
            except ChainError as e:
                msg = f"Transfer broadcast failed: {e}"
                raise TransferFailed(msg) from e
            broadcast = True
            log = log.bind(tx_hash=tx_hash)
            log.info("reward_transfer_sent", amount=amount, base_amount=base_amount)
            await self._mark(reservation, ReservationStatus.BROADCAST, tx_hash)

            try:
                receipt = await self.token.wait_for_receipt(tx_hash)
            except ReceiptTimeout as e:
                raise TransactionTimeout(str(e)) from e
            except ChainError as e:
                raise ChainUnavailable(str(e)) from e

            if not receipt.succeeded:
                broadcast = False
                msg = f"Transfer {tx_hash} reverted in block {receipt.block_number}"
                raise TransferFailed(msg)
        except Exception as e:
            if broadcast:
                # Money may have moved; the reservation stays for reconciliation
                log.error("reward_claim_unresolved", error=str(e))
            else:
                await self._release(reservation_id, log)
            if isinstance(e, ClaimError):
                raise
            raise UnexpectedClaimError(str(e)) from e

        log.info("reward_transfer_confirmed", block_number=receipt.block_number)
        await self._record(reservation, user.id, wallet_address, amount, tx_hash, log)

        return ClaimResult(tx_hash=tx_hash, amount=amount)

    # --- Steps ---

    async def _reserve(self, user_id: str, wallet_address: str) -> ClaimReservation:
        """Insert the reservation row; a uniqueness violation means someone got here first."""
        now = self.now()
        reservation = ClaimReservation(
            user_id=user_id,
            wallet_address=wallet_address,
            reward_type=REWARD_TYPE.value,
            status=ReservationStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        self.db.add(reservation)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            result = await self.db.execute(
                select(ClaimReservation.id).where(
                    ClaimReservation.user_id == user_id,
                    ClaimReservation.reward_type == REWARD_TYPE.value,
                )
            )
            if result.first() is not None:
                raise AlreadyClaimed from e
            raise WalletAlreadyUsed from e
        return reservation

    async def _report_stale_reservations(self, user_id: str, wallet_address: str | None) -> None:
        """Log pending reservations abandoned before broadcast so an operator can clear them.

        They are never released here: a row also stays pending when the
        broadcast went out but marking it failed.
        """
        key = ClaimReservation.user_id == user_id
        if wallet_address is not None:
            key = or_(key, ClaimReservation.wallet_address == wallet_address)
        result = await self.db.execute(
            select(ClaimReservation).where(
                key,
                ClaimReservation.reward_type == REWARD_TYPE.value,
                ClaimReservation.status == ReservationStatus.PENDING.value,
                ClaimReservation.created_at < self.now() - STALE_RESERVATION_AGE,
            )
        )
        for reservation in result.scalars().all():
            logger.error(
                "reward_reservation_stale",
                reservation_id=reservation.id,
                user_id=reservation.user_id,
                wallet_address=reservation.wallet_address,
                created_at=str(reservation.created_at),
            )

    def _check_configuration(self, amount: int) -> int:
        if not self.settings.tea_token_address or not self.token.can_transfer:
            msg = "Distributor key or token address not configured"
            raise ServerMisconfigured(msg)
        return self.token.to_base_units(amount)

    async def _check_distributor_balance(self, base_amount: int) -> None:
        try:
            balance = await self.token.balance_of(self.token.distributor_address)
        except ChainError as e:
            raise ChainUnavailable(str(e)) from e
        if balance < base_amount:
            msg = f"Distributor balance {balance} below reward {base_amount}"
            raise InsufficientDistributorFunds(msg)

    async def _mark(self, reservation: ClaimReservation, status: ReservationStatus, tx_hash: str) -> None:
        reservation.status = status.value
        reservation.tx_hash = tx_hash
        reservation.updated_at = self.now()
        await self.db.commit()

    async def _release(self, reservation_id: str, log: structlog.stdlib.BoundLogger) -> None:
        try:
            await self.db.rollback()
            await self.db.execute(delete(ClaimReservation).where(ClaimReservation.id == reservation_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            # Row stays; retries are blocked until it is cleared by hand
            log.error("reward_reservation_release_failed", error=str(e))
            return
        log.info("reward_reservation_released")

    async def _record(
        self,
        reservation: ClaimReservation,
        user_id: str,
        wallet_address: str,
        amount: int,
        tx_hash: str,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        """Confirm the reservation and write the ledger row. The transfer already happened, so failures are logged only."""
        try:
            await self._mark(reservation, ReservationStatus.CONFIRMED, tx_hash)
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.error("reward_reservation_confirm_failed", error=str(e))

        self.db.add(
            RewardClaim(
                user_id=user_id,
                wallet_address=wallet_address,
                amount=Decimal(amount),
                reward_type=REWARD_TYPE.value,
                tx_hash=tx_hash,
                created_at=self.now(),
            )
        )
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.error("reward_ledger_insert_failed", amount=amount, error=str(e))
            return
        log.info("reward_claim_recorded", amount=amount)
