"""Eligibility policy: ordered checks, first failure wins."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from teaedu.db.models import ClaimReservation, QuizCompletion, ReservationStatus, RewardClaim, RewardType
from teaedu.rewards.eligibility import EligibilityEvaluator
from teaedu.rewards.exceptions import (
    AlreadyClaimed,
    NoWalletConnected,
    QuizNotCompleted,
    WalletAlreadyUsed,
    WalletTooNew,
)
from teaedu.wallets.service import link_wallet
from tests.conftest import auth_headers, make_eligible

WALLET_A = "0x" + "a" * 40
WALLET_B = "0x" + "b" * 40
NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def _ledger_row(user_id: str, wallet: str) -> RewardClaim:
    return RewardClaim(
        user_id=user_id,
        wallet_address=wallet,
        amount=Decimal(100),
        reward_type=RewardType.MODULE_3_COMPLETION.value,
        tx_hash="0x" + "1" * 64,
        created_at=NOW - timedelta(days=1),
    )


def _reservation(user_id: str, wallet: str, status: ReservationStatus) -> ClaimReservation:
    return ClaimReservation(
        user_id=user_id,
        wallet_address=wallet,
        reward_type=RewardType.MODULE_3_COMPLETION.value,
        status=status.value,
        tx_hash=None if status is ReservationStatus.PENDING else "0x" + "2" * 64,
        created_at=NOW - timedelta(hours=1),
        updated_at=NOW - timedelta(hours=1),
    )


async def _seed(db: AsyncSession, user_id: str, wallet: str, connected_at: datetime, passed: bool = True) -> None:
    db.add(QuizCompletion(user_id=user_id, quiz_id="module-3-quiz", passed=passed, score=80, completed_at=NOW))
    await link_wallet(db, user_id, wallet, now=connected_at)
    await db.commit()


class TestEvaluator:
    """Evaluator against a fixed clock."""

    async def test_eligible_after_ten_days(self, db_session: AsyncSession):
        await _seed(db_session, "user-1", WALLET_A, NOW - timedelta(days=10))
        status = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-1")
        assert status.can_claim
        assert status.wallet_age_days == 10
        assert status.wallet_address == WALLET_A
        assert status.rejection() is None

    async def test_wallet_three_days_old(self, db_session: AsyncSession):
        await _seed(db_session, "user-1", WALLET_A, NOW - timedelta(days=3))
        status = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-1")
        assert not status.can_claim
        assert status.wallet_too_new
        assert status.wallet_age_days == 3
        assert status.days_remaining == 4
        assert "Faltam 4 dia(s)" in status.reason
        assert isinstance(status.rejection(), WalletTooNew)

    async def test_no_wallet(self, db_session: AsyncSession):
        db_session.add(QuizCompletion(user_id="user-1", quiz_id="module-3-quiz", passed=True, score=90, completed_at=NOW))
        await db_session.commit()
        status = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-1")
        assert not status.wallet_connected
        assert not status.can_claim
        assert isinstance(status.rejection(), NoWalletConnected)

    async def test_quiz_not_passed_wins_over_wallet_state(self, db_session: AsyncSession):
        await _seed(db_session, "user-1", WALLET_A, NOW - timedelta(days=30), passed=False)
        status = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-1")
        assert not status.can_claim
        assert not status.quiz_passed
        assert isinstance(status.rejection(), QuizNotCompleted)

    async def test_quiz_never_attempted(self, db_session: AsyncSession):
        await link_wallet(db_session, "user-1", WALLET_A, now=NOW - timedelta(days=30))
        await db_session.commit()
        status = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-1")
        assert not status.can_claim
        assert isinstance(status.rejection(), QuizNotCompleted)

    async def test_already_claimed_is_terminal(self, db_session: AsyncSession):
        """A paid user never sees a wallet-age message, even with a brand new wallet."""
        await _seed(db_session, "user-1", WALLET_B, NOW - timedelta(minutes=5))
        db_session.add(_ledger_row("user-1", WALLET_A))
        await db_session.commit()
        status = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-1")
        assert status.already_claimed
        assert not status.wallet_too_new
        assert not status.can_claim
        assert isinstance(status.rejection(), AlreadyClaimed)

    async def test_wallet_used_by_another_user(self, db_session: AsyncSession):
        db_session.add(_ledger_row("user-1", WALLET_B))
        await db_session.commit()
        await _seed(db_session, "user-2", WALLET_B, NOW - timedelta(days=20))
        status = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-2")
        assert status.wallet_already_used
        assert not status.can_claim
        assert isinstance(status.rejection(), WalletAlreadyUsed)

    @pytest.mark.parametrize("status", list(ReservationStatus))
    async def test_reservation_counts_as_claimed(self, db_session: AsyncSession, status: ReservationStatus):
        """A reservation blocks the user and the wallet the same way the claim handler does."""
        await _seed(db_session, "user-1", WALLET_A, NOW - timedelta(days=10))
        await _seed(db_session, "user-2", WALLET_A, NOW - timedelta(days=10))
        db_session.add(_reservation("user-1", WALLET_A, status))
        await db_session.commit()

        owner = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-1")
        assert owner.already_claimed
        assert not owner.can_claim
        assert isinstance(owner.rejection(), AlreadyClaimed)

        other = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-2")
        assert other.wallet_already_used
        assert not other.can_claim
        assert isinstance(other.rejection(), WalletAlreadyUsed)

    async def test_confirmed_reservation_without_ledger_row(self, db_session: AsyncSession):
        """A paid user whose ledger write was lost is not shown as claimable."""
        await _seed(db_session, "user-1", WALLET_A, NOW - timedelta(days=10))
        db_session.add(_reservation("user-1", WALLET_A, ReservationStatus.CONFIRMED))
        await db_session.commit()
        status = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-1")
        assert status.already_claimed
        assert status.to_camel()["canClaim"] is False

    async def test_primary_wallet_is_selected(self, db_session: AsyncSession):
        await _seed(db_session, "user-1", WALLET_A, NOW - timedelta(days=2))
        await link_wallet(db_session, "user-1", WALLET_B, now=NOW - timedelta(days=30))
        await db_session.commit()
        # First linked wallet is primary even though the second is older
        status = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-1")
        assert status.wallet_address == WALLET_A
        assert status.wallet_too_new

    @pytest.mark.parametrize(
        ("age", "eligible"),
        [
            (timedelta(days=7) - timedelta(seconds=1), False),
            (timedelta(days=7), True),
            (timedelta(days=7) + timedelta(seconds=1), True),
        ],
    )
    async def test_seven_day_boundary(self, db_session: AsyncSession, age: timedelta, eligible: bool):
        await _seed(db_session, "user-1", WALLET_A, NOW - age)
        status = await EligibilityEvaluator(db_session, now=NOW).evaluate("user-1")
        assert status.can_claim is eligible
        if not eligible:
            assert status.days_remaining == 1

    async def test_evaluate_has_no_side_effects(self, db_session: AsyncSession):
        await _seed(db_session, "user-1", WALLET_A, NOW - timedelta(days=10))
        evaluator = EligibilityEvaluator(db_session, now=NOW)
        first = await evaluator.evaluate("user-1")
        second = await evaluator.evaluate("user-1")
        assert first == second
        assert not db_session.new
        assert not db_session.dirty


class TestEligibilityEndpoint:
    """GET /api/v1/rewards/eligibility, camelCase wire format."""

    async def test_eligible_user(self, client: AsyncClient, db_session: AsyncSession):
        await make_eligible(db_session, "user-1", WALLET_A)
        response = await client.get("/api/v1/rewards/eligibility", headers=auth_headers("user-1"))
        assert response.status_code == 200
        data = response.json()
        assert data["canClaim"] is True
        assert data["walletAge"] == 10
        assert data["walletAddress"] == WALLET_A
        assert data["alreadyClaimed"] is False

    async def test_wallet_too_new(self, client: AsyncClient, db_session: AsyncSession):
        await make_eligible(db_session, "user-1", WALLET_A, wallet_age=timedelta(days=3))
        response = await client.get("/api/v1/rewards/eligibility", headers=auth_headers("user-1"))
        data = response.json()
        assert data["canClaim"] is False
        assert data["walletTooNew"] is True
        assert data["daysRemaining"] == 4
        assert "Faltam 4 dia(s)" in data["reason"]

    async def test_no_wallet(self, client: AsyncClient):
        response = await client.get("/api/v1/rewards/eligibility", headers=auth_headers("user-1"))
        data = response.json()
        assert data["walletConnected"] is False
        assert data["canClaim"] is False

    async def test_unauthenticated(self, client: AsyncClient):
        response = await client.get("/api/v1/rewards/eligibility")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "User not authenticated"}

    async def test_invalid_token_is_unauthenticated(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/rewards/eligibility", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
