"""Wallet linking business logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from teaedu.database import upsert_insert
from teaedu.db.models import Wallet
from teaedu.wallets.address import normalize_address

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def list_wallets(db: AsyncSession, user_id: str) -> list[Wallet]:
    """List a user's wallets, primary first, then oldest link first."""
    result = await db.execute(
        select(Wallet)
        .where(Wallet.user_id == user_id)
        .order_by(Wallet.is_primary.desc(), Wallet.connected_at.asc())
    )
    return list(result.scalars().all())


async def get_reward_wallet(db: AsyncSession, user_id: str) -> Wallet | None:
    """The wallet rewards are paid to: the primary one, else the earliest linked."""
    wallets = await list_wallets(db, user_id)
    return wallets[0] if wallets else None


async def link_wallet(
    db: AsyncSession,
    user_id: str,
    address: str,
    wallet_type: str = "metamask",
    now: datetime | None = None,
) -> tuple[Wallet, bool]:
    """
    Link an address to a user (INSERT ... ON CONFLICT DO NOTHING on user + address).

    The first wallet a user links becomes primary. Re-linking an existing
    address never touches ``connected_at``.

    Returns:
        Tuple of (wallet, created).

    Raises:
        ValueError: If the address is invalid.
    """
    normalized = normalize_address(address)

    has_any = await db.execute(select(Wallet.id).where(Wallet.user_id == user_id).limit(1))
    stmt = (
        upsert_insert(db, Wallet)
        .values(
            user_id=user_id,
            wallet_address=normalized,
            wallet_type=wallet_type,
            is_primary=has_any.first() is None,
            connected_at=now or datetime.now(timezone.utc),
        )
        .on_conflict_do_nothing(index_elements=["user_id", "wallet_address"])
        .returning(Wallet.id)
    )
    inserted = (await db.execute(stmt)).first()

    result = await db.execute(
        select(Wallet).where(Wallet.user_id == user_id, Wallet.wallet_address == normalized)
    )
    wallet = result.scalar_one()
    if inserted is None:
        wallet.wallet_type = wallet_type
        await db.flush()
        return wallet, False

    logger.info("wallet_linked", user_id=user_id, wallet_address=normalized, is_primary=wallet.is_primary)
    return wallet, True


async def set_primary_wallet(db: AsyncSession, user_id: str, address: str) -> Wallet:
    """
    Make one of the user's wallets the primary one.

    Raises:
        ValueError: If the address is invalid.
        LookupError: If the address is not linked to this user.
    """
    normalized = normalize_address(address)
    result = await db.execute(
        select(Wallet).where(Wallet.user_id == user_id, Wallet.wallet_address == normalized)
    )
    wallet = result.scalar_one_or_none()
    if wallet is None:
        msg = "Wallet not linked to this account"
        raise LookupError(msg)

    await db.execute(
        update(Wallet)
        .where(Wallet.user_id == user_id, Wallet.id != wallet.id)
        .values(is_primary=False)
    )
    wallet.is_primary = True
    await db.flush()
    logger.info("wallet_primary_changed", user_id=user_id, wallet_address=normalized)
    return wallet
