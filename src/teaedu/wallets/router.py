"""Wallet endpoints: link, list, choose primary, read balances."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from teaedu.auth.dependencies import get_current_user
from teaedu.auth.jwt import AuthenticatedUser
from teaedu.chain.client import ChainError, get_token_gateway
from teaedu.chain.token import TokenGateway
from teaedu.chain.units import format_units
from teaedu.database import get_session
from teaedu.wallets.schemas import (
    WalletBalanceResponse,
    WalletLinkRequest,
    WalletListResponse,
    WalletResponse,
)
from teaedu.wallets.service import link_wallet, list_wallets, set_primary_wallet

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/wallets", tags=["Wallets"])

NATIVE_DECIMALS = 18


@router.get("", response_model=WalletListResponse)
async def get_wallets(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WalletListResponse:
    """List linked wallets, primary first."""
    wallets = await list_wallets(db, user.id)
    return WalletListResponse(wallets=[WalletResponse.model_validate(w) for w in wallets])


@router.post("", response_model=WalletResponse)
async def post_wallet(
    body: WalletLinkRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WalletResponse:
    """Link the address the browser wallet reported. Idempotent per address."""
    try:
        wallet, _ = await link_wallet(db, user.id, body.wallet_address, body.wallet_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return WalletResponse.model_validate(wallet)


@router.post("/{address}/primary", response_model=WalletResponse)
async def make_primary(
    address: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WalletResponse:
    """Choose which linked wallet receives rewards."""
    try:
        wallet = await set_primary_wallet(db, user.id, address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return WalletResponse.model_validate(wallet)


@router.get("/{address}/balance", response_model=WalletBalanceResponse)
async def wallet_balance(
    address: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    token: TokenGateway = Depends(get_token_gateway),
) -> WalletBalanceResponse:
    """Native and TEA balance of one of the caller's wallets."""
    wallets = {w.wallet_address: w for w in await list_wallets(db, user.id)}
    normalized = address.lower()
    if normalized not in wallets:
        raise HTTPException(status_code=404, detail="Wallet not linked to this account")

    try:
        native = await token.native_balance(normalized)
        tea = await token.balance_of(normalized)
    except ChainError as e:
        logger.warning("wallet_balance_failed", wallet_address=normalized, error=str(e))
        raise HTTPException(status_code=502, detail="Blockchain node unavailable") from e

    return WalletBalanceResponse(
        wallet_address=normalized,
        native_balance=format_units(native, NATIVE_DECIMALS),
        tea_balance=format_units(tea, token.decimals),
    )
