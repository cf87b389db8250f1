"""Request/response schemas for wallet endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class WalletLinkRequest(BaseModel):
    """Link an address reported by the browser wallet."""

    wallet_address: str = Field(..., min_length=42, max_length=42)
    wallet_type: str = Field("metamask", min_length=1, max_length=32)


class WalletResponse(BaseModel):
    id: str
    wallet_address: str
    wallet_type: str
    is_primary: bool
    connected_at: datetime

    model_config = {"from_attributes": True}


class WalletListResponse(BaseModel):
    wallets: list[WalletResponse]


class WalletBalanceResponse(BaseModel):
    wallet_address: str
    native_balance: str
    tea_balance: str
