"""Staking pool gateway (read-only; stake/withdraw are signed in the user's wallet)."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from web3 import AsyncWeb3
from web3.exceptions import Web3Exception

from teaedu.chain.abi import TEA_STAKING_ABI
from teaedu.wallets.address import to_checksum

logger = structlog.get_logger()

SECONDS_PER_YEAR = 365 * 24 * 60 * 60


@dataclass(frozen=True)
class StakingPosition:
    """Base-unit amounts. A field is None when that view call failed."""

    staked: int | None
    earned: int | None
    total_staked: int | None
    reward_rate_per_year: int | None


class StakingGateway:
    def __init__(self, web3: AsyncWeb3, address: str) -> None:
        self.contract = web3.eth.contract(address=to_checksum(address), abi=TEA_STAKING_ABI)

    async def _read(self, name: str, *args: object) -> int | None:
        # Views are read independently: rewardRate reverts until rewards are funded
        try:
            return int(await getattr(self.contract.functions, name)(*args).call())
        except Web3Exception as e:
            logger.warning("staking_view_failed", function=name, error=str(e))
            return None

    async def get_position(self, address: str) -> StakingPosition:
        account = to_checksum(address)
        rate = await self._read("rewardRate")
        return StakingPosition(
            staked=await self._read("balanceOf", account),
            earned=await self._read("earned", account),
            total_staked=await self._read("totalSupply"),
            reward_rate_per_year=rate * SECONDS_PER_YEAR if rate is not None else None,
        )
