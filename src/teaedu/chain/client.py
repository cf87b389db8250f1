"""JSON-RPC connection and contract gateway lifecycle."""

from __future__ import annotations

from typing import TYPE_CHECKING

from web3 import AsyncWeb3

from teaedu.config import Settings

if TYPE_CHECKING:
    from teaedu.chain.governor import GovernorGateway
    from teaedu.chain.staking import StakingGateway
    from teaedu.chain.token import TokenGateway


class ChainError(Exception):
    """An RPC or contract call failed."""


class ReceiptTimeout(ChainError):
    """A broadcast transaction was not mined within the configured wait."""


_web3: AsyncWeb3 | None = None
_token: TokenGateway | None = None
_staking: StakingGateway | None = None
_governor: GovernorGateway | None = None


def init_chain(settings: Settings) -> None:
    """Create the RPC client and the contract gateways shared by all requests."""
    global _web3, _token, _staking, _governor  # noqa: PLW0603
    from teaedu.chain.governor import GovernorGateway
    from teaedu.chain.nonce import DistributorNonceLock
    from teaedu.chain.staking import StakingGateway
    from teaedu.chain.token import TokenGateway

    _web3 = AsyncWeb3(
        AsyncWeb3.AsyncHTTPProvider(settings.rpc_url, request_kwargs={"timeout": settings.rpc_timeout_seconds})
    )
    key = settings.distributor_private_key
    _token = TokenGateway(
        _web3,
        settings.tea_token_address,
        decimals=settings.tea_decimals,
        chain_id=settings.chain_id,
        distributor_key=key.get_secret_value() if key else None,
        gas_limit=settings.tx_gas_limit,
        receipt_timeout=settings.tx_receipt_timeout_seconds,
        nonce_lock=DistributorNonceLock(timeout=settings.nonce_lock_timeout_seconds),
    )
    _staking = StakingGateway(_web3, settings.tea_staking_address)
    _governor = GovernorGateway(_web3, settings.tea_governor_address)


def close_chain() -> None:
    """Drop the RPC client and gateways."""
    global _web3, _token, _staking, _governor  # noqa: PLW0603
    _web3 = None
    _token = None
    _staking = None
    _governor = None


def get_web3() -> AsyncWeb3:
    if _web3 is None:
        msg = "Chain client not initialized. Call init_chain() first."
        raise RuntimeError(msg)
    return _web3


def get_token_gateway() -> TokenGateway:
    """Get the TEA token gateway (FastAPI dependency)."""
    if _token is None:
        msg = "Chain client not initialized. Call init_chain() first."
        raise RuntimeError(msg)
    return _token


def get_staking_gateway() -> StakingGateway:
    """Get the staking pool gateway (FastAPI dependency)."""
    if _staking is None:
        msg = "Chain client not initialized. Call init_chain() first."
        raise RuntimeError(msg)
    return _staking


def get_governor_gateway() -> GovernorGateway:
    """Get the governor gateway (FastAPI dependency)."""
    if _governor is None:
        msg = "Chain client not initialized. Call init_chain() first."
        raise RuntimeError(msg)
    return _governor
