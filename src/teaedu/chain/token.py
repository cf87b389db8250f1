"""TEA token gateway: ERC-20 reads, vote reads and distributor transfers."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import TimeExhausted, Web3Exception

from teaedu.chain.abi import TEA_TOKEN_ABI
from teaedu.chain.client import ChainError, ReceiptTimeout
from teaedu.chain.nonce import DistributorNonceLock
from teaedu.chain.units import to_base_units
from teaedu.wallets.address import ZERO_ADDRESS, to_checksum

logger = structlog.get_logger()


@dataclass(frozen=True)
class TransferReceipt:
    tx_hash: str
    block_number: int
    succeeded: bool


class TokenGateway:
    """Thin wrapper over the token contract.

    Reads go through the shared RPC client. Transfers are signed locally with
    the distributor key and serialized through ``nonce_lock``.
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        address: str,
        *,
        decimals: int,
        chain_id: int,
        distributor_key: str | None = None,
        gas_limit: int = 100_000,
        receipt_timeout: int = 120,
        nonce_lock: DistributorNonceLock | None = None,
    ) -> None:
        self.web3 = web3
        self.decimals = decimals
        self.chain_id = chain_id
        self.gas_limit = gas_limit
        self.receipt_timeout = receipt_timeout
        self.contract = web3.eth.contract(address=to_checksum(address), abi=TEA_TOKEN_ABI)
        self._account = Account.from_key(distributor_key) if distributor_key else None
        self._nonce_lock = nonce_lock or DistributorNonceLock()

    @property
    def can_transfer(self) -> bool:
        return self._account is not None

    @property
    def distributor_address(self) -> str:
        if self._account is None:
            msg = "Distributor key not configured"
            raise ChainError(msg)
        return self._account.address

    def to_base_units(self, amount: int) -> int:
        return to_base_units(amount, self.decimals)

    # --- Reads ---

    async def balance_of(self, address: str) -> int:
        try:
            return int(await self.contract.functions.balanceOf(to_checksum(address)).call())
        except Web3Exception as e:
            msg = f"balanceOf failed: {e}"
            raise ChainError(msg) from e

    async def native_balance(self, address: str) -> int:
        try:
            return int(await self.web3.eth.get_balance(to_checksum(address)))
        except Web3Exception as e:
            msg = f"get_balance failed: {e}"
            raise ChainError(msg) from e

    async def get_votes(self, address: str) -> int:
        try:
            return int(await self.contract.functions.getVotes(to_checksum(address)).call())
        except Web3Exception as e:
            msg = f"getVotes failed: {e}"
            raise ChainError(msg) from e

    async def delegates(self, address: str) -> str | None:
        """Current delegatee, or None when voting power was never activated."""
        try:
            delegatee = await self.contract.functions.delegates(to_checksum(address)).call()
        except Web3Exception as e:
            msg = f"delegates failed: {e}"
            raise ChainError(msg) from e
        return None if delegatee.lower() == ZERO_ADDRESS else delegatee

    # --- Transfers ---

    async def send_transfer(self, to: str, amount: int) -> str:
        """Sign and broadcast ``transfer(to, amount)``. Returns the tx hash once broadcast."""
        if self._account is None:
            msg = "Distributor key not configured"
            raise ChainError(msg)

        try:
            async with self._nonce_lock.hold():
                nonce = await self.web3.eth.get_transaction_count(self._account.address, "pending")
                tx = await self.contract.functions.transfer(to_checksum(to), amount).build_transaction({
                    "from": self._account.address,
                    "nonce": nonce,
                    "chainId": self.chain_id,
                    "gas": self.gas_limit,
                })
                signed = self._account.sign_transaction(tx)
                tx_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)
        except Web3Exception as e:
            msg = f"transfer broadcast failed: {e}"
            raise ChainError(msg) from e

        hex_hash = AsyncWeb3.to_hex(tx_hash)
        logger.info("token_transfer_sent", tx_hash=hex_hash, to=to, amount=amount, nonce=nonce)
        return hex_hash

    async def wait_for_receipt(self, tx_hash: str) -> TransferReceipt:
        """Block until the transaction is mined, bounded by ``receipt_timeout`` seconds."""
        try:
            receipt = await self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except TimeExhausted as e:
            msg = f"{tx_hash} not mined within {self.receipt_timeout}s"
            raise ReceiptTimeout(msg) from e
        except Web3Exception as e:
            msg = f"receipt lookup failed for {tx_hash}: {e}"
            raise ChainError(msg) from e

        return TransferReceipt(
            tx_hash=tx_hash,
            block_number=int(receipt["blockNumber"]),
            succeeded=receipt["status"] == 1,
        )
