"""
EVM address validation and normalization.

Addresses are stored lowercase so that uniqueness checks (one claim per
wallet) cannot be bypassed by re-casing the same address.
"""

from __future__ import annotations

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(address: str) -> str:
    """
    Validate an EVM address and return its lowercase form.

    Mixed-case input must carry a valid EIP-55 checksum.

    Raises:
        ValueError: If the address is malformed or the checksum does not match.
    """
    if not address or not isinstance(address, str):
        msg = "Address must be a non-empty string"
        raise ValueError(msg)

    address = address.strip()
    if not address.startswith(("0x", "0X")) or len(address) != 42:
        msg = "Address must be 0x followed by 40 hex characters"
        raise ValueError(msg)
    address = "0x" + address[2:]

    if not Web3.is_address(address):
        msg = "Invalid address or checksum"
        raise ValueError(msg)

    normalized = address.lower()
    if normalized == ZERO_ADDRESS:
        msg = "The zero address cannot receive rewards"
        raise ValueError(msg)
    return normalized


def to_checksum(address: str) -> str:
    """Return the EIP-55 checksummed form expected by contract calls."""
    return Web3.to_checksum_address(address)
