"""
Ghost Pool Core Types

Value types shared by the cipher, the address deriver, the codec and the
request orchestrator. All are immutable.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple, Union

import base58

from ghostpool.constants import (
    PUBKEY_SIZE,
    CIPHERTEXT_BLOCK_SIZE,
    X25519_KEY_SIZE,
    ENCRYPTED_STATE_BLOCKS,
    U128_MAX,
    POOL_ACCOUNT_DISCRIMINATOR,
)
from ghostpool.errors import InvalidAddressError


@dataclass(frozen=True, slots=True)
class Pubkey:
    """
    Ledger account address.

    SIZE: 32 bytes
    TEXT FORM: base58
    """
    data: bytes = field(default_factory=lambda: bytes(PUBKEY_SIZE))

    def __post_init__(self):
        if len(self.data) != PUBKEY_SIZE:
            raise InvalidAddressError(
                "pubkey", f"must be {PUBKEY_SIZE} bytes, got {len(self.data)}"
            )

    def __bytes__(self) -> bytes:
        return self.data

    def __str__(self) -> str:
        return self.to_base58()

    def __repr__(self) -> str:
        return f"Pubkey({self.to_base58()})"

    def to_base58(self) -> str:
        return base58.b58encode(self.data).decode("ascii")

    def hex(self) -> str:
        return self.data.hex()

    @classmethod
    def from_base58(cls, text: str, field_name: str = "pubkey") -> Pubkey:
        try:
            raw = base58.b58decode(text)
        except ValueError as exc:
            raise InvalidAddressError(field_name, f"not base58: {text!r}") from exc
        if len(raw) != PUBKEY_SIZE:
            raise InvalidAddressError(
                field_name, f"{text!r} decodes to {len(raw)} bytes, expected {PUBKEY_SIZE}"
            )
        return cls(raw)

    @classmethod
    def parse(cls, value: Union[Pubkey, str, bytes], field_name: str = "pubkey") -> Pubkey:
        """Accept a Pubkey, raw bytes or a base58 string."""
        if isinstance(value, Pubkey):
            return value
        if isinstance(value, (bytes, bytearray)):
            if len(value) != PUBKEY_SIZE:
                raise InvalidAddressError(field_name, f"must be {PUBKEY_SIZE} bytes")
            return cls(bytes(value))
        return cls.from_base58(value, field_name)

    @classmethod
    def zero(cls) -> Pubkey:
        return cls(bytes(PUBKEY_SIZE))


class RequestKind(str, Enum):
    """Operations routed through the confidential-computation network."""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    INIT_POOL = "initialize_pool"


@dataclass(frozen=True, slots=True)
class EncryptedCredential:
    """
    Encrypted secret-hash produced for one deposit or withdrawal attempt.

    Carries only what goes on the wire. The ephemeral private key and the
    plaintext hash are never stored here.
    """
    ephemeral_public_key: bytes
    ciphertext: bytes
    nonce: int

    def __post_init__(self):
        if len(self.ephemeral_public_key) != X25519_KEY_SIZE:
            raise ValueError(
                f"ephemeral_public_key must be {X25519_KEY_SIZE} bytes, "
                f"got {len(self.ephemeral_public_key)}"
            )
        if len(self.ciphertext) != CIPHERTEXT_BLOCK_SIZE:
            raise ValueError(
                f"ciphertext must be {CIPHERTEXT_BLOCK_SIZE} bytes, got {len(self.ciphertext)}"
            )
        if not 0 <= self.nonce <= U128_MAX:
            raise ValueError(f"nonce out of u128 range: {self.nonce}")

    def __repr__(self) -> str:
        return (
            f"EncryptedCredential(pubkey={self.ephemeral_public_key.hex()[:16]}..., "
            f"ciphertext={self.ciphertext.hex()[:16]}...)"
        )


@dataclass(frozen=True, slots=True)
class PoolState:
    """
    On-ledger pool record.

    The 13 encrypted blocks and the counters are written only by the
    network's callback; the client reads them to observe outcomes.
    """
    bump: int
    owner: Pubkey
    mint: Pubkey
    vault_bump: int
    investment_threshold: int
    last_investment_time: int
    state_nonce: int
    encrypted_state: Tuple[bytes, ...]
    total_deposits: int
    total_withdrawals: int
    total_invested: int
    pending_investment_amount: int
    collateral_account: Pubkey
    total_collateral_received: int
    tag: bytes = POOL_ACCOUNT_DISCRIMINATOR

    def __post_init__(self):
        if len(self.encrypted_state) != ENCRYPTED_STATE_BLOCKS:
            raise ValueError(
                f"encrypted_state must hold {ENCRYPTED_STATE_BLOCKS} blocks, "
                f"got {len(self.encrypted_state)}"
            )
        for i, block in enumerate(self.encrypted_state):
            if len(block) != CIPHERTEXT_BLOCK_SIZE:
                raise ValueError(f"encrypted_state[{i}] must be {CIPHERTEXT_BLOCK_SIZE} bytes")

    @property
    def is_initialized(self) -> bool:
        """True once the init callback has written the encrypted state."""
        return any(any(block) for block in self.encrypted_state)

    def to_dict(self) -> dict:
        return {
            "bump": self.bump,
            "owner": str(self.owner),
            "mint": str(self.mint),
            "vault_bump": self.vault_bump,
            "investment_threshold": self.investment_threshold,
            "last_investment_time": self.last_investment_time,
            "state_nonce": str(self.state_nonce),
            "initialized": self.is_initialized,
            "total_deposits": self.total_deposits,
            "total_withdrawals": self.total_withdrawals,
            "total_invested": self.total_invested,
            "pending_investment_amount": self.pending_investment_amount,
            "collateral_account": str(self.collateral_account),
            "total_collateral_received": self.total_collateral_received,
        }


@dataclass(frozen=True, slots=True)
class DerivedAddresses:
    """Addresses that route one computation request to the network."""
    pool: Pubkey
    vault: Pubkey
    signer: Pubkey
    mxe: Pubkey
    cluster: Pubkey
    mempool: Pubkey
    executing_pool: Pubkey
    computation: Pubkey
    comp_def: Pubkey
    computation_offset: int
