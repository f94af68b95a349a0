"""
Ghost Pool State Codec

Fixed little-endian layout of the on-ledger pool record:

    tag(8) | bump(1) | owner(32) | mint(32) | vault_bump(1) |
    investment_threshold(8) | last_investment_time(8) | state_nonce(16) |
    encrypted_state(13 x 32) | total_deposits(8) | total_withdrawals(8) |
    total_invested(8) | pending_investment_amount(8) |
    collateral_account(32) | total_collateral_received(8)

594 bytes, no padding. Account data may be allocated larger than the layout;
the tail past it is reserved and must be zero.
"""

from __future__ import annotations
from typing import Callable, Dict, List, Optional, Tuple

from ghostpool.constants import (
    CIPHERTEXT_BLOCK_SIZE,
    DISCRIMINATOR_SIZE,
    ENCRYPTED_STATE_BLOCKS,
    ENCRYPTED_STATE_SIZE,
    POOL_ACCOUNT_DISCRIMINATOR,
    POOL_STATE_SIZE,
    PUBKEY_SIZE,
)
from ghostpool.core.serialization import (
    deserialize_fixed_bytes,
    deserialize_i64,
    deserialize_u8,
    deserialize_u64,
    deserialize_u128,
    serialize_i64,
    serialize_u8,
    serialize_u64,
    serialize_u128,
)
from ghostpool.core.types import PoolState, Pubkey
from ghostpool.errors import CodecError, ErrorCode

Reader = Callable[[bytes, int], Tuple[object, int]]


def _read_pubkey(data: bytes, offset: int) -> Tuple[Pubkey, int]:
    raw, size = deserialize_fixed_bytes(data, PUBKEY_SIZE, offset)
    return Pubkey(raw), size


def _read_blocks(data: bytes, offset: int) -> Tuple[Tuple[bytes, ...], int]:
    blocks = tuple(
        bytes(data[offset + i * CIPHERTEXT_BLOCK_SIZE:offset + (i + 1) * CIPHERTEXT_BLOCK_SIZE])
        for i in range(ENCRYPTED_STATE_BLOCKS)
    )
    return blocks, ENCRYPTED_STATE_SIZE


# Field order after the tag. (name, reader, size)
LAYOUT: List[Tuple[str, Reader, int]] = [
    ("bump", deserialize_u8, 1),
    ("owner", _read_pubkey, PUBKEY_SIZE),
    ("mint", _read_pubkey, PUBKEY_SIZE),
    ("vault_bump", deserialize_u8, 1),
    ("investment_threshold", deserialize_u64, 8),
    ("last_investment_time", deserialize_i64, 8),
    ("state_nonce", deserialize_u128, 16),
    ("encrypted_state", _read_blocks, ENCRYPTED_STATE_SIZE),
    ("total_deposits", deserialize_u64, 8),
    ("total_withdrawals", deserialize_u64, 8),
    ("total_invested", deserialize_u64, 8),
    ("pending_investment_amount", deserialize_u64, 8),
    ("collateral_account", _read_pubkey, PUBKEY_SIZE),
    ("total_collateral_received", deserialize_u64, 8),
]


def field_offsets() -> Dict[str, int]:
    """Byte offset of every field, tag included."""
    offsets = {"tag": 0}
    position = DISCRIMINATOR_SIZE
    for name, _, size in LAYOUT:
        offsets[name] = position
        position += size
    return offsets


def decode(raw: bytes, expected_tag: bytes = POOL_ACCOUNT_DISCRIMINATOR) -> PoolState:
    """
    Decode a pool record.

    Args:
        raw: Account data
        expected_tag: Account discriminator of the pool record

    Returns:
        Fully populated PoolState

    Raises:
        CodecError: Short buffer, foreign tag, or non-zero reserved tail
    """
    data = bytes(raw)
    if len(data) < POOL_STATE_SIZE:
        # Name the first field that does not fit
        position = DISCRIMINATOR_SIZE
        missing = "tag"
        if len(data) >= DISCRIMINATOR_SIZE:
            for name, _, size in LAYOUT:
                if position + size > len(data):
                    missing = name
                    break
                position += size
        raise CodecError(
            missing,
            f"buffer is {len(data)} bytes, pool record needs {POOL_STATE_SIZE}",
        )

    tag = data[:DISCRIMINATOR_SIZE]
    if tag != expected_tag:
        raise CodecError(
            "tag",
            f"expected {expected_tag.hex()}, got {tag.hex()}",
            ErrorCode.TAG_MISMATCH,
        )

    if any(data[POOL_STATE_SIZE:]):
        raise CodecError(
            "reserved",
            f"{len(data) - POOL_STATE_SIZE} trailing bytes are not zero",
            ErrorCode.RESERVED_REGION_VIOLATION,
        )

    values = {}
    offset = DISCRIMINATOR_SIZE
    for name, reader, size in LAYOUT:
        value, consumed = reader(data, offset)
        values[name] = value
        offset += consumed

    return PoolState(tag=tag, **values)


def encode(state: PoolState) -> bytes:
    """Exact inverse of decode(); produces exactly POOL_STATE_SIZE bytes."""
    parts = [
        state.tag,
        serialize_u8(state.bump),
        state.owner.data,
        state.mint.data,
        serialize_u8(state.vault_bump),
        serialize_u64(state.investment_threshold),
        serialize_i64(state.last_investment_time),
        serialize_u128(state.state_nonce),
        b"".join(state.encrypted_state),
        serialize_u64(state.total_deposits),
        serialize_u64(state.total_withdrawals),
        serialize_u64(state.total_invested),
        serialize_u64(state.pending_investment_amount),
        state.collateral_account.data,
        serialize_u64(state.total_collateral_received),
    ]
    data = b"".join(parts)
    if len(data) != POOL_STATE_SIZE:
        raise CodecError("layout", f"encoded {len(data)} bytes, expected {POOL_STATE_SIZE}")
    return data


def empty_state(owner: Optional[Pubkey] = None, mint: Optional[Pubkey] = None) -> PoolState:
    """Pool record as created before the init callback has run."""
    return PoolState(
        bump=0,
        owner=owner or Pubkey.zero(),
        mint=mint or Pubkey.zero(),
        vault_bump=0,
        investment_threshold=0,
        last_investment_time=0,
        state_nonce=0,
        encrypted_state=tuple(bytes(CIPHERTEXT_BLOCK_SIZE) for _ in range(ENCRYPTED_STATE_BLOCKS)),
        total_deposits=0,
        total_withdrawals=0,
        total_invested=0,
        pending_investment_amount=0,
        collateral_account=Pubkey.zero(),
        total_collateral_received=0,
    )

