"""
Ghost Pool Instructions

Instruction payloads and account lists of the pool program.

Deposit / withdraw payload (104 bytes):
    tag(8) | computation_offset u64 | amount u64 | ciphertext(32) |
    ephemeral_public_key(32) | nonce u128

Initialize-pool payload (40 bytes):
    tag(8) | computation_offset u64 | nonce u128 | investment_threshold u64

Account order is fixed by the program and must not change.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List

from ghostpool.config import ProtocolConfig
from ghostpool.constants import (
    CIPHERTEXT_BLOCK_SIZE,
    DISCRIMINATOR_SIZE,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TRANSFER_PAYLOAD_SIZE,
    X25519_KEY_SIZE,
    U64_MAX,
)
from ghostpool.core.serialization import (
    deserialize_u64,
    deserialize_u128,
    serialize_u64,
    serialize_u128,
)
from ghostpool.core.types import DerivedAddresses, EncryptedCredential, Pubkey, RequestKind
from ghostpool.errors import InvalidAmountError, ValidationError, Stage


@dataclass(frozen=True, slots=True)
class AccountMeta:
    """Account reference inside an instruction."""
    pubkey: Pubkey
    is_signer: bool = False
    is_writable: bool = False


@dataclass(frozen=True, slots=True)
class Instruction:
    """Program invocation: target program, accounts, opaque data."""
    program_id: Pubkey
    accounts: tuple
    data: bytes


def validate_amount(amount, field_name: str = "amount") -> int:
    """
    Positive integer in the smallest currency unit, at most u64 max.

    Raises:
        InvalidAmountError: Otherwise (stage BUILD)
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount)
    if amount <= 0 or amount > U64_MAX:
        raise InvalidAmountError(amount)
    return amount


# ==============================================================================
# Payloads
# ==============================================================================

def encode_transfer_payload(
    tag: bytes,
    computation_offset: int,
    amount: int,
    credential: EncryptedCredential,
) -> bytes:
    """Payload shared by deposit and withdraw."""
    if len(tag) != DISCRIMINATOR_SIZE:
        raise ValidationError("tag", f"must be {DISCRIMINATOR_SIZE} bytes", Stage.BUILD)
    validate_amount(amount)
    data = b"".join([
        tag,
        serialize_u64(computation_offset),
        serialize_u64(amount),
        credential.ciphertext,
        credential.ephemeral_public_key,
        serialize_u128(credential.nonce),
    ])
    return data


def decode_transfer_payload(data: bytes) -> dict:
    """Split a deposit/withdraw payload into its fields."""
    if len(data) != TRANSFER_PAYLOAD_SIZE:
        raise ValidationError(
            "payload", f"must be {TRANSFER_PAYLOAD_SIZE} bytes, got {len(data)}"
        )
    offset = DISCRIMINATOR_SIZE
    computation_offset, n = deserialize_u64(data, offset)
    offset += n
    amount, n = deserialize_u64(data, offset)
    offset += n
    ciphertext = data[offset:offset + CIPHERTEXT_BLOCK_SIZE]
    offset += CIPHERTEXT_BLOCK_SIZE
    public_key = data[offset:offset + X25519_KEY_SIZE]
    offset += X25519_KEY_SIZE
    nonce, _ = deserialize_u128(data, offset)
    return {
        "tag": data[:DISCRIMINATOR_SIZE],
        "computation_offset": computation_offset,
        "amount": amount,
        "ciphertext": ciphertext,
        "ephemeral_public_key": public_key,
        "nonce": nonce,
    }


def encode_init_pool_payload(
    tag: bytes,
    computation_offset: int,
    nonce: int,
    investment_threshold: int,
) -> bytes:
    if len(tag) != DISCRIMINATOR_SIZE:
        raise ValidationError("tag", f"must be {DISCRIMINATOR_SIZE} bytes", Stage.BUILD)
    data = b"".join([
        tag,
        serialize_u64(computation_offset),
        serialize_u128(nonce),
        serialize_u64(investment_threshold),
    ])
    return data


# ==============================================================================
# Instructions
# ==============================================================================

def _network_accounts(config: ProtocolConfig, addresses: DerivedAddresses) -> List[AccountMeta]:
    """Accounts every queued computation touches, in program order."""
    return [
        AccountMeta(addresses.signer, is_writable=True),
        AccountMeta(addresses.mxe),
        AccountMeta(addresses.mempool, is_writable=True),
        AccountMeta(addresses.executing_pool, is_writable=True),
        AccountMeta(addresses.computation, is_writable=True),
        AccountMeta(addresses.comp_def),
        AccountMeta(addresses.cluster, is_writable=True),
        AccountMeta(config.fee_pool_account, is_writable=True),
        AccountMeta(config.clock_account, is_writable=True),
    ]


def deposit_instruction(
    config: ProtocolConfig,
    user: Pubkey,
    user_token_account: Pubkey,
    mint: Pubkey,
    addresses: DerivedAddresses,
    amount: int,
    credential: EncryptedCredential,
) -> Instruction:
    """Queue process_deposit: moves `amount` into the vault under the credential."""
    data = encode_transfer_payload(
        config.instruction_tag(RequestKind.DEPOSIT.value),
        addresses.computation_offset,
        amount,
        credential,
    )
    accounts = [
        AccountMeta(user, is_signer=True, is_writable=True),
        AccountMeta(addresses.pool, is_writable=True),
        AccountMeta(user_token_account, is_writable=True),
        AccountMeta(addresses.vault, is_writable=True),
        AccountMeta(mint),
        *_network_accounts(config, addresses),
        AccountMeta(Pubkey.from_base58(SYSTEM_PROGRAM_ID)),
        AccountMeta(Pubkey.from_base58(TOKEN_PROGRAM_ID)),
        AccountMeta(config.arcium_program_id),
    ]
    return Instruction(config.program_id, tuple(accounts), data)


def withdraw_instruction(
    config: ProtocolConfig,
    user: Pubkey,
    user_token_account: Pubkey,
    addresses: DerivedAddresses,
    amount: int,
    credential: EncryptedCredential,
) -> Instruction:
    """Queue authorize_withdrawal: pays `amount` out if the credential matches."""
    data = encode_transfer_payload(
        config.instruction_tag(RequestKind.WITHDRAW.value),
        addresses.computation_offset,
        amount,
        credential,
    )
    accounts = [
        AccountMeta(user, is_signer=True, is_writable=True),
        AccountMeta(addresses.pool, is_writable=True),
        AccountMeta(addresses.vault, is_writable=True),
        AccountMeta(user_token_account, is_writable=True),
        AccountMeta(Pubkey.from_base58(TOKEN_PROGRAM_ID)),
        *_network_accounts(config, addresses),
        AccountMeta(Pubkey.from_base58(SYSTEM_PROGRAM_ID)),
        AccountMeta(config.arcium_program_id),
    ]
    return Instruction(config.program_id, tuple(accounts), data)


def initialize_pool_instruction(
    config: ProtocolConfig,
    authority: Pubkey,
    mint: Pubkey,
    addresses: DerivedAddresses,
    nonce: int,
    investment_threshold: int,
) -> Instruction:
    """Create the pool record and queue init_pool_state."""
    if not 0 <= investment_threshold <= U64_MAX:
        raise ValidationError("investment_threshold", "must fit in 64 bits", Stage.BUILD)
    data = encode_init_pool_payload(
        config.instruction_tag(RequestKind.INIT_POOL.value),
        addresses.computation_offset,
        nonce,
        investment_threshold,
    )
    accounts = [
        AccountMeta(authority, is_signer=True, is_writable=True),
        AccountMeta(addresses.pool, is_writable=True),
        AccountMeta(mint),
        AccountMeta(addresses.vault, is_writable=True),
        *_network_accounts(config, addresses),
        AccountMeta(Pubkey.from_base58(SYSTEM_PROGRAM_ID)),
        AccountMeta(Pubkey.from_base58(TOKEN_PROGRAM_ID)),
        AccountMeta(config.arcium_program_id),
    ]
    return Instruction(config.program_id, tuple(accounts), data)
